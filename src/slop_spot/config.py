"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_table: str = "kv_store"
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "medium"
    revenuecat_api_key: str
    revenuecat_app_user_id: str
    revenuecat_base_url: str = "https://api.revenuecat.com/v1"
    premium_entitlement_id: str = "premium"
    premium_product_id: str = "slop_spot_lifetime"
    credit_packs: str = "slop_spot_scans_10:10,slop_spot_scans_50:50"
    free_daily_limit: int = 2
    timezone: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_credit_packs(raw: str | None) -> dict[str, int]:
    """Parse credit pack product ids and scan counts from env."""
    packs: dict[str, int] = {}
    if raw is None:
        return packs
    for chunk in raw.split(","):
        product_id, _, count = chunk.strip().partition(":")
        product_id = product_id.strip()
        count = count.strip()
        if not product_id or not count.isdigit() or int(count) == 0:
            continue
        packs[product_id] = int(count)
    return packs
