"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from slop_spot.adapters.openai_label_client import OpenAILabelAnalysisClient
from slop_spot.adapters.revenuecat_client import HttpxRevenueCatClient
from slop_spot.adapters.supabase_kv_store import SupabaseKeyValueStore
from slop_spot.config import Settings, parse_credit_packs
from slop_spot.services.analysis import LabelAnalysisService
from slop_spot.services.clock import SystemClock
from slop_spot.services.entitlements import EntitlementGate
from slop_spot.services.history import ScanHistoryService
from slop_spot.services.purchases import PurchaseService
from slop_spot.services.scans import ScanService
from slop_spot.services.storage import InMemoryKeyValueStore, KeyValueStore

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    entitlement_gate: EntitlementGate
    history_service: ScanHistoryService
    scan_service: ScanService
    purchase_service: PurchaseService
    close_resources: Callable[[], Awaitable[None]]


def build_store(settings: Settings) -> KeyValueStore:
    """Create the persistent store, in memory when Supabase is not configured."""
    if not settings.supabase_url or not settings.supabase_service_key:
        _logger.warning("Supabase not configured, scan data will not persist")
        return InMemoryKeyValueStore()
    supabase_client = create_client(
        settings.supabase_url, settings.supabase_service_key
    )
    return SupabaseKeyValueStore(supabase_client, table_name=settings.supabase_table)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    store = build_store(resolved_settings)
    clock = SystemClock(resolved_settings.timezone)
    revenuecat_client = HttpxRevenueCatClient.create(
        api_key=resolved_settings.revenuecat_api_key,
        app_user_id=resolved_settings.revenuecat_app_user_id,
        entitlement_id=resolved_settings.premium_entitlement_id,
        base_url=resolved_settings.revenuecat_base_url,
    )
    openai_client = OpenAILabelAnalysisClient.create(resolved_settings.openai_api_key)
    entitlement_gate = EntitlementGate(
        store=store,
        oracle=revenuecat_client,
        clock=clock,
        free_daily_limit=resolved_settings.free_daily_limit,
    )
    history_service = ScanHistoryService(store)
    analysis_service = LabelAnalysisService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
    )
    scan_service = ScanService(
        gate=entitlement_gate,
        analysis_service=analysis_service,
        history_service=history_service,
        clock=clock,
    )
    purchase_service = PurchaseService(
        oracle=revenuecat_client,
        gate=entitlement_gate,
        premium_product_id=resolved_settings.premium_product_id,
        credit_packs=parse_credit_packs(resolved_settings.credit_packs),
    )

    async def close_resources() -> None:
        await revenuecat_client.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        entitlement_gate=entitlement_gate,
        history_service=history_service,
        scan_service=scan_service,
        purchase_service=purchase_service,
        close_resources=close_resources,
    )
