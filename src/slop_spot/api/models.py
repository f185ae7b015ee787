"""Request and response models for the HTTP API."""

from pydantic import BaseModel, Field

from slop_spot.domain.entitlements import (
    EntitlementState,
    PurchaseOutcome,
    ScansRemaining,
)
from slop_spot.domain.scans import ScanResult
from slop_spot.services.scoring import display_score, grade


class ScanRequest(BaseModel):
    """Captured label photo sent by the client."""

    image_base64: str = Field(min_length=1)
    image_uri: str | None = None


class PurchaseRequest(BaseModel):
    """Store purchase forwarded by the client.

    ``receipt`` is omitted when the user dismissed the store sheet.
    """

    product_id: str
    receipt: str | None = None


def remaining_payload(remaining: ScansRemaining) -> dict[str, object]:
    return {
        "unlimited": remaining.unlimited,
        "count": remaining.count,
        "resets_daily": remaining.resets_daily,
        "display": remaining.display,
    }


def entitlement_payload(
    state: EntitlementState, remaining: ScansRemaining, can_scan: bool
) -> dict[str, object]:
    return {
        "can_scan": can_scan,
        "has_premium_access": state.has_premium_access,
        "scan_credits": state.scan_credits,
        "daily_scans_used": state.daily_scans_used,
        "last_reset_date": (
            state.last_reset_date.isoformat() if state.last_reset_date else None
        ),
        "remaining": remaining_payload(remaining),
    }


def scan_payload(scan: ScanResult) -> dict[str, object]:
    """Serialize a scan with display attributes derived from its score."""
    scan_grade = grade(scan.overall_score)
    payload = scan.model_dump(mode="json")
    payload["display_score"] = display_score(scan.overall_score)
    payload["grade_color"] = scan_grade.color
    for ingredient in payload["ingredients"]:
        ingredient["grade_color"] = grade(ingredient["rating"]).color
    return payload


def purchase_payload(outcome: PurchaseOutcome) -> dict[str, object]:
    return {
        "status": outcome.status.value,
        "product_id": outcome.product_id,
        "premium_active": outcome.premium_active,
        "reason": outcome.reason,
    }
