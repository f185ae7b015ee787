"""Domain models for scan quota and entitlements."""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class ScanAllowance(str, Enum):
    """Reason a scan was permitted, in precedence order."""

    PREMIUM = "premium"
    CREDIT = "credit"
    FREE = "free"


@dataclass(frozen=True)
class ScanPermit:
    """Permission to run one scan, handed back when the scan is recorded."""

    allowance: ScanAllowance


@dataclass(frozen=True)
class EntitlementState:
    """Persisted quota counters and cached premium status."""

    daily_scans_used: int
    last_reset_date: date | None
    scan_credits: int
    has_premium_access: bool


@dataclass(frozen=True)
class ScansRemaining:
    """Read-only view of how many scans are left."""

    unlimited: bool
    count: int | None
    resets_daily: bool

    @property
    def display(self) -> str:
        """Return the user-facing summary."""
        if self.unlimited:
            return "Unlimited"
        if not self.resets_daily:
            noun = "credit" if self.count == 1 else "credits"
            return f"{self.count} {noun}"
        return f"{self.count} free today"


@dataclass(frozen=True)
class EntitlementStatus:
    """Verdict returned by the entitlement backend."""

    premium_active: bool


class PurchaseStatus(str, Enum):
    """Outcome of a purchase or restore attempt."""

    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class PurchaseOutcome:
    """Result of a purchase or restore flow."""

    status: PurchaseStatus
    product_id: str | None = None
    premium_active: bool = False
    reason: str | None = None
