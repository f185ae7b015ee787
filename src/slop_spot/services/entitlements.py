"""Scan quota and entitlement gate."""

import hashlib
import json
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Protocol

from slop_spot.domain.entitlements import (
    EntitlementState,
    EntitlementStatus,
    PurchaseOutcome,
    ScanAllowance,
    ScanPermit,
    ScansRemaining,
)
from slop_spot.domain.errors import EntitlementOracleUnreachable
from slop_spot.services.clock import Clock
from slop_spot.services.storage import KeyValueStore

FREE_DAILY_LIMIT = 2

DAILY_SCANS_KEY = "entitlements:daily_scans_used"
LAST_RESET_KEY = "entitlements:last_reset_date"
SCAN_CREDITS_KEY = "entitlements:scan_credits"
PREMIUM_KEY = "entitlements:premium"
RECEIPTS_KEY = "purchases:receipts"

_logger = logging.getLogger(__name__)


class EntitlementOracle(Protocol):
    """Interface for purchase and subscription validation."""

    async def get_entitlement_status(self) -> EntitlementStatus:
        """Return whether premium access is currently active."""

    async def purchase(self, product_id: str, receipt: str) -> PurchaseOutcome:
        """Validate a store purchase and return its outcome."""

    async def restore(self) -> PurchaseOutcome:
        """Restore previous purchases and return the outcome."""


@dataclass
class EntitlementGate:
    """Decides whether a scan may run and charges usage for completed scans.

    All reads and writes of the persisted counters go through a single lock,
    so every mutation works on the latest stored values.
    """

    store: KeyValueStore
    oracle: EntitlementOracle
    clock: Clock
    free_daily_limit: int = FREE_DAILY_LIMIT
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def refresh_daily_window(self) -> None:
        """Reset the daily counter if the stored reset date is not today."""
        with self._lock:
            self._refresh_locked()

    def state(self) -> EntitlementState:
        """Return the current entitlement state."""
        with self._lock:
            return self._refresh_locked()

    def authorize(self) -> ScanPermit | None:
        """Return a permit describing why a scan is allowed, or None."""
        with self._lock:
            current = self._refresh_locked()
        allowance = _allowance_for(current, self.free_daily_limit)
        if allowance is None:
            return None
        return ScanPermit(allowance=allowance)

    def can_scan(self) -> bool:
        """Return True when a scan is currently permitted."""
        return self.authorize() is not None

    def record_scan(self, permit: ScanPermit) -> EntitlementState:
        """Charge a successfully completed scan against the permit's allowance."""
        with self._lock:
            current = self._refresh_locked()
            allowance = permit.allowance
            if allowance is ScanAllowance.PREMIUM:
                return current
            if allowance is ScanAllowance.CREDIT:
                if current.scan_credits > 0:
                    updated = replace(current, scan_credits=current.scan_credits - 1)
                    self.store.set(SCAN_CREDITS_KEY, str(updated.scan_credits))
                    return updated
                _logger.warning(
                    "Scan credit already consumed by another scan, charging daily quota"
                )
            updated = replace(current, daily_scans_used=current.daily_scans_used + 1)
            self.store.set(DAILY_SCANS_KEY, str(updated.daily_scans_used))
            return updated

    def scans_remaining(self) -> ScansRemaining:
        """Return the remaining scans view without changing any counters."""
        with self._lock:
            current = self._refresh_locked()
        if current.has_premium_access:
            return ScansRemaining(unlimited=True, count=None, resets_daily=False)
        if current.scan_credits > 0:
            return ScansRemaining(
                unlimited=False, count=current.scan_credits, resets_daily=False
            )
        remaining = max(0, self.free_daily_limit - current.daily_scans_used)
        return ScansRemaining(unlimited=False, count=remaining, resets_daily=True)

    def add_credits(self, count: int) -> EntitlementState:
        """Add purchased scan credits to the balance."""
        if count <= 0:
            raise ValueError("Credit count must be positive")
        with self._lock:
            current = self._refresh_locked()
            updated = replace(current, scan_credits=current.scan_credits + count)
            self.store.set(SCAN_CREDITS_KEY, str(updated.scan_credits))
        _logger.info("Added %s scan credits, balance=%s", count, updated.scan_credits)
        return updated

    def redeem_credits(self, receipt: str, count: int) -> bool:
        """Add a credit pack once per receipt.

        Returns False without changing the balance when the receipt was
        already redeemed.
        """
        if count <= 0:
            raise ValueError("Credit count must be positive")
        digest = hashlib.sha256(receipt.encode()).hexdigest()
        with self._lock:
            redeemed = self._read_receipts()
            if digest in redeemed:
                _logger.info(
                    "Receipt %s already redeemed, no credits added", digest[:12]
                )
                return False
            current = self._refresh_locked()
            balance = current.scan_credits + count
            self.store.set(SCAN_CREDITS_KEY, str(balance))
            self.store.set(RECEIPTS_KEY, json.dumps([*redeemed, digest]))
        _logger.info("Redeemed %s scan credits, balance=%s", count, balance)
        return True

    def set_premium(self, active: bool) -> None:
        """Cache the latest premium verdict from the entitlement backend."""
        with self._lock:
            self.store.set(PREMIUM_KEY, "true" if active else "false")

    async def refresh_premium(self) -> bool:
        """Refresh premium status, keeping the cached value when unreachable."""
        try:
            status = await self.oracle.get_entitlement_status()
        except EntitlementOracleUnreachable as exc:
            cached = self.state().has_premium_access
            _logger.warning(
                "Entitlement oracle unreachable, keeping cached premium=%s: %s",
                cached,
                exc,
            )
            return cached
        self.set_premium(status.premium_active)
        return status.premium_active

    def _refresh_locked(self) -> EntitlementState:
        current = self._load()
        today = self.clock.today()
        if current.last_reset_date == today:
            return current
        _logger.info(
            "Resetting daily scans (last reset %s, today %s)",
            current.last_reset_date,
            today,
        )
        self.store.set(DAILY_SCANS_KEY, "0")
        self.store.set(LAST_RESET_KEY, today.isoformat())
        return replace(current, daily_scans_used=0, last_reset_date=today)

    def _load(self) -> EntitlementState:
        return EntitlementState(
            daily_scans_used=self._read_count(DAILY_SCANS_KEY),
            last_reset_date=self._read_date(LAST_RESET_KEY),
            scan_credits=self._read_count(SCAN_CREDITS_KEY),
            has_premium_access=self._read_flag(PREMIUM_KEY),
        )

    def _read_count(self, key: str) -> int:
        raw = self.store.get(key)
        if raw is None:
            return 0
        try:
            value = int(raw)
        except ValueError:
            value = -1
        if value < 0:
            self._discard(key, raw)
            return 0
        return value

    def _read_date(self, key: str) -> date | None:
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError:
            self._discard(key, raw)
            return None

    def _read_flag(self, key: str) -> bool:
        raw = self.store.get(key)
        if raw is None:
            return False
        if raw not in {"true", "false"}:
            self._discard(key, raw)
            return False
        return raw == "true"

    def _read_receipts(self) -> list[str]:
        raw = self.store.get(RECEIPTS_KEY)
        if raw is None:
            return []
        try:
            value = json.loads(raw)
        except ValueError:
            value = None
        if not isinstance(value, list) or not all(
            isinstance(item, str) for item in value
        ):
            self._discard(RECEIPTS_KEY, raw)
            return []
        return value

    def _discard(self, key: str, raw: str) -> None:
        _logger.warning("Discarding unreadable value for %s: %r", key, raw)
        self.store.delete(key)


def _allowance_for(
    state: EntitlementState, free_daily_limit: int
) -> ScanAllowance | None:
    """Pick the first allowance that permits a scan."""
    if state.has_premium_access:
        return ScanAllowance.PREMIUM
    if state.scan_credits > 0:
        return ScanAllowance.CREDIT
    if state.daily_scans_used < free_daily_limit:
        return ScanAllowance.FREE
    return None
