"""Purchase and restore flows."""

import logging
from dataclasses import dataclass, field

from slop_spot.domain.entitlements import PurchaseOutcome, PurchaseStatus
from slop_spot.domain.errors import EntitlementOracleUnreachable
from slop_spot.services.entitlements import EntitlementGate, EntitlementOracle

_logger = logging.getLogger(__name__)


@dataclass
class PurchaseService:
    """Validates purchases and applies them to the entitlement gate."""

    oracle: EntitlementOracle
    gate: EntitlementGate
    premium_product_id: str
    credit_packs: dict[str, int] = field(default_factory=dict)

    async def purchase(
        self, product_id: str, receipt: str | None
    ) -> PurchaseOutcome:
        """Validate a store purchase; a missing receipt means the user cancelled."""
        if receipt is None:
            return PurchaseOutcome(
                status=PurchaseStatus.CANCELLED, product_id=product_id
            )
        known = product_id == self.premium_product_id or product_id in self.credit_packs
        if not known:
            return PurchaseOutcome(
                status=PurchaseStatus.FAILED,
                product_id=product_id,
                reason="Unknown product",
            )

        try:
            outcome = await self.oracle.purchase(product_id, receipt)
        except EntitlementOracleUnreachable as exc:
            _logger.warning(
                "Purchase of %s could not be validated: %s", product_id, exc
            )
            return PurchaseOutcome(
                status=PurchaseStatus.FAILED, product_id=product_id, reason=str(exc)
            )

        if outcome.status is not PurchaseStatus.SUCCESS:
            if outcome.status is PurchaseStatus.FAILED:
                _logger.warning(
                    "Purchase of %s failed: %s", product_id, outcome.reason
                )
            return outcome

        self.gate.set_premium(outcome.premium_active)
        if product_id in self.credit_packs:
            self.gate.redeem_credits(receipt, self.credit_packs[product_id])
        return outcome

    async def restore(self) -> PurchaseOutcome:
        """Restore earlier purchases and refresh the cached premium status."""
        try:
            outcome = await self.oracle.restore()
        except EntitlementOracleUnreachable as exc:
            _logger.warning("Restore could not reach the entitlement backend: %s", exc)
            return PurchaseOutcome(status=PurchaseStatus.FAILED, reason=str(exc))
        if outcome.status is PurchaseStatus.SUCCESS:
            self.gate.set_premium(outcome.premium_active)
        return outcome
