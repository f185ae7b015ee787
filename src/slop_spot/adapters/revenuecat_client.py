"""RevenueCat REST API client used as the entitlement oracle."""

from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from slop_spot.domain.entitlements import (
    EntitlementStatus,
    PurchaseOutcome,
    PurchaseStatus,
)
from slop_spot.domain.errors import EntitlementOracleUnreachable
from slop_spot.services.entitlements import EntitlementOracle

SERVER_ERROR = 500


@dataclass
class HttpxRevenueCatClient(EntitlementOracle):
    """HTTPX-backed RevenueCat client for a single app user."""

    api_key: str
    app_user_id: str
    entitlement_id: str
    base_url: str
    http_client: httpx.AsyncClient
    platform: str = "ios"

    @classmethod
    def create(
        cls, api_key: str, app_user_id: str, entitlement_id: str, base_url: str
    ) -> "HttpxRevenueCatClient":
        """Create a RevenueCat client with a managed httpx session."""
        return cls(
            api_key=api_key,
            app_user_id=app_user_id,
            entitlement_id=entitlement_id,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
        )

    async def get_entitlement_status(self) -> EntitlementStatus:
        """Fetch the subscriber and check the premium entitlement."""
        response = await self._send("GET", f"/subscribers/{self.app_user_id}")
        if response.is_error:
            raise EntitlementOracleUnreachable(
                f"RevenueCat subscriber lookup returned {response.status_code}"
            )
        return EntitlementStatus(
            premium_active=_read_premium(response, self.entitlement_id)
        )

    async def purchase(self, product_id: str, receipt: str) -> PurchaseOutcome:
        """Post a store receipt for validation."""
        response = await self._send(
            "POST",
            "/receipts",
            json={
                "app_user_id": self.app_user_id,
                "fetch_token": receipt,
                "product_id": product_id,
            },
        )
        if response.is_error:
            return PurchaseOutcome(
                status=PurchaseStatus.FAILED,
                product_id=product_id,
                reason=_error_message(response),
            )
        return PurchaseOutcome(
            status=PurchaseStatus.SUCCESS,
            product_id=product_id,
            premium_active=_read_premium(response, self.entitlement_id),
        )

    async def restore(self) -> PurchaseOutcome:
        """Re-read the subscriber's purchases."""
        status = await self.get_entitlement_status()
        return PurchaseOutcome(
            status=PurchaseStatus.SUCCESS, premium_active=status.premium_active
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _send(
        self, method: str, path: str, json: dict[str, object] | None = None
    ) -> httpx.Response:
        """Send a request, treating transport errors and 5xx as unreachable."""
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "X-Platform": self.platform,
                },
                json=json,
                timeout=15,
            )
        except httpx.TransportError as exc:
            raise EntitlementOracleUnreachable(
                f"RevenueCat request failed: {exc}"
            ) from exc
        if response.status_code >= SERVER_ERROR:
            raise EntitlementOracleUnreachable(
                f"RevenueCat returned {response.status_code}"
            )
        return response


def _read_premium(response: httpx.Response, entitlement_id: str) -> bool:
    """Parse a subscriber body, treating an unreadable one as unreachable."""
    try:
        return _premium_active(response.json(), entitlement_id)
    except (AttributeError, TypeError, ValueError) as exc:
        raise EntitlementOracleUnreachable(
            f"RevenueCat returned an unreadable subscriber body: {exc}"
        ) from exc


def _premium_active(payload: dict[str, object], entitlement_id: str) -> bool:
    """Return True when the entitlement exists and has not expired."""
    subscriber = payload.get("subscriber") or {}
    entitlements = subscriber.get("entitlements") or {}
    entitlement = entitlements.get(entitlement_id)
    if not entitlement:
        return False
    expires_date = entitlement.get("expires_date")
    if expires_date is None:
        return True
    return datetime.fromisoformat(expires_date) > datetime.now(tz=UTC)


def _error_message(response: httpx.Response) -> str:
    """Extract the error message from a RevenueCat error body."""
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    message = payload.get("message") if isinstance(payload, dict) else None
    return str(message) if message else f"HTTP {response.status_code}"
