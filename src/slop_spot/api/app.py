"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status

from slop_spot.api.models import (
    PurchaseRequest,
    ScanRequest,
    entitlement_payload,
    purchase_payload,
    remaining_payload,
    scan_payload,
)
from slop_spot.app_logging import configure_logging
from slop_spot.containers import AppContainer
from slop_spot.domain.errors import InferenceError, InputContractViolation
from slop_spot.services.history import ScanSort


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.entitlement_gate.refresh_premium()
        except Exception:
            logger.exception("Failed to refresh premium status on startup")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/entitlements")
    async def get_entitlements(request: Request) -> dict[str, object]:
        """Return quota counters and the scan decision."""
        gate = _container(request).entitlement_gate
        return entitlement_payload(
            gate.state(), gate.scans_remaining(), gate.can_scan()
        )

    @app.post("/entitlements/refresh")
    async def refresh_entitlements(request: Request) -> dict[str, object]:
        """Re-check premium status with the entitlement backend."""
        gate = _container(request).entitlement_gate
        await gate.refresh_premium()
        return entitlement_payload(
            gate.state(), gate.scans_remaining(), gate.can_scan()
        )

    @app.post("/scans")
    async def create_scan(payload: ScanRequest, request: Request) -> dict[str, object]:
        """Analyze a label photo if the quota allows it."""
        try:
            image_bytes = base64.b64decode(payload.image_base64, validate=True)
        except binascii.Error as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="image_base64 is not valid base64",
            ) from exc

        try:
            outcome = await _container(request).scan_service.scan(
                image_bytes, image_uri=payload.image_uri
            )
        except InputContractViolation as exc:
            logger.warning("Rejected analysis: %s", exc)
            raise HTTPException(
                status_code=422,
                detail="The analysis returned invalid ingredient ratings.",
            ) from exc
        except InferenceError as exc:
            logger.exception("Label analysis failed")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Label analysis is unavailable, please retake the photo.",
            ) from exc

        if outcome.scan is None:
            raise HTTPException(
                status_code=status.HTTP_402_PAYMENT_REQUIRED,
                detail={
                    "message": "Daily free scans used up.",
                    "remaining": remaining_payload(outcome.remaining),
                },
            )
        return {
            "scan": scan_payload(outcome.scan),
            "remaining": remaining_payload(outcome.remaining),
        }

    @app.get("/scans")
    async def list_scans(
        request: Request,
        sort: ScanSort = ScanSort.DATE,
        favorites_only: bool = False,
    ) -> dict[str, object]:
        """Return the scan history."""
        scans = _container(request).history_service.list_scans(
            sort=sort, favorites_only=favorites_only
        )
        return {"scans": [scan_payload(scan) for scan in scans]}

    @app.get("/scans/{scan_id}")
    async def get_scan(scan_id: str, request: Request) -> dict[str, object]:
        """Return a single scan."""
        scan = _container(request).history_service.get_scan(scan_id)
        if scan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return scan_payload(scan)

    @app.delete("/scans/{scan_id}")
    async def delete_scan(scan_id: str, request: Request) -> dict[str, str]:
        """Remove a scan from the history."""
        if not _container(request).history_service.delete_scan(scan_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return {"status": "deleted"}

    @app.post("/scans/{scan_id}/favorite")
    async def toggle_favorite(scan_id: str, request: Request) -> dict[str, object]:
        """Flip the favorite flag of a scan."""
        scan = _container(request).history_service.toggle_favorite(scan_id)
        if scan is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return scan_payload(scan)

    @app.post("/purchases")
    async def purchase(payload: PurchaseRequest, request: Request) -> dict[str, object]:
        """Validate a store purchase."""
        outcome = await _container(request).purchase_service.purchase(
            payload.product_id, payload.receipt
        )
        return purchase_payload(outcome)

    @app.post("/purchases/restore")
    async def restore(request: Request) -> dict[str, object]:
        """Restore earlier purchases."""
        outcome = await _container(request).purchase_service.restore()
        return purchase_payload(outcome)

    return app


def _container(request: Request) -> AppContainer:
    return request.app.state.container
