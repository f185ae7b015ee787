"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

import pytest

from slop_spot.config import Settings
from slop_spot.containers import AppContainer
from slop_spot.domain.entitlements import (
    EntitlementStatus,
    PurchaseOutcome,
    PurchaseStatus,
)
from slop_spot.domain.errors import EntitlementOracleUnreachable
from slop_spot.services.analysis import LabelAnalysisClient, LabelAnalysisService
from slop_spot.services.clock import Clock
from slop_spot.services.entitlements import EntitlementGate, EntitlementOracle
from slop_spot.services.history import ScanHistoryService
from slop_spot.services.purchases import PurchaseService
from slop_spot.services.scans import ScanService
from slop_spot.services.storage import InMemoryKeyValueStore

PREMIUM_PRODUCT_ID = "slop_spot_lifetime"
CREDIT_PACKS = {"slop_spot_scans_10": 10}


@dataclass
class FixedClock(Clock):
    """Clock frozen at a settable instant."""

    current: datetime = field(
        default_factory=lambda: datetime(2024, 5, 1, 9, 30, tzinfo=UTC)
    )

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


@dataclass
class FakeLabelAnalysisClient(LabelAnalysisClient):
    """Fake label analysis client returning a fixed payload."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "product_name": "Cheesy Puffs",
            "ingredients": [
                {
                    "name": "Corn meal",
                    "rating": 80,
                    "health_impact": "Neutral",
                    "explanation": "Whole grain corn.",
                    "citations": [],
                },
                {
                    "name": "Vegetable oil",
                    "rating": 60,
                    "health_impact": "Moderate",
                    "explanation": "High in omega-6 fats.",
                    "citations": [
                        {
                            "title": "Dietary fats",
                            "url": "https://www.who.int/fats",
                            "source": "WHO",
                        }
                    ],
                },
                {
                    "name": "Water",
                    "rating": 100,
                    "health_impact": "Positive",
                    "explanation": "Harmless.",
                    "citations": [],
                },
            ],
            "overall_score": 80,
        }
    )
    calls: list[dict[str, object]] = field(default_factory=list)
    delay_seconds: float = 0.0
    error: Exception | None = None

    async def analyze(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.calls.append({"model": model, "image_data_url": image_data_url})
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.payload


@dataclass
class FakeEntitlementOracle(EntitlementOracle):
    """Fake entitlement backend with switchable reachability."""

    premium_active: bool = False
    reachable: bool = True
    purchase_status: PurchaseStatus = PurchaseStatus.SUCCESS
    purchases: list[tuple[str, str]] = field(default_factory=list)

    async def get_entitlement_status(self) -> EntitlementStatus:
        self._check_reachable()
        return EntitlementStatus(premium_active=self.premium_active)

    async def purchase(self, product_id: str, receipt: str) -> PurchaseOutcome:
        self._check_reachable()
        self.purchases.append((product_id, receipt))
        if self.purchase_status is not PurchaseStatus.SUCCESS:
            return PurchaseOutcome(
                status=self.purchase_status,
                product_id=product_id,
                reason="Receipt rejected",
            )
        if product_id == PREMIUM_PRODUCT_ID:
            self.premium_active = True
        return PurchaseOutcome(
            status=PurchaseStatus.SUCCESS,
            product_id=product_id,
            premium_active=self.premium_active,
        )

    async def restore(self) -> PurchaseOutcome:
        self._check_reachable()
        return PurchaseOutcome(
            status=PurchaseStatus.SUCCESS, premium_active=self.premium_active
        )

    def _check_reachable(self) -> None:
        if not self.reachable:
            raise EntitlementOracleUnreachable("network down")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="eyJhbGciOiJIUzI1NiJ9.eyJyb2xlIjoic2VydmljZSJ9.c2ln",
        openai_api_key="openai-key",
        revenuecat_api_key="revenuecat-key",
        revenuecat_app_user_id="user-1",
    )


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def oracle() -> FakeEntitlementOracle:
    return FakeEntitlementOracle()


@pytest.fixture
def analysis_client() -> FakeLabelAnalysisClient:
    return FakeLabelAnalysisClient()


@pytest.fixture
def gate(
    store: InMemoryKeyValueStore, oracle: FakeEntitlementOracle, clock: FixedClock
) -> EntitlementGate:
    return EntitlementGate(store=store, oracle=oracle, clock=clock)


@pytest.fixture
def history_service(store: InMemoryKeyValueStore) -> ScanHistoryService:
    return ScanHistoryService(store)


@pytest.fixture
def scan_service(
    gate: EntitlementGate,
    history_service: ScanHistoryService,
    analysis_client: FakeLabelAnalysisClient,
    clock: FixedClock,
) -> ScanService:
    return ScanService(
        gate=gate,
        analysis_service=LabelAnalysisService(
            client=analysis_client, model="gpt-5.2", reasoning_effort=None
        ),
        history_service=history_service,
        clock=clock,
    )


@pytest.fixture
def purchase_service(
    gate: EntitlementGate, oracle: FakeEntitlementOracle
) -> PurchaseService:
    return PurchaseService(
        oracle=oracle,
        gate=gate,
        premium_product_id=PREMIUM_PRODUCT_ID,
        credit_packs=dict(CREDIT_PACKS),
    )


@pytest.fixture
def container(
    settings: Settings,
    gate: EntitlementGate,
    history_service: ScanHistoryService,
    scan_service: ScanService,
    purchase_service: PurchaseService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        entitlement_gate=gate,
        history_service=history_service,
        scan_service=scan_service,
        purchase_service=purchase_service,
        close_resources=close_resources,
    )
