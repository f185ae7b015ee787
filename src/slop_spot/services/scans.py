"""Scan pipeline: quota check, analysis, scoring, persistence."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from slop_spot.domain.entitlements import ScansRemaining
from slop_spot.domain.scans import LabelAnalysis, ScanResult
from slop_spot.services.analysis import LabelAnalysisService
from slop_spot.services.clock import Clock
from slop_spot.services.entitlements import EntitlementGate
from slop_spot.services.history import ScanHistoryService
from slop_spot.services.scoring import compute_overall_score, grade_label

# Model-reported scores further than this from the local mean get logged.
SCORE_DRIFT_TOLERANCE = 1.0

# Stored when the client keeps no copy of the photo; history never holds image bytes.
NO_IMAGE_URI = ""

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanOutcome:
    """Result of a scan attempt."""

    scan: ScanResult | None
    remaining: ScansRemaining

    @property
    def denied(self) -> bool:
        """Return True when the quota did not allow the scan."""
        return self.scan is None


@dataclass
class ScanService:
    """Orchestrates one scan from quota check to usage recording."""

    gate: EntitlementGate
    analysis_service: LabelAnalysisService
    history_service: ScanHistoryService
    clock: Clock
    _last_timestamp: datetime | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    async def scan(
        self, image_bytes: bytes, image_uri: str | None = None
    ) -> ScanOutcome:
        """Run a scan if the quota allows it.

        Usage is recorded only after the result is stored. A failed or
        cancelled analysis leaves the quota untouched.
        """
        permit = self.gate.authorize()
        if permit is None:
            _logger.info("Scan denied, no quota left")
            return ScanOutcome(scan=None, remaining=self.gate.scans_remaining())

        analysis = await self.analysis_service.analyze(image_bytes)
        result = self._build_result(analysis, image_uri or NO_IMAGE_URI)
        self.history_service.add_scan(result)
        self.gate.record_scan(permit)
        _logger.info(
            "Scan %s recorded via %s: score=%.1f grade=%s",
            result.id,
            permit.allowance.value,
            result.overall_score,
            result.grade_label,
        )
        return ScanOutcome(scan=result, remaining=self.gate.scans_remaining())

    def _build_result(self, analysis: LabelAnalysis, image_uri: str) -> ScanResult:
        overall_score = compute_overall_score(analysis.ingredients)
        if abs(overall_score - analysis.overall_score) > SCORE_DRIFT_TOLERANCE:
            _logger.info(
                "Model score %.1f differs from ingredient mean %.1f for %s",
                analysis.overall_score,
                overall_score,
                analysis.product_name,
            )
        timestamp = self._next_timestamp()
        return ScanResult(
            id=_millis_id(timestamp),
            product_name=analysis.product_name,
            image_uri=image_uri,
            ingredients=analysis.ingredients,
            overall_score=overall_score,
            grade_label=grade_label(overall_score),
            timestamp=timestamp,
        )

    def _next_timestamp(self) -> datetime:
        """Return a strictly increasing millisecond timestamp."""
        with self._lock:
            now = self.clock.now()
            now = now.replace(microsecond=now.microsecond // 1000 * 1000)
            if self._last_timestamp is not None and now <= self._last_timestamp:
                now = self._last_timestamp + timedelta(milliseconds=1)
            self._last_timestamp = now
            return now


def _millis_id(timestamp: datetime) -> str:
    """Return milliseconds since the epoch as a string id."""
    return str(int(timestamp.timestamp()) * 1000 + timestamp.microsecond // 1000)
