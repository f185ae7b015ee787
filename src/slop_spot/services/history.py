"""Scan history persisted in the key-value store."""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum

from pydantic import TypeAdapter, ValidationError

from slop_spot.domain.scans import ScanResult
from slop_spot.services.storage import KeyValueStore

HISTORY_KEY = "scans:history"

_HISTORY_ADAPTER = TypeAdapter(list[ScanResult])

_logger = logging.getLogger(__name__)


class ScanSort(str, Enum):
    """Orderings offered for the history list."""

    DATE = "date"
    NAME = "name"
    RATING = "rating"


@dataclass
class ScanHistoryService:
    """Service owning the stored list of scan results, newest first."""

    store: KeyValueStore
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def list_scans(
        self, sort: ScanSort = ScanSort.DATE, favorites_only: bool = False
    ) -> list[ScanResult]:
        """Return scans in the requested order."""
        with self._lock:
            scans = self._load()
        if favorites_only:
            scans = [scan for scan in scans if scan.is_favorite]
        if sort is ScanSort.NAME:
            return sorted(scans, key=lambda scan: scan.product_name.casefold())
        if sort is ScanSort.RATING:
            return sorted(scans, key=lambda scan: scan.overall_score, reverse=True)
        return sorted(scans, key=lambda scan: scan.timestamp, reverse=True)

    def get_scan(self, scan_id: str) -> ScanResult | None:
        """Return a scan by id, if present."""
        with self._lock:
            scans = self._load()
        return next((scan for scan in scans if scan.id == scan_id), None)

    def add_scan(self, scan: ScanResult) -> None:
        """Prepend a new scan to the history."""
        with self._lock:
            scans = self._load()
            if any(existing.id == scan.id for existing in scans):
                raise ValueError(f"Scan id already exists: {scan.id}")
            self._save([scan, *scans])

    def delete_scan(self, scan_id: str) -> bool:
        """Remove a scan and return True when something was deleted."""
        with self._lock:
            scans = self._load()
            remaining = [scan for scan in scans if scan.id != scan_id]
            if len(remaining) == len(scans):
                return False
            self._save(remaining)
            return True

    def toggle_favorite(self, scan_id: str) -> ScanResult | None:
        """Flip the favorite flag of a scan and return the updated record."""
        with self._lock:
            scans = self._load()
            for index, scan in enumerate(scans):
                if scan.id != scan_id:
                    continue
                updated = scan.model_copy(update={"is_favorite": not scan.is_favorite})
                scans[index] = updated
                self._save(scans)
                return updated
            return None

    def _load(self) -> list[ScanResult]:
        raw = self.store.get(HISTORY_KEY)
        if not raw:
            return []
        try:
            return _HISTORY_ADAPTER.validate_json(raw)
        except ValidationError:
            _logger.exception("Discarding unreadable scan history")
            self.store.delete(HISTORY_KEY)
            return []

    def _save(self, scans: list[ScanResult]) -> None:
        self.store.set(HISTORY_KEY, _HISTORY_ADAPTER.dump_json(scans).decode("utf-8"))
