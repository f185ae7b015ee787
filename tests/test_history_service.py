"""Tests for scan history service."""

from datetime import UTC, datetime, timedelta

from slop_spot.domain.scans import Ingredient, ScanResult
from slop_spot.services.history import HISTORY_KEY, ScanHistoryService, ScanSort
from slop_spot.services.scoring import grade_label
from slop_spot.services.storage import InMemoryKeyValueStore

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _scan(scan_id: str, name: str, score: float, minutes: int) -> ScanResult:
    return ScanResult(
        id=scan_id,
        product_name=name,
        image_uri=f"file:///scans/{scan_id}.jpg",
        ingredients=[Ingredient(name="Salt", rating=score)],
        overall_score=score,
        grade_label=grade_label(score),
        timestamp=BASE_TIME + timedelta(minutes=minutes),
    )


def test_add_scan_prepends_and_persists(store: InMemoryKeyValueStore) -> None:
    service = ScanHistoryService(store)
    service.add_scan(_scan("1", "Granola", 75, 0))
    service.add_scan(_scan("2", "Cola", 20, 5))

    reloaded = ScanHistoryService(store).list_scans()

    assert [scan.id for scan in reloaded] == ["2", "1"]
    assert reloaded[0].timestamp == BASE_TIME + timedelta(minutes=5)


def test_list_scans_sorts_by_name_and_rating(
    history_service: ScanHistoryService,
) -> None:
    history_service.add_scan(_scan("1", "granola", 75, 0))
    history_service.add_scan(_scan("2", "Cola", 20, 5))
    history_service.add_scan(_scan("3", "Apple chips", 92, 10))

    by_name = history_service.list_scans(sort=ScanSort.NAME)
    by_rating = history_service.list_scans(sort=ScanSort.RATING)

    assert [scan.product_name for scan in by_name] == ["Apple chips", "Cola", "granola"]
    assert [scan.overall_score for scan in by_rating] == [92, 75, 20]


def test_toggle_favorite_replaces_record(history_service: ScanHistoryService) -> None:
    history_service.add_scan(_scan("1", "Granola", 75, 0))
    history_service.add_scan(_scan("2", "Cola", 20, 5))

    updated = history_service.toggle_favorite("1")

    assert updated is not None
    assert updated.is_favorite is True
    favorites = history_service.list_scans(favorites_only=True)
    assert [scan.id for scan in favorites] == ["1"]

    history_service.toggle_favorite("1")
    assert history_service.list_scans(favorites_only=True) == []


def test_toggle_favorite_unknown_scan(history_service: ScanHistoryService) -> None:
    assert history_service.toggle_favorite("missing") is None


def test_delete_scan(history_service: ScanHistoryService) -> None:
    history_service.add_scan(_scan("1", "Granola", 75, 0))

    assert history_service.delete_scan("1") is True
    assert history_service.delete_scan("1") is False
    assert history_service.get_scan("1") is None


def test_stored_grade_label_matches_score(
    history_service: ScanHistoryService,
) -> None:
    history_service.add_scan(_scan("1", "Granola", 49, 0))

    scan = history_service.get_scan("1")

    assert scan is not None
    assert scan.grade_label == grade_label(scan.overall_score) == "Slop"


def test_corrupt_history_is_discarded(store: InMemoryKeyValueStore) -> None:
    store.set(HISTORY_KEY, "{not json")
    service = ScanHistoryService(store)

    assert service.list_scans() == []
    assert store.get(HISTORY_KEY) is None

    service.add_scan(_scan("1", "Granola", 75, 0))
    assert len(service.list_scans()) == 1


def test_non_list_history_is_discarded(store: InMemoryKeyValueStore) -> None:
    store.set(HISTORY_KEY, '{"id": "1"}')

    assert ScanHistoryService(store).list_scans() == []
