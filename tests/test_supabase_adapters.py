"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field

from slop_spot.adapters.supabase_kv_store import SupabaseKeyValueStore


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    rows: dict[str, dict[str, object]] = field(default_factory=dict)
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        self.last_filters = []
        return self

    def upsert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        self.last_filters = []
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        if action == "upsert":
            row = dict(self.last_payload)  # type: ignore[arg-type]
            self.rows[str(row["key"])] = row
            return FakeResponse(data=[row])
        keys = [value for column, value in self.last_filters if column == "key"]
        if action == "delete":
            for key in keys:
                self.rows.pop(key, None)
            return FakeResponse(data=[])
        return FakeResponse(data=[self.rows[key] for key in keys if key in self.rows])


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_supabase_store_roundtrip() -> None:
    client = FakeSupabaseClient()
    store = SupabaseKeyValueStore(client)

    assert store.get("entitlements:scan_credits") is None

    store.set("entitlements:scan_credits", "3")
    store.set("entitlements:scan_credits", "2")

    assert store.get("entitlements:scan_credits") == "2"
    payload = client.tables["kv_store"].last_payload
    assert isinstance(payload, dict)
    assert "updated_at" in payload


def test_supabase_store_delete() -> None:
    client = FakeSupabaseClient()
    store = SupabaseKeyValueStore(client, table_name="app_state")
    store.set("scans:history", "[]")

    store.delete("scans:history")

    assert store.get("scans:history") is None
    assert "app_state" in client.tables
