"""Supabase-backed key-value store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from slop_spot.services.storage import KeyValueStore


@dataclass
class SupabaseKeyValueStore(KeyValueStore):
    """Key-value store on a Supabase table with key and value columns."""

    client: Client
    table_name: str = "kv_store"

    def get(self, key: str) -> str | None:
        """Return the stored value for a key."""
        response = (
            self.client.table(self.table_name)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("value")

    def set(self, key: str, value: str) -> None:
        """Insert or replace the value for a key."""
        self.client.table(self.table_name).upsert(
            {
                "key": key,
                "value": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).execute()

    def delete(self, key: str) -> None:
        """Delete a key row."""
        self.client.table(self.table_name).delete().eq("key", key).execute()
