"""Key-value storage abstractions."""

from dataclasses import dataclass
from typing import Protocol


class KeyValueStore(Protocol):
    """Persistent string key-value store."""

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""

    def set(self, key: str, value: str) -> None:
        """Store a value under a key."""

    def delete(self, key: str) -> None:
        """Remove a key if present."""


@dataclass
class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store used for tests and local runs."""

    _values: dict[str, str]

    def __init__(self, values: dict[str, str] | None = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        """Store a value."""
        self._values[key] = value

    def delete(self, key: str) -> None:
        """Remove a key."""
        self._values.pop(key, None)
