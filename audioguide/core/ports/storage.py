"""
Local Key/Value Storage Interface.

Protocol-based interface for the client's persistent key/value storage
(the local-storage analog). Values are strings; callers own serialization.

Implementations:
- InMemoryKeyValueStore: process memory (tests, ephemeral clients)
- JsonFileKeyValueStore: single JSON document on disk
- SQLiteKeyValueStore: one row per key

Invariants:
- A successful set() is visible to the next get() from any instance
  pointing at the same backing store (write-through, no batching)
- Failures raise StorageError; adapters never return partial values
"""

from __future__ import annotations

from typing import Protocol


class KeyValueStorePort(Protocol):
    """Persistent string key/value storage."""

    def get(self, key: str) -> str | None:
        """
        Read a value.

        Returns:
            The stored string, or None if the key is absent

        Raises:
            StorageError: If the backing store cannot be read
        """
        ...

    def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            StorageError: If the backing store cannot be written
        """
        ...

    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if removed, False if it didn't exist
        """
        ...

    def keys(self, prefix: str = "") -> list[str]:
        """List keys starting with prefix, sorted."""
        ...


class StorageError(Exception):
    """Base class for local storage errors."""


class CorruptRecordError(StorageError):
    """Raised when a stored value cannot be decoded into its record type."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupt record under '{key}': {reason}")
