"""
Demo gate component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from audioguide.core.ports.storage import KeyValueStorePort


class EntitlementReaderPort(Protocol):
    """The single authorization predicate, read fresh on every call."""

    def has_full_access(self) -> bool:
        ...


__all__ = ["EntitlementReaderPort", "KeyValueStorePort"]
