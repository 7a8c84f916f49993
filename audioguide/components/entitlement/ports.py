"""
Entitlement component port definitions.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from audioguide.core.ports.storage import KeyValueStorePort

# Change listeners get no payload; they re-read through the store.
EntitlementListener = Callable[[], None]


class TimePort(Protocol):
    """Port for time operations."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


__all__ = ["EntitlementListener", "KeyValueStorePort", "TimePort"]
