"""
EntitlementStore - local authentication/subscription state.

Provides:
- read() with fallback to the default record on missing/corrupt data
- write() that persists the whole record, then notifies listeners
- has_full_access() / remaining_days() derived from a fresh read
- grant() / revoke() for subscribe and logout flows

Storage faults never reach the caller: reads fail closed (no access),
writes are logged and the notification still goes out so listeners
re-read whatever is actually stored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from audioguide.adapters.clock import SystemClock
from audioguide.core.ports.storage import StorageError

from .component import (
    describe,
    granted_record,
    has_full_access,
    parse_record,
    remaining_days,
    serialize_record,
)
from .events import EntitlementEvents
from .models import DEFAULT_RECORD, EntitlementRecord, EntitlementStatus
from .ports import EntitlementListener, KeyValueStorePort, TimePort

logger = logging.getLogger(__name__)

DEFAULT_ENTITLEMENT_KEY = "userStatus"


class EntitlementStore:
    """Owner of the persisted entitlement record."""

    def __init__(
        self,
        storage: KeyValueStorePort,
        *,
        clock: TimePort | None = None,
        events: EntitlementEvents | None = None,
        key: str = DEFAULT_ENTITLEMENT_KEY,
    ) -> None:
        """
        Initialize the store.

        Args:
            storage: Persistent key/value storage
            clock: Time source (defaults to the system clock)
            events: Shared notification registry (a private one if omitted)
            key: Storage key holding the record
        """
        self._storage = storage
        self._clock = clock or SystemClock()
        self._events = events or EntitlementEvents()
        self._key = key

    @property
    def events(self) -> EntitlementEvents:
        return self._events

    def read(self) -> EntitlementRecord:
        """Current record; the default record if missing or unreadable."""
        try:
            return parse_record(self._storage.get(self._key), self._key)
        except StorageError as e:
            logger.warning("Entitlement read failed, treating as no access: %s", e)
            return DEFAULT_RECORD

    def write(self, record: EntitlementRecord) -> None:
        """Persist the full record and notify listeners."""
        try:
            self._storage.set(self._key, serialize_record(record))
        except StorageError as e:
            logger.warning("Entitlement write failed: %s", e)
        self._events.emit()

    def has_full_access(self) -> bool:
        return has_full_access(self.read(), self._clock.now_utc())

    def remaining_days(self) -> int | None:
        return remaining_days(self.read(), self._clock.now_utc())

    def status(self) -> EntitlementStatus:
        return describe(self.read(), self._clock.now_utc())

    def grant(self, days: int) -> EntitlementRecord:
        record = granted_record(self._clock.now_utc(), days)
        self.write(record)
        logger.info("Entitlement granted until %s", record.subscription_ends)
        return record

    def revoke(self) -> None:
        self.write(DEFAULT_RECORD)
        logger.info("Entitlement revoked")

    def subscribe(self, listener: EntitlementListener) -> Callable[[], None]:
        return self._events.subscribe(listener)
