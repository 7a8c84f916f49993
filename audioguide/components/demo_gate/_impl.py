"""
DemoGate - per-content demo access.

Key behaviors:
- decide() reads entitlement and the ledger fresh every time and never
  writes; deciding twice gives the same answer
- mark_consumed() is write-through, so a reload sees it
- Ledger entries are only erased by an explicit reset()

Ledger read failures count as "not consumed" so a broken storage does not
lock visitors out of demos; ids marked during this gate's lifetime are
remembered in memory and stay consumed even if the write failed.
"""

from __future__ import annotations

import logging

from audioguide.core.ports.storage import StorageError

from .component import (
    CONSUMED_FLAG,
    content_id_from_key,
    decide_access,
    is_consumed_flag,
    ledger_key,
)
from .models import DEFAULT_DEMO_KEY_PREFIX, AccessDecision
from .ports import EntitlementReaderPort, KeyValueStorePort

logger = logging.getLogger(__name__)


class DemoGate:
    """Access decisions plus the consumed-demo ledger."""

    def __init__(
        self,
        entitlements: EntitlementReaderPort,
        storage: KeyValueStorePort,
        *,
        key_prefix: str = DEFAULT_DEMO_KEY_PREFIX,
    ) -> None:
        self._entitlements = entitlements
        self._storage = storage
        self._prefix = key_prefix
        self._marked_this_session: set[str] = set()

    def decide(self, content_id: str) -> AccessDecision:
        decision = decide_access(
            self._entitlements.has_full_access(),
            self.is_consumed(content_id),
        )
        logger.debug("Access decision for %s: %s", content_id, decision.value)
        return decision

    def is_consumed(self, content_id: str) -> bool:
        if content_id in self._marked_this_session:
            return True
        key = ledger_key(self._prefix, content_id)
        try:
            return is_consumed_flag(self._storage.get(key))
        except StorageError as e:
            logger.warning("Demo ledger read failed for %s: %s", content_id, e)
            return False

    def mark_consumed(self, content_id: str) -> None:
        key = ledger_key(self._prefix, content_id)
        self._marked_this_session.add(content_id)
        try:
            self._storage.set(key, CONSUMED_FLAG)
        except StorageError as e:
            logger.warning("Demo ledger write failed for %s: %s", content_id, e)

    def consumed_ids(self) -> list[str]:
        ids = set(self._marked_this_session)
        try:
            for key in self._storage.keys(self._prefix):
                content_id = content_id_from_key(self._prefix, key)
                if content_id and is_consumed_flag(self._storage.get(key)):
                    ids.add(content_id)
        except StorageError as e:
            logger.warning("Demo ledger listing failed: %s", e)
        return sorted(ids)

    def reset(self, content_id: str | None = None) -> int:
        """
        Erase ledger entries.

        Args:
            content_id: One item to reset, or None for the whole ledger

        Returns:
            Number of entries removed
        """
        targets = [content_id] if content_id is not None else self.consumed_ids()
        removed = 0
        for target in targets:
            self._marked_this_session.discard(target)
            try:
                if self._storage.delete(ledger_key(self._prefix, target)):
                    removed += 1
            except StorageError as e:
                logger.warning("Demo ledger reset failed for %s: %s", target, e)
        logger.info("Demo ledger reset: %d entries removed", removed)
        return removed
