"""
Entitlement change notifications.

Explicit observer registry shared by everything that reacts to
entitlement changes. Notifications carry no payload; listeners re-read
state through EntitlementStore.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from .ports import EntitlementListener

logger = logging.getLogger(__name__)


class EntitlementEvents:
    """Callback registry for the "entitlement changed" notification."""

    def __init__(self) -> None:
        self._listeners: list[EntitlementListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: EntitlementListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A function that removes the listener; calling it twice is harmless
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self) -> None:
        """Notify every listener. A failing listener does not stop the others."""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Entitlement listener %r failed", listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
