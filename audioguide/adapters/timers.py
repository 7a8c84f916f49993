from __future__ import annotations

import threading
from collections.abc import Callable


class ThreadingTimerHandle:
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()

    @property
    def active(self) -> bool:
        return self._timer.is_alive()


class ThreadingTimerScheduler:
    """Wall-clock one-shot timers on daemon threads."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> ThreadingTimerHandle:
        timer = threading.Timer(delay_seconds, callback)
        timer.daemon = True
        timer.start()
        return ThreadingTimerHandle(timer)
