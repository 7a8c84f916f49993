"""
Playback component port definitions.

The controller exclusively owns one MediaElementPort; nothing else may
reach it. PageMediaPort exposes every other audio-producing element so
the controller can silence them before starting playback.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol

from audioguide.components.demo_gate import AccessDecision


class MediaElementPort(Protocol):
    """A single audio output handle."""

    @property
    def paused(self) -> bool:
        ...

    def load(self, src: str) -> None:
        """Set the source and rewind to 0."""
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def seek(self, position: float) -> None:
        ...

    def release(self) -> None:
        """Free the underlying resources; load() may re-acquire them."""
        ...


class PageMediaPort(Protocol):
    """Every audio element currently on the page."""

    def media_elements(self) -> Iterable[MediaElementPort]:
        ...

    def unregister(self, element: MediaElementPort) -> None:
        """Forget an element that no longer produces audio."""
        ...


class TimerHandlePort(Protocol):
    def cancel(self) -> None:
        ...


class TimerPort(Protocol):
    """One-shot wall-clock timers."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandlePort:
        ...


class DemoGatePort(Protocol):
    def decide(self, content_id: str) -> AccessDecision:
        ...

    def mark_consumed(self, content_id: str) -> None:
        ...


class EntitlementSourcePort(Protocol):
    """Entitlement predicate plus change notifications."""

    def has_full_access(self) -> bool:
        ...

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        ...
