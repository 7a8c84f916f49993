"""
Dev Media Adapters.

In-process media element and page registry used by the CLI, the control
API and tests. They track playback state and log transitions instead of
producing sound; a real audio backend implements the same ports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class DevMediaElement:
    """
    Simulated audio element.

    Implements MediaElementPort. Records every call in `history` for
    test assertions.
    """

    label: str = "player"
    src: str | None = None
    current_time: float = 0.0
    volume: float = 1.0
    released: bool = False
    history: list[str] = field(default_factory=list)
    _paused: bool = True

    @property
    def paused(self) -> bool:
        return self._paused

    def load(self, src: str) -> None:
        self.src = src
        self.current_time = 0.0
        self.released = False
        self.history.append(f"load:{src}")
        logger.debug("%s: loaded %s", self.label, src)

    def play(self) -> None:
        if self.src is None:
            raise RuntimeError(f"{self.label}: play() called with no source loaded")
        self._paused = False
        self.history.append("play")
        logger.debug("%s: playing %s", self.label, self.src)

    def pause(self) -> None:
        self._paused = True
        self.history.append("pause")

    def seek(self, position: float) -> None:
        self.current_time = max(0.0, position)
        self.history.append(f"seek:{self.current_time:g}")

    def release(self) -> None:
        self._paused = True
        self.src = None
        self.current_time = 0.0
        self.released = True
        self.history.append("release")
        logger.debug("%s: released", self.label)


class AudioPage:
    """Registry of every audio-producing element on the page."""

    def __init__(self) -> None:
        self._elements: list[DevMediaElement] = []

    def register(self, element: DevMediaElement) -> DevMediaElement:
        if element not in self._elements:
            self._elements.append(element)
        return element

    def unregister(self, element: DevMediaElement) -> None:
        if element in self._elements:
            self._elements.remove(element)

    def media_elements(self) -> list[DevMediaElement]:
        return list(self._elements)

    @property
    def playing(self) -> list[DevMediaElement]:
        return [e for e in self._elements if not e.paused]
