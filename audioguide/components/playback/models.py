"""
Playback component models.

Invariants:
- At most one PlaybackSession exists per controller
- A session in DEMO mode always carries a truncation timer until it ends
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from audioguide.components.demo_gate import AccessDecision

from .ports import TimerHandlePort

DEFAULT_DEMO_SECONDS = 10.0
DEFAULT_AUDIO_URL_TEMPLATE = "/audios/{content_id}.mp3"


class PlaybackState(Enum):
    IDLE = "idle"
    PLAYING_FULL = "playing_full"
    PLAYING_DEMO = "playing_demo"
    DEMO_EXPIRED = "demo_expired"

    @property
    def is_playing(self) -> bool:
        return self in (PlaybackState.PLAYING_FULL, PlaybackState.PLAYING_DEMO)


class PlaybackMode(Enum):
    FULL = "full"
    DEMO = "demo"


class PlaybackSignal(Enum):
    """UI-facing signals; both mean "prompt the visitor to upgrade"."""

    UPGRADE_NEEDED = "upgrade_needed"  # demo truncated
    DEMO_ALREADY_USED = "demo_already_used"  # request refused


@dataclass
class PlaybackSession:
    """The single active playback on the page."""

    session_id: int
    content_id: str
    mode: PlaybackMode
    source_url: str
    started_at: datetime
    truncation_timer: TimerHandlePort | None = None


@dataclass(frozen=True)
class PlaybackResult:
    """Outcome of a play request."""

    content_id: str
    decision: AccessDecision
    state: PlaybackState
    started: bool
    signal: PlaybackSignal | None = None
    demo_seconds: float | None = None
    source_url: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "contentId": self.content_id,
            "decision": self.decision.value,
            "state": self.state.value,
            "started": self.started,
            "signal": self.signal.value if self.signal else None,
            "demoSeconds": self.demo_seconds,
            "sourceUrl": self.source_url,
            "error": self.error,
        }
