"""
Playback component.

Public API for exclusive single-session playback with demo truncation.
"""

from ._impl import PlaybackController, SignalListener
from .component import mode_for, refusal_signal, resolve_source, state_for
from .models import (
    DEFAULT_AUDIO_URL_TEMPLATE,
    DEFAULT_DEMO_SECONDS,
    PlaybackMode,
    PlaybackResult,
    PlaybackSession,
    PlaybackSignal,
    PlaybackState,
)
from .ports import (
    DemoGatePort,
    EntitlementSourcePort,
    MediaElementPort,
    PageMediaPort,
    TimerHandlePort,
    TimerPort,
)

__all__ = [
    "PlaybackController",
    "SignalListener",
    # Functions
    "mode_for",
    "refusal_signal",
    "resolve_source",
    "state_for",
    # Models
    "DEFAULT_AUDIO_URL_TEMPLATE",
    "DEFAULT_DEMO_SECONDS",
    "PlaybackMode",
    "PlaybackResult",
    "PlaybackSession",
    "PlaybackSignal",
    "PlaybackState",
    # Ports
    "DemoGatePort",
    "EntitlementSourcePort",
    "MediaElementPort",
    "PageMediaPort",
    "TimerHandlePort",
    "TimerPort",
]
