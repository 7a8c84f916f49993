"""
Playback component.

Pure transition rules for the playback state machine.
"""

from __future__ import annotations

from audioguide.components.demo_gate import AccessDecision

from .models import PlaybackMode, PlaybackSignal, PlaybackState


def mode_for(decision: AccessDecision) -> PlaybackMode | None:
    """Playback mode a decision leads to; None when playback is refused."""
    if decision is AccessDecision.FULL:
        return PlaybackMode.FULL
    if decision is AccessDecision.DEMO_ALLOWED:
        return PlaybackMode.DEMO
    return None


def state_for(mode: PlaybackMode | None) -> PlaybackState:
    if mode is PlaybackMode.FULL:
        return PlaybackState.PLAYING_FULL
    if mode is PlaybackMode.DEMO:
        return PlaybackState.PLAYING_DEMO
    return PlaybackState.IDLE


def refusal_signal(decision: AccessDecision) -> PlaybackSignal | None:
    if decision is AccessDecision.DEMO_EXHAUSTED:
        return PlaybackSignal.DEMO_ALREADY_USED
    return None


def resolve_source(template: str, content_id: str) -> str:
    """Build the media URL for a content item from the URL template."""
    if not content_id:
        raise ValueError("content_id is required")
    return template.format(content_id=content_id)
