"""
Demo gate component models.
"""

from __future__ import annotations

from enum import Enum


class AccessDecision(Enum):
    """Outcome of a per-content access check."""

    FULL = "full"
    DEMO_ALLOWED = "demo_allowed"
    DEMO_EXHAUSTED = "demo_exhausted"

    @property
    def allows_playback(self) -> bool:
        return self is not AccessDecision.DEMO_EXHAUSTED


# Stored ledger value for a consumed demo
CONSUMED_FLAG = "true"

DEFAULT_DEMO_KEY_PREFIX = "demoPlayed_"
