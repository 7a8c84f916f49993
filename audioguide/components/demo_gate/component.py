"""
Demo gate component.

Pure decision logic and ledger key handling.
"""

from __future__ import annotations

from .models import CONSUMED_FLAG, AccessDecision


def decide_access(has_full_access: bool, demo_consumed: bool) -> AccessDecision:
    """
    Map entitlement and ledger state to a decision.

    Full access wins; otherwise one demo per content item.
    """
    if has_full_access:
        return AccessDecision.FULL
    if not demo_consumed:
        return AccessDecision.DEMO_ALLOWED
    return AccessDecision.DEMO_EXHAUSTED


def ledger_key(prefix: str, content_id: str) -> str:
    """Deterministic storage key for a content item's demo flag."""
    if not content_id:
        raise ValueError("content_id is required")
    return f"{prefix}{content_id}"


def content_id_from_key(prefix: str, key: str) -> str | None:
    if not key.startswith(prefix) or len(key) == len(prefix):
        return None
    return key[len(prefix):]


def is_consumed_flag(raw: str | None) -> bool:
    """Any non-empty stored value other than "false" counts as consumed."""
    if raw is None:
        return False
    return raw.strip().lower() not in ("", "false")


__all__ = [
    "CONSUMED_FLAG",
    "content_id_from_key",
    "decide_access",
    "is_consumed_flag",
    "ledger_key",
]
