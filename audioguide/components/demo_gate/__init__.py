"""
Demo gate component.

Public API for per-content demo access decisions.
"""

from ._impl import DemoGate
from .component import (
    content_id_from_key,
    decide_access,
    is_consumed_flag,
    ledger_key,
)
from .models import CONSUMED_FLAG, DEFAULT_DEMO_KEY_PREFIX, AccessDecision
from .ports import EntitlementReaderPort

__all__ = [
    "DemoGate",
    # Functions
    "content_id_from_key",
    "decide_access",
    "is_consumed_flag",
    "ledger_key",
    # Models
    "AccessDecision",
    "CONSUMED_FLAG",
    "DEFAULT_DEMO_KEY_PREFIX",
    # Ports
    "EntitlementReaderPort",
]
