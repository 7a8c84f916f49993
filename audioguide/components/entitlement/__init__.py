"""
Entitlement component.

Public API for the local authentication/subscription record.
"""

from ._impl import DEFAULT_ENTITLEMENT_KEY, EntitlementStore
from .component import (
    describe,
    granted_record,
    has_full_access,
    is_expired,
    parse_record,
    remaining_days,
    serialize_record,
    subscription_end_utc,
)
from .events import EntitlementEvents
from .models import DEFAULT_RECORD, EntitlementRecord, EntitlementStatus
from .ports import EntitlementListener, TimePort

__all__ = [
    # Store
    "EntitlementStore",
    "EntitlementEvents",
    "DEFAULT_ENTITLEMENT_KEY",
    # Functions
    "describe",
    "granted_record",
    "has_full_access",
    "is_expired",
    "parse_record",
    "remaining_days",
    "serialize_record",
    "subscription_end_utc",
    # Models
    "DEFAULT_RECORD",
    "EntitlementRecord",
    "EntitlementStatus",
    # Ports
    "EntitlementListener",
    "TimePort",
]
