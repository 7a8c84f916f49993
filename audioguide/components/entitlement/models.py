"""
Entitlement component models.

Data models for the locally persisted authentication/subscription record.

Invariants:
- subscription_ends is only meaningful while is_subscribed is True
- A record with is_subscribed=False grants no access whatever its end date
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class EntitlementRecord:
    """
    The visitor's entitlement record.

    One per client; overwritten wholesale on every login/subscribe/logout.
    """

    is_authenticated: bool = False
    is_subscribed: bool = False
    subscription_ends: date | None = None


DEFAULT_RECORD = EntitlementRecord()


@dataclass(frozen=True)
class EntitlementStatus:
    """Derived, display-oriented view of a record at a point in time."""

    record: EntitlementRecord
    has_full_access: bool
    remaining_days: int | None
    expired: bool

    def to_dict(self) -> dict[str, object]:
        ends = self.record.subscription_ends
        return {
            "isAuthenticated": self.record.is_authenticated,
            "isSubscribed": self.record.is_subscribed,
            "subscriptionEnds": ends.isoformat() if ends else None,
            "hasFullAccess": self.has_full_access,
            "remainingDays": self.remaining_days,
            "expired": self.expired,
        }
