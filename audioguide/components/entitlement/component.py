"""
Entitlement component.

Pure functions over EntitlementRecord: persistence codec and the derived
access queries. The stateful store lives in _impl.py.

Persisted form (one key):
    {"isAuthenticated": bool, "isSubscribed": bool,
     "subscriptionEnds": "YYYY-MM-DD" | null}
"""

from __future__ import annotations

import json
import math
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from audioguide.core.ports.storage import CorruptRecordError

from .models import DEFAULT_RECORD, EntitlementRecord, EntitlementStatus

SECONDS_PER_DAY = 86400


# --- Codec ---


def _parse_end_date(value: Any, key: str) -> date | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CorruptRecordError(
            key, f"subscriptionEnds must be a string, got {type(value).__name__}"
        )
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value).date()
    except ValueError as e:
        raise CorruptRecordError(key, f"invalid subscriptionEnds {value!r}") from e


def parse_record(raw: str | None, key: str = "userStatus") -> EntitlementRecord:
    """
    Decode a persisted record.

    Missing value, JSON null and missing fields map to defaults.

    Raises:
        CorruptRecordError: On invalid JSON, a non-object payload or
            fields of the wrong type
    """
    if raw is None:
        return DEFAULT_RECORD

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CorruptRecordError(key, f"invalid JSON: {e.msg}") from e

    if data is None:
        return DEFAULT_RECORD
    if not isinstance(data, dict):
        raise CorruptRecordError(key, f"expected an object, got {type(data).__name__}")

    flags = {}
    for field_name in ("isAuthenticated", "isSubscribed"):
        value = data.get(field_name, False)
        if value is None:
            value = False
        if not isinstance(value, bool):
            raise CorruptRecordError(key, f"{field_name} must be a boolean")
        flags[field_name] = value

    return EntitlementRecord(
        is_authenticated=flags["isAuthenticated"],
        is_subscribed=flags["isSubscribed"],
        subscription_ends=_parse_end_date(data.get("subscriptionEnds"), key),
    )


def serialize_record(record: EntitlementRecord) -> str:
    """Encode a record for storage."""
    ends = record.subscription_ends
    return json.dumps(
        {
            "isAuthenticated": record.is_authenticated,
            "isSubscribed": record.is_subscribed,
            "subscriptionEnds": ends.isoformat() if ends else None,
        }
    )


# --- Derived queries ---


def subscription_end_utc(record: EntitlementRecord) -> datetime | None:
    """End of subscription as UTC midnight of the end date, if subscribed."""
    if not record.is_subscribed or record.subscription_ends is None:
        return None
    return datetime.combine(record.subscription_ends, time.min, tzinfo=UTC)


def is_expired(record: EntitlementRecord, now: datetime) -> bool:
    """True when the subscription end lies at or before now."""
    end = subscription_end_utc(record)
    return end is not None and end <= now


def has_full_access(record: EntitlementRecord, now: datetime) -> bool:
    """
    The single authorization predicate.

    Authenticated and subscribed, and not past the subscription end.
    """
    return record.is_authenticated and record.is_subscribed and not is_expired(record, now)


def remaining_days(record: EntitlementRecord, now: datetime) -> int | None:
    """
    Whole days left, rounded up and clamped at 0.

    None when there is no end date or the record is not subscribed.
    """
    end = subscription_end_utc(record)
    if end is None:
        return None
    days = math.ceil((end - now).total_seconds() / SECONDS_PER_DAY)
    return max(days, 0)


def granted_record(now: datetime, days: int) -> EntitlementRecord:
    """Record for a visitor who just logged in and subscribed for `days`."""
    if days < 1:
        raise ValueError(f"days must be positive, got {days}")
    return EntitlementRecord(
        is_authenticated=True,
        is_subscribed=True,
        subscription_ends=(now + timedelta(days=days)).date(),
    )


def describe(record: EntitlementRecord, now: datetime) -> EntitlementStatus:
    return EntitlementStatus(
        record=record,
        has_full_access=has_full_access(record, now),
        remaining_days=remaining_days(record, now),
        expired=is_expired(record, now),
    )
