"""
Entitlement store tests.

- Missing or corrupt records read as the default (no access), never raise
- has_full_access requires auth + subscription + unexpired end date
- remaining_days rounds up, clamps at 0 and is non-increasing over time
- Every write notifies listeners, even when storage fails
"""

from __future__ import annotations

import json
from datetime import UTC, date, datetime

import pytest

from audioguide.adapters.clock import FixedClock
from audioguide.adapters.local_storage import InMemoryKeyValueStore
from audioguide.components.entitlement import (
    DEFAULT_RECORD,
    EntitlementEvents,
    EntitlementRecord,
    EntitlementStore,
    granted_record,
    has_full_access,
    parse_record,
    remaining_days,
    serialize_record,
)
from audioguide.core.ports.storage import CorruptRecordError, StorageError

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)


class FailingStore:
    """Key/value store whose every operation fails."""

    def get(self, key: str) -> str | None:
        raise StorageError("disk unavailable")

    def set(self, key: str, value: str) -> None:
        raise StorageError("disk full")

    def delete(self, key: str) -> bool:
        raise StorageError("disk unavailable")

    def keys(self, prefix: str = "") -> list[str]:
        raise StorageError("disk unavailable")


def _subscribed(ends: date | None, authenticated: bool = True) -> EntitlementRecord:
    return EntitlementRecord(
        is_authenticated=authenticated, is_subscribed=True, subscription_ends=ends
    )


class TestParseRecord:
    def test_missing_value_is_default(self) -> None:
        assert parse_record(None) == DEFAULT_RECORD

    def test_json_null_is_default(self) -> None:
        assert parse_record("null") == DEFAULT_RECORD

    def test_reads_persisted_shape(self) -> None:
        raw = json.dumps(
            {"isAuthenticated": True, "isSubscribed": True, "subscriptionEnds": "2025-02-01"}
        )
        record = parse_record(raw)
        assert record.is_authenticated is True
        assert record.is_subscribed is True
        assert record.subscription_ends == date(2025, 2, 1)

    def test_accepts_full_iso_timestamp(self) -> None:
        raw = json.dumps(
            {
                "isAuthenticated": True,
                "isSubscribed": True,
                "subscriptionEnds": "2025-02-01T10:30:00+00:00",
            }
        )
        assert parse_record(raw).subscription_ends == date(2025, 2, 1)

    def test_missing_fields_default_to_false(self) -> None:
        assert parse_record("{}") == DEFAULT_RECORD

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            "[1, 2]",
            '{"isAuthenticated": "yes"}',
            '{"isSubscribed": true, "subscriptionEnds": "someday"}',
            '{"isSubscribed": true, "subscriptionEnds": 20250101}',
        ],
    )
    def test_corrupt_values_raise(self, raw: str) -> None:
        with pytest.raises(CorruptRecordError):
            parse_record(raw)

    def test_serialize_uses_camel_case_keys(self) -> None:
        data = json.loads(serialize_record(_subscribed(date(2025, 3, 1))))
        assert data == {
            "isAuthenticated": True,
            "isSubscribed": True,
            "subscriptionEnds": "2025-03-01",
        }


class TestAccessPredicate:
    def test_default_record_has_no_access(self) -> None:
        assert has_full_access(DEFAULT_RECORD, NOW) is False

    def test_subscribed_and_authenticated_has_access(self) -> None:
        assert has_full_access(_subscribed(date(2025, 1, 31)), NOW) is True

    def test_unauthenticated_subscriber_has_no_access(self) -> None:
        assert has_full_access(_subscribed(date(2025, 1, 31), authenticated=False), NOW) is False

    def test_expired_subscription_has_no_access(self) -> None:
        assert has_full_access(_subscribed(date(2024, 12, 31)), NOW) is False

    def test_subscription_without_end_date_has_access(self) -> None:
        assert has_full_access(_subscribed(None), NOW) is True


class TestRemainingDays:
    def test_none_when_not_subscribed(self) -> None:
        assert remaining_days(DEFAULT_RECORD, NOW) is None

    def test_none_without_end_date(self) -> None:
        assert remaining_days(_subscribed(None), NOW) is None

    def test_rounds_partial_days_up(self) -> None:
        # 2025-01-03T00:00Z is 1.5 days after NOW
        assert remaining_days(_subscribed(date(2025, 1, 3)), NOW) == 2

    def test_clamped_at_zero_after_expiry(self) -> None:
        assert remaining_days(_subscribed(date(2024, 6, 1)), NOW) == 0

    def test_non_increasing_over_time(self) -> None:
        record = _subscribed(date(2025, 1, 10))
        clock = FixedClock(NOW)
        seen = []
        for _ in range(15):
            seen.append(remaining_days(record, clock.now_utc()))
            clock.advance(hours=17)
        assert seen == sorted(seen, reverse=True)
        assert seen[-1] == 0

    def test_granted_record_rejects_non_positive_days(self) -> None:
        with pytest.raises(ValueError):
            granted_record(NOW, 0)


class TestEntitlementStore:
    def test_fresh_store_reads_default(self, entitlements: EntitlementStore) -> None:
        assert entitlements.read() == DEFAULT_RECORD
        assert entitlements.has_full_access() is False
        assert entitlements.remaining_days() is None

    def test_grant_gives_full_access_for_requested_days(
        self, entitlements: EntitlementStore
    ) -> None:
        record = entitlements.grant(30)

        assert record.subscription_ends == date(2025, 1, 31)
        assert entitlements.has_full_access() is True
        assert entitlements.remaining_days() == 30

    def test_revoke_clears_access(self, entitlements: EntitlementStore) -> None:
        entitlements.grant(30)
        entitlements.revoke()

        assert entitlements.has_full_access() is False
        assert entitlements.remaining_days() is None

    def test_grant_persists_to_storage(
        self, entitlements: EntitlementStore, kv_store: InMemoryKeyValueStore
    ) -> None:
        entitlements.grant(7)
        stored = json.loads(kv_store.get("userStatus") or "")
        assert stored["isSubscribed"] is True
        assert stored["subscriptionEnds"] == "2025-01-08"

    def test_corrupt_storage_reads_as_default(
        self, kv_store: InMemoryKeyValueStore, clock: FixedClock
    ) -> None:
        kv_store.set("userStatus", "{broken")
        store = EntitlementStore(kv_store, clock=clock)

        assert store.read() == DEFAULT_RECORD
        assert store.has_full_access() is False

    def test_access_lapses_when_clock_passes_end(
        self, entitlements: EntitlementStore, clock: FixedClock
    ) -> None:
        entitlements.grant(2)
        clock.advance(days=3)

        status = entitlements.status()
        assert status.has_full_access is False
        assert status.expired is True
        assert status.remaining_days == 0

    def test_custom_key(self, kv_store: InMemoryKeyValueStore, clock: FixedClock) -> None:
        store = EntitlementStore(kv_store, clock=clock, key="visitor")
        store.grant(1)
        assert kv_store.get("visitor") is not None
        assert kv_store.get("userStatus") is None


class TestNotifications:
    def test_write_notifies_each_listener(self, entitlements: EntitlementStore) -> None:
        calls: list[str] = []
        entitlements.subscribe(lambda: calls.append("a"))
        entitlements.subscribe(lambda: calls.append("b"))

        entitlements.grant(30)
        entitlements.revoke()

        assert calls == ["a", "b", "a", "b"]

    def test_unsubscribe_stops_notifications(self, entitlements: EntitlementStore) -> None:
        calls: list[int] = []
        unsubscribe = entitlements.subscribe(lambda: calls.append(1))
        unsubscribe()
        unsubscribe()

        entitlements.grant(30)
        assert calls == []

    def test_failing_listener_does_not_block_others(
        self, entitlements: EntitlementStore
    ) -> None:
        calls: list[int] = []

        def broken() -> None:
            raise RuntimeError("listener bug")

        entitlements.subscribe(broken)
        entitlements.subscribe(lambda: calls.append(1))

        entitlements.grant(30)
        assert calls == [1]

    def test_shared_events_registry(self, kv_store: InMemoryKeyValueStore) -> None:
        events = EntitlementEvents()
        calls: list[int] = []
        events.subscribe(lambda: calls.append(1))

        EntitlementStore(kv_store, events=events).revoke()

        assert calls == [1]
        assert events.listener_count == 1


class TestStorageFailures:
    def test_read_failure_means_no_access(self, clock: FixedClock) -> None:
        store = EntitlementStore(FailingStore(), clock=clock)
        assert store.read() == DEFAULT_RECORD
        assert store.has_full_access() is False

    def test_write_failure_is_swallowed_and_still_notifies(self, clock: FixedClock) -> None:
        store = EntitlementStore(FailingStore(), clock=clock)
        calls: list[int] = []
        store.subscribe(lambda: calls.append(1))

        store.grant(30)

        assert calls == [1]
        assert store.has_full_access() is False
