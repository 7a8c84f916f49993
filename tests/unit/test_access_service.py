"""
Tests for the subscribe/logout flows.

- Validators run before any state change
- A grant is stored even when the receipt cannot be sent
- Logout returns the no-access status
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

import pytest

from audioguide.adapters.dev_notifier import DevNotificationSender
from audioguide.components.entitlement import EntitlementStore
from audioguide.core.ports.validation import ValidationResult
from audioguide.services.access import (
    RECEIPT_SUBJECT,
    AccessService,
    SubscriptionRejected,
)


class RequireEmail:
    def validate(self, data: Mapping[str, Any]) -> ValidationResult:
        if not data.get("email"):
            return ValidationResult.invalid("email is required")
        return ValidationResult.valid()


class CardNumberLength:
    def __init__(self) -> None:
        self.seen: list[Mapping[str, Any]] = []

    def validate(self, data: Mapping[str, Any]) -> ValidationResult:
        self.seen.append(dict(data))
        if len(str(data.get("card", ""))) != 16:
            return ValidationResult.invalid("card number must have 16 digits")
        return ValidationResult.valid()


class TestSubscribe:
    def test_default_grant(self, entitlements: EntitlementStore) -> None:
        service = AccessService(entitlements, default_days=30)

        outcome = service.subscribe()

        assert outcome.record.subscription_ends == date(2025, 1, 31)
        assert outcome.status.has_full_access is True
        assert outcome.status.remaining_days == 30
        assert outcome.receipt is None

    def test_explicit_days(self, entitlements: EntitlementStore) -> None:
        outcome = AccessService(entitlements).subscribe(7)
        assert outcome.status.remaining_days == 7

    def test_receipt_sent(self, entitlements: EntitlementStore) -> None:
        sender = DevNotificationSender()
        service = AccessService(entitlements, sender=sender)

        outcome = service.subscribe(email="visitor@example.com")

        assert outcome.receipt is not None and outcome.receipt.success
        last = sender.get_last()
        assert last is not None
        assert last.subject == RECEIPT_SUBJECT
        assert "2025-01-31" in last.body

    def test_failed_receipt_keeps_grant(self, entitlements: EntitlementStore) -> None:
        service = AccessService(entitlements, sender=DevNotificationSender(fail_with="smtp down"))

        outcome = service.subscribe(email="visitor@example.com")

        assert outcome.receipt is not None
        assert outcome.receipt.success is False
        assert entitlements.has_full_access() is True

    def test_no_receipt_without_email(self, entitlements: EntitlementStore) -> None:
        sender = DevNotificationSender()
        AccessService(entitlements, sender=sender).subscribe()
        assert sender.sent == []

    def test_validator_rejection_changes_nothing(self, entitlements: EntitlementStore) -> None:
        sender = DevNotificationSender()
        service = AccessService(entitlements, sender=sender, validators=[RequireEmail()])

        with pytest.raises(SubscriptionRejected) as exc_info:
            service.subscribe()

        assert exc_info.value.errors == ["email is required"]
        assert entitlements.has_full_access() is False
        assert sender.sent == []

    def test_validators_see_form_days_and_email(self, entitlements: EntitlementStore) -> None:
        card = CardNumberLength()
        service = AccessService(entitlements, validators=[RequireEmail(), card])

        service.subscribe(14, email="v@example.com", form={"card": "4242424242424242"})

        assert card.seen == [{"card": "4242424242424242", "days": 14, "email": "v@example.com"}]
        assert entitlements.remaining_days() == 14

    def test_all_validator_errors_reported(self, entitlements: EntitlementStore) -> None:
        service = AccessService(entitlements, validators=[RequireEmail(), CardNumberLength()])

        with pytest.raises(SubscriptionRejected) as exc_info:
            service.subscribe(form={"card": "1"})

        assert exc_info.value.errors == ["email is required", "card number must have 16 digits"]

    def test_outcome_dict(self, entitlements: EntitlementStore) -> None:
        data = AccessService(entitlements).subscribe(3).to_dict()
        assert data["status"]["hasFullAccess"] is True
        assert data["receipt"] is None


class TestLogout:
    def test_logout_revokes(self, entitlements: EntitlementStore) -> None:
        service = AccessService(entitlements)
        service.subscribe()

        status = service.logout()

        assert status.has_full_access is False
        assert status.remaining_days is None
        assert entitlements.read().is_subscribed is False
