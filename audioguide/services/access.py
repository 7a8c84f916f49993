"""
AccessService - subscribe and logout flows.

Subscribing runs the surrounding form validators first, then grants the
entitlement, then sends an opportunistic receipt. A failed receipt never
undoes the grant.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from audioguide.components.entitlement import (
    EntitlementRecord,
    EntitlementStatus,
    EntitlementStore,
)
from audioguide.core.ports.notifications import NotificationSenderPort, SendResult
from audioguide.core.ports.validation import FieldValidatorPort, merge_results

logger = logging.getLogger(__name__)

RECEIPT_SUBJECT = "Your audio guide subscription"


class SubscriptionRejected(ValueError):
    """Raised when a validator refuses the submitted subscription data."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("; ".join(errors) or "Subscription rejected")


@dataclass(frozen=True)
class SubscriptionOutcome:
    record: EntitlementRecord
    status: EntitlementStatus
    receipt: SendResult | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.to_dict(),
            "receipt": self.receipt.to_dict() if self.receipt else None,
        }


class AccessService:
    def __init__(
        self,
        entitlements: EntitlementStore,
        *,
        default_days: int = 30,
        sender: NotificationSenderPort | None = None,
        validators: Sequence[FieldValidatorPort] = (),
    ) -> None:
        self.entitlements = entitlements
        self.default_days = default_days
        self.sender = sender
        self.validators = list(validators)

    def subscribe(
        self,
        days: int | None = None,
        *,
        email: str | None = None,
        form: Mapping[str, Any] | None = None,
    ) -> SubscriptionOutcome:
        """
        Grant full access for a number of days.

        Args:
            days: Subscription length (defaults to the configured grant)
            email: Receipt recipient; no receipt when omitted
            form: Extra submitted fields handed to the validators

        Raises:
            SubscriptionRejected: If any validator refuses the data
            ValueError: If days < 1
        """
        grant_days = days if days is not None else self.default_days
        data: dict[str, Any] = dict(form or {})
        data.setdefault("days", grant_days)
        if email is not None:
            data.setdefault("email", email)

        if self.validators:
            verdict = merge_results([v.validate(data) for v in self.validators])
            if not verdict.is_valid:
                logger.info("Subscription rejected: %s", verdict.errors)
                raise SubscriptionRejected(verdict.errors)

        record = self.entitlements.grant(grant_days)
        receipt = self._send_receipt(email, record) if email else None
        return SubscriptionOutcome(
            record=record, status=self.entitlements.status(), receipt=receipt
        )

    def logout(self) -> EntitlementStatus:
        self.entitlements.revoke()
        return self.entitlements.status()

    def _send_receipt(self, email: str, record: EntitlementRecord) -> SendResult | None:
        if self.sender is None:
            return None
        body = (
            "Thank you for subscribing to the audio guide.\n"
            f"Full access is active until {record.subscription_ends.isoformat()}."
            if record.subscription_ends
            else "Thank you for subscribing to the audio guide."
        )
        result = self.sender.send(email, RECEIPT_SUBJECT, body)
        if not result.success:
            logger.warning("Subscription receipt to %s not sent: %s", email, result.error)
        return result
