"""
Dev Notification Sender.

Logs messages instead of sending them. Used for local development and
tests; implements NotificationSenderPort.

Key behaviors:
- Logs recipient, subject and a body preview
- Returns a successful SendResult with a dev message id
- Keeps sent messages in memory for test assertions
- fail_with makes every send return a failed result (exercise callers'
  failure paths)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from audioguide.core.ports.notifications import SendResult

logger = logging.getLogger(__name__)


@dataclass
class SentMessage:
    """Record of a logged message for test assertions."""

    id: str
    to: str
    subject: str
    body: str
    logged_at: datetime


@dataclass
class DevNotificationSender:
    """Dev sender that logs instead of sending."""

    sent: list[SentMessage] = field(default_factory=list)
    log_level: int = logging.INFO
    body_preview_length: int = 100
    fail_with: str | None = None

    def send(self, to: str, subject: str, body: str) -> SendResult:
        if self.fail_with is not None:
            logger.log(self.log_level, "NOTIFY (dev): To=%s failed: %s", to, self.fail_with)
            return SendResult.failed(self.fail_with)

        message_id = f"dev-{uuid4().hex[:12]}"
        self.sent.append(
            SentMessage(
                id=message_id,
                to=to,
                subject=subject,
                body=body,
                logged_at=datetime.now(UTC),
            )
        )

        preview = body[: self.body_preview_length]
        if len(body) > self.body_preview_length:
            preview += "..."
        logger.log(
            self.log_level,
            "NOTIFY (dev): To=%s, Subject=%s, Body=%s, MessageID=%s",
            to,
            subject,
            preview,
            message_id,
        )
        return SendResult.sent(message_id)

    def get_last(self) -> SentMessage | None:
        return self.sent[-1] if self.sent else None

    def clear(self) -> None:
        self.sent.clear()
