"""
Notification Sender Interface.

Protocol-based interface for outbound email/notification providers.
The client only consumes this contract; providers live outside the core.

Key requirements:
- send() must not raise; failures come back as SendResult.failed(...)
- Callers treat delivery as opportunistic and never depend on success

Implementation strategies:
1. DevNotificationSender: logs instead of sending (dev/test)
2. Provider adapters (SMTP, transactional APIs) live outside this package
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class SendResult:
    """Outcome of a send attempt."""

    success: bool
    error: str | None = None
    message_id: str | None = None

    @classmethod
    def sent(cls, message_id: str | None = None) -> SendResult:
        return cls(success=True, message_id=message_id)

    @classmethod
    def failed(cls, error: str) -> SendResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data


class NotificationSenderPort(Protocol):
    """Outbound message sender."""

    def send(self, to: str, subject: str, body: str) -> SendResult:
        """
        Send a message.

        Args:
            to: Recipient address
            subject: Subject line
            body: Plain text body

        Returns:
            SendResult; never raises
        """
        ...
