"""
Email Adapter Interface.

Protocol-based interface for sending transactional emails. The access core
uses it to deliver one-time codes and emergency access tokens; the transport
itself (SMTP, Brevo, SES) is an external collaborator.

Key requirements:
- Send must not raise; failures come back as a FAILED result
- Callers bound every send with a timeout (see TimedEmailDispatcher)
- Bodies are pre-formatted by the caller
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    QUEUED = "queued"  # Async send (not delivered yet)
    FAILED = "failed"
    SKIPPED = "skipped"  # Dev adapter or dry-run


@dataclass
class EmailResult:
    """Result of an email send attempt."""

    status: EmailStatus
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None
    recipient: str = ""

    @property
    def delivered(self) -> bool:
        """True when the transport accepted the message."""
        return self.status in (EmailStatus.SENT, EmailStatus.QUEUED, EmailStatus.SKIPPED)

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        """Create a successful send result."""
        return cls(
            status=EmailStatus.SENT,
            message_id=message_id,
            recipient=recipient,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        """Create a failed result."""
        return cls(
            status=EmailStatus.FAILED,
            recipient=recipient,
            error=error,
        )


class EmailPort(Protocol):
    """
    Email sending interface.

    Implementations:
    - DevEmailAdapter: Logs to console (dev/test)
    - Production transports live outside this package
    """

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """
        Send a transactional email.

        Notes:
            - Must not raise exceptions; return failed status instead
        """
        ...


# --- Templates ---

SITE_NAME = "Capsera"

OTP_SUBJECT = "Your {site_name} administrator setup code"
OTP_BODY_TEXT = (
    "Your administrator setup code is {code}.\n"
    "It expires in {minutes} minutes and can be used once.\n"
    "If you did not request this code, ignore this email."
)

EMERGENCY_SUBJECT = "{site_name} emergency access token"
EMERGENCY_BODY_TEXT = (
    "An emergency access token was requested for {email}.\n"
    "Token: {token}\n"
    "It expires in {hours} hours and can be redeemed once."
)
