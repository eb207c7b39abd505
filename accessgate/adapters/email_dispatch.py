"""
Bounded email dispatch.

Wraps an EmailPort so every send has a hard timeout and never raises. A
send that times out or fails reports ``False``; whatever record triggered
the email (a one-time code, an emergency token) stays persisted and valid.
"""

from __future__ import annotations

import html
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from accessgate.core.ports.email import (
    EMERGENCY_BODY_TEXT,
    EMERGENCY_SUBJECT,
    OTP_BODY_TEXT,
    OTP_SUBJECT,
    SITE_NAME,
    EmailPort,
)

logger = logging.getLogger(__name__)


def _as_html(text: str) -> str:
    paragraphs = (html.escape(line) for line in text.splitlines() if line)
    return "".join(f"<p>{p}</p>" for p in paragraphs)


def render_code_email(code: str, ttl_seconds: int) -> tuple[str, str, str]:
    """Return (subject, html, text) for a one-time code email."""
    subject = OTP_SUBJECT.format(site_name=SITE_NAME)
    text = OTP_BODY_TEXT.format(code=code, minutes=max(1, ttl_seconds // 60))
    return subject, _as_html(text), text


def render_emergency_email(email: str, token: str, ttl_hours: int) -> tuple[str, str, str]:
    """Return (subject, html, text) for an emergency access token email."""
    subject = EMERGENCY_SUBJECT.format(site_name=SITE_NAME)
    text = EMERGENCY_BODY_TEXT.format(email=email, token=token, hours=ttl_hours)
    return subject, _as_html(text), text


class TimedEmailDispatcher:
    """Runs sends on a small worker pool and waits at most ``timeout_seconds``."""

    def __init__(
        self,
        email: EmailPort,
        timeout_seconds: float = 10.0,
        max_workers: int = 2,
    ) -> None:
        self._email = email
        self._timeout = timeout_seconds
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="email")

    def send(self, to: str, subject: str, body_html: str, body_text: str | None = None) -> bool:
        """Send one email. Returns True if the transport accepted it in time."""
        future = self._pool.submit(self._email.send_email, to, subject, body_html, body_text)
        try:
            result = future.result(timeout=self._timeout)
        except FutureTimeoutError:
            logger.warning("Email to %s timed out after %.1fs", to, self._timeout)
            return False
        except Exception:
            logger.exception("Email transport raised while sending to %s", to)
            return False

        if not result.delivered:
            logger.warning("Email to %s failed: %s", to, result.error)
            return False
        return True

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)
