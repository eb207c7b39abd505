from datetime import datetime
from typing import Any, Protocol


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...


class PasswordHasherPort(Protocol):
    def hash_password(self, password: str) -> str: ...


class AccessTokenPort(Protocol):
    def create_access_token(self, user_id: Any, ttl_minutes: int = ...) -> str: ...


class EmailSenderPort(Protocol):
    """Bounded email dispatch; returns False on failure or timeout, never raises."""

    def send(
        self, to: str, subject: str, body_html: str, body_text: str | None = None
    ) -> bool: ...
