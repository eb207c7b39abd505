from datetime import datetime
from typing import Protocol


class SecretHasherPort(Protocol):
    def hash_secret(self, secret: str) -> str: ...
    def verify_secret(self, secret: str, hash_str: str) -> bool: ...


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
