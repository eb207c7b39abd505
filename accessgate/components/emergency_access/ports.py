from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...


class AllowlistPort(Protocol):
    """Email allow-list lookup (MaintenanceGate implements it)."""

    def is_email_allowlisted(self, email: str) -> bool: ...
