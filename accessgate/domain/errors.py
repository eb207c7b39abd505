"""
Error taxonomy shared by every gate component.

Components report failures as a ``GateErrorCode`` on their output objects.
Adapters raise the exceptions below; components translate them to codes so
nothing crosses the request boundary as an exception.
"""

from __future__ import annotations

from enum import Enum


class GateErrorCode(str, Enum):
    """Failure kinds reported by the gate components."""

    INVALID_FORMAT = "invalid_format"
    NOT_CONFIGURED = "not_configured"
    INCORRECT_CURRENT_SECRET = "incorrect_current_secret"
    MISMATCH = "mismatch"
    THROTTLED = "throttled"
    EXPIRED = "expired"
    ALREADY_CONSUMED = "already_consumed"
    NOT_FOUND = "not_found"
    NOT_ALLOWLISTED = "not_allowlisted"
    ALREADY_EXISTS = "already_exists"
    STORE_UNAVAILABLE = "store_unavailable"


class StoreError(Exception):
    """Base exception for document store failures."""

    pass


class StoreUnavailableError(StoreError):
    """The persistent store could not be reached or timed out."""

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Store unavailable during {operation}{detail}")


class DuplicateKeyError(StoreError):
    """A unique-key guard rejected an insert."""

    def __init__(self, collection: str, key: str) -> None:
        self.collection = collection
        self.key = key
        super().__init__(f"Duplicate key '{key}' in collection '{collection}'")
