from dataclasses import dataclass
from datetime import datetime

from accessgate.domain.errors import GateErrorCode


@dataclass
class IssueCodeInput:
    identity: str


@dataclass
class VerifyCodeInput:
    identity: str
    code: str


@dataclass
class PurgeExpiredInput:
    pass


@dataclass(frozen=True)
class CodeVerification:
    """Receipt of a consumed code; account creation requires one."""

    identity: str
    verified_at: datetime


@dataclass
class IssueCodeOutput:
    success: bool = False
    code: str | None = None
    expires_at: datetime | None = None
    retry_after_seconds: int | None = None
    error: GateErrorCode | None = None
    message: str | None = None


@dataclass
class VerifyCodeOutput:
    success: bool = False
    verification: CodeVerification | None = None
    attempts_remaining: int | None = None
    error: GateErrorCode | None = None
    message: str | None = None


@dataclass
class PurgeExpiredOutput:
    success: bool = False
    deleted: int = 0
    error: GateErrorCode | None = None
