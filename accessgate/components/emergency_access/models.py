from dataclasses import dataclass
from datetime import datetime

from accessgate.domain.errors import GateErrorCode


@dataclass
class IssueTokenInput:
    email: str
    ip_address: str | None = None


@dataclass
class RedeemTokenInput:
    token: str


@dataclass
class TokenStatsInput:
    pass


@dataclass
class TokenStats:
    total: int = 0
    active: int = 0
    used: int = 0
    expired: int = 0


@dataclass
class EmergencyAccessOutput:
    success: bool = False
    token: str | None = None
    expires_at: datetime | None = None
    identity: str | None = None
    stats: TokenStats | None = None
    error: GateErrorCode | None = None
    message: str | None = None
