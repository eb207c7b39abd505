from dataclasses import dataclass
from datetime import datetime

from accessgate.domain.errors import GateErrorCode


@dataclass
class SetPinInput:
    pin: str
    actor: str


@dataclass
class VerifyPinInput:
    pin: str


@dataclass
class ChangePinInput:
    current_pin: str
    new_pin: str
    actor: str


@dataclass
class DisableLockInput:
    actor: str


@dataclass
class LockStatusInput:
    pass


@dataclass
class LockStatus:
    locked: bool
    set_by: str | None = None
    set_at: datetime | None = None


@dataclass
class SystemLockOutput:
    success: bool = False
    verified: bool = False
    status: LockStatus | None = None
    error: GateErrorCode | None = None
    message: str | None = None
