"""Bootstrap flow data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from accessgate.components.otp import CodeVerification
from accessgate.domain.entities import AdminAccount
from accessgate.domain.errors import GateErrorCode


@dataclass(frozen=True)
class VerifyPinStepInput:
    pin: str


@dataclass(frozen=True)
class RequestCodeInput:
    pin: str
    email: str


@dataclass(frozen=True)
class CompleteSetupInput:
    email: str
    code: str
    password: str
    display_name: str = ""


@dataclass(frozen=True)
class CreateAdminInput:
    """Account creation; only reachable with a consumed-code receipt."""

    verification: CodeVerification
    password: str
    display_name: str = ""


@dataclass(frozen=True)
class SetupStatusInput:
    pass


@dataclass(frozen=True)
class SetupStatus:
    admin_exists: bool
    lock_configured: bool


@dataclass
class BootstrapOutput:
    success: bool = False
    verified: bool = False
    account: AdminAccount | None = None
    access_token: str | None = None
    expires_at: datetime | None = None
    delivered: bool | None = None
    retry_after_seconds: int | None = None
    # Populated only when debug code exposure is switched on.
    debug_code: str | None = None
    status: SetupStatus | None = None
    error: GateErrorCode | None = None
    message: str | None = None

    @classmethod
    def failed(
        cls, error: GateErrorCode, message: str, retry_after_seconds: int | None = None
    ) -> BootstrapOutput:
        return cls(
            success=False,
            error=error,
            message=message,
            retry_after_seconds=retry_after_seconds,
        )
