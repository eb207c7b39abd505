from dataclasses import dataclass, field

from accessgate.domain.entities import MaintenanceConfig
from accessgate.domain.errors import GateErrorCode


@dataclass
class ValidationError:
    """Validation error with actionable message."""

    field: str
    code: str
    message: str


@dataclass
class MaintenanceUpdate:
    """Partial update; ``None`` leaves the stored value unchanged."""

    enabled: bool | None = None
    message: str | None = None
    estimated_time: str | None = None
    allowed_ips: list[str] | None = None
    allowed_emails: list[str] | None = None


@dataclass
class MaintenanceStatus:
    enabled: bool
    message: str
    estimated_time: str


@dataclass
class GetConfigInput:
    pass


@dataclass
class SetConfigInput:
    update: MaintenanceUpdate
    actor: str


@dataclass
class ClearConfigInput:
    actor: str


@dataclass
class IsAllowedInput:
    ip: str | None = None
    email: str | None = None


@dataclass
class StatusInput:
    pass


@dataclass
class MaintenanceOutput:
    success: bool = False
    config: MaintenanceConfig | None = None
    status: MaintenanceStatus | None = None
    allowed: bool = False
    errors: list[ValidationError] = field(default_factory=list)
    error: GateErrorCode | None = None
    message: str | None = None
