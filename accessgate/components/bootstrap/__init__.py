"""
Bootstrap component - PIN plus one-time code protocol for creating administrators.
"""

from .component import (
    MIN_PASSWORD_LENGTH,
    run,
    run_complete_setup,
    run_create_admin,
    run_request_code,
    run_setup_status,
    run_verify_pin,
)
from .models import (
    BootstrapOutput,
    CompleteSetupInput,
    CreateAdminInput,
    RequestCodeInput,
    SetupStatus,
    SetupStatusInput,
    VerifyPinStepInput,
)
from .ports import AccessTokenPort, EmailSenderPort, PasswordHasherPort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_verify_pin",
    "run_request_code",
    "run_complete_setup",
    "run_create_admin",
    "run_setup_status",
    # Models
    "BootstrapOutput",
    "CompleteSetupInput",
    "CreateAdminInput",
    "RequestCodeInput",
    "SetupStatus",
    "SetupStatusInput",
    "VerifyPinStepInput",
    # Ports
    "AccessTokenPort",
    "EmailSenderPort",
    "PasswordHasherPort",
    "TimePort",
    # Constants
    "MIN_PASSWORD_LENGTH",
]
