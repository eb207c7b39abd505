"""
System lock component - PIN protection for administrative bootstrap.

Stores a single hashed PIN under ``system_lock_pin`` and answers set,
verify, change, disable and status requests against it.
"""

from .component import (
    DEFAULT_PIN_PATTERN,
    run,
    run_change_pin,
    run_disable,
    run_set_pin,
    run_status,
    run_verify_pin,
)
from .models import (
    ChangePinInput,
    DisableLockInput,
    LockStatus,
    LockStatusInput,
    SetPinInput,
    SystemLockOutput,
    VerifyPinInput,
)
from .ports import SecretHasherPort, TimePort

__all__ = [
    # Entry points
    "run",
    "run_set_pin",
    "run_verify_pin",
    "run_change_pin",
    "run_disable",
    "run_status",
    # Models
    "ChangePinInput",
    "DisableLockInput",
    "LockStatus",
    "LockStatusInput",
    "SetPinInput",
    "SystemLockOutput",
    "VerifyPinInput",
    # Ports
    "SecretHasherPort",
    "TimePort",
    # Constants
    "DEFAULT_PIN_PATTERN",
]
