"""
Maintenance component - global maintenance switch with IP/email allow-lists.
"""

from ._impl import MaintenanceGate, merge_allowlists, validate_update
from .component import (
    run,
    run_clear,
    run_get_config,
    run_is_allowed,
    run_set_config,
    run_status,
)
from .models import (
    ClearConfigInput,
    GetConfigInput,
    IsAllowedInput,
    MaintenanceOutput,
    MaintenanceStatus,
    MaintenanceUpdate,
    SetConfigInput,
    StatusInput,
    ValidationError,
)
from .ports import TimePort

__all__ = [
    # Entry points
    "run",
    "run_get_config",
    "run_set_config",
    "run_clear",
    "run_is_allowed",
    "run_status",
    # Models
    "ClearConfigInput",
    "GetConfigInput",
    "IsAllowedInput",
    "MaintenanceOutput",
    "MaintenanceStatus",
    "MaintenanceUpdate",
    "SetConfigInput",
    "StatusInput",
    "ValidationError",
    # Ports
    "TimePort",
    # Service
    "MaintenanceGate",
    "merge_allowlists",
    "validate_update",
]
