"""Maintenance component entry points over a MaintenanceGate."""

from __future__ import annotations

import logging

from accessgate.domain.errors import GateErrorCode, StoreUnavailableError

from ._impl import MaintenanceGate
from .models import (
    ClearConfigInput,
    GetConfigInput,
    IsAllowedInput,
    MaintenanceOutput,
    SetConfigInput,
    StatusInput,
)

logger = logging.getLogger(__name__)


def _store_unavailable(exc: StoreUnavailableError) -> MaintenanceOutput:
    logger.error("Maintenance store unavailable: %s", exc)
    return MaintenanceOutput(
        success=False,
        error=GateErrorCode.STORE_UNAVAILABLE,
        message="Maintenance settings are unavailable; retry shortly",
    )


def run_get_config(inp: GetConfigInput, gate: MaintenanceGate) -> MaintenanceOutput:
    try:
        return MaintenanceOutput(success=True, config=gate.get_config())
    except StoreUnavailableError as e:
        return _store_unavailable(e)


def run_set_config(inp: SetConfigInput, gate: MaintenanceGate) -> MaintenanceOutput:
    try:
        config, errors = gate.set_config(inp.update, inp.actor)
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    if errors:
        return MaintenanceOutput(
            success=False,
            errors=errors,
            error=GateErrorCode.INVALID_FORMAT,
            message=errors[0].message,
        )
    return MaintenanceOutput(success=True, config=config)


def run_clear(inp: ClearConfigInput, gate: MaintenanceGate) -> MaintenanceOutput:
    try:
        gate.clear(inp.actor)
    except StoreUnavailableError as e:
        return _store_unavailable(e)
    return MaintenanceOutput(success=True, message="Maintenance mode cleared")


def run_is_allowed(inp: IsAllowedInput, gate: MaintenanceGate) -> MaintenanceOutput:
    return MaintenanceOutput(success=True, allowed=gate.is_allowed(inp.ip, inp.email))


def run_status(inp: StatusInput, gate: MaintenanceGate) -> MaintenanceOutput:
    return MaintenanceOutput(success=True, status=gate.status_for_display())


def run(
    inp: GetConfigInput | SetConfigInput | ClearConfigInput | IsAllowedInput | StatusInput,
    *,
    gate: MaintenanceGate,
) -> MaintenanceOutput:
    if isinstance(inp, GetConfigInput):
        return run_get_config(inp, gate)

    elif isinstance(inp, SetConfigInput):
        return run_set_config(inp, gate)

    elif isinstance(inp, ClearConfigInput):
        return run_clear(inp, gate)

    elif isinstance(inp, IsAllowedInput):
        return run_is_allowed(inp, gate)

    elif isinstance(inp, StatusInput):
        return run_status(inp, gate)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
