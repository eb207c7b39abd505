"""System lock administration for signed-in administrators."""

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from accessgate.api.deps import get_context, get_current_admin
from accessgate.api.errors import http_error
from accessgate.app_shell.context import AccessContext
from accessgate.components import system_lock
from accessgate.domain.entities import AdminAccount
from accessgate.domain.errors import GateErrorCode

router = APIRouter()


class LockStatusResponse(BaseModel):
    locked: bool
    set_by: str | None = None
    set_at: str | None = None


class LockActionRequest(BaseModel):
    action: Literal["set", "change", "disable"]
    pin: str | None = None
    current_pin: str | None = None


class LockActionResponse(BaseModel):
    message: str


@router.get("", response_model=LockStatusResponse)
def lock_status(
    _admin: AdminAccount = Depends(get_current_admin),
    ctx: AccessContext = Depends(get_context),
) -> LockStatusResponse:
    result = system_lock.run_status(system_lock.LockStatusInput(), ctx.store)
    if not result.success or result.status is None:
        raise http_error(result.error or GateErrorCode.STORE_UNAVAILABLE, result.message)
    status = result.status
    return LockStatusResponse(
        locked=status.locked,
        set_by=status.set_by,
        set_at=status.set_at.isoformat() if status.set_at else None,
    )


@router.post("", response_model=LockActionResponse)
def lock_action(
    body: LockActionRequest,
    admin: AdminAccount = Depends(get_current_admin),
    ctx: AccessContext = Depends(get_context),
) -> LockActionResponse:
    pin_pattern = ctx.rules.system_lock.pin_pattern
    actor = admin.email

    if body.action == "disable":
        result = system_lock.run_disable(system_lock.DisableLockInput(actor=actor), ctx.store)
    elif body.pin is None:
        raise http_error(GateErrorCode.INVALID_FORMAT, "A PIN is required")
    elif body.action == "change":
        if body.current_pin is None:
            raise http_error(GateErrorCode.INVALID_FORMAT, "The current PIN is required")
        result = system_lock.run_change_pin(
            system_lock.ChangePinInput(current_pin=body.current_pin, new_pin=body.pin, actor=actor),
            ctx.store,
            ctx.hasher,
            ctx.clock,
            pin_pattern,
        )
    else:
        result = system_lock.run_set_pin(
            system_lock.SetPinInput(pin=body.pin, actor=actor),
            ctx.store,
            ctx.hasher,
            ctx.clock,
            pin_pattern,
        )

    if not result.success:
        raise http_error(result.error or GateErrorCode.INVALID_FORMAT, result.message)
    return LockActionResponse(message=result.message or "Done")
