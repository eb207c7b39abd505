"""
Administrator setup API.

Three stateless steps: verify the system lock PIN, request a one-time code
(PIN re-checked in the same request), then submit the code with account
credentials.
"""

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from accessgate.api.deps import ACCESS_COOKIE, get_context
from accessgate.api.errors import INVALID_CODE_MESSAGE, http_error, single_use_error
from accessgate.app_shell.context import AccessContext
from accessgate.components import bootstrap
from accessgate.components.bootstrap.component import ACCESS_TOKEN_MINUTES

router = APIRouter()


# --- Request/Response Models ---


class SetupStatusResponse(BaseModel):
    admin_exists: bool
    lock_configured: bool


class VerifyPinRequest(BaseModel):
    pin: str


class VerifyPinResponse(BaseModel):
    verified: bool


class RequestCodeRequest(BaseModel):
    pin: str
    email: str


class RequestCodeResponse(BaseModel):
    message: str
    expires_at: str
    delivered: bool
    code: str | None = None


class CompleteSetupRequest(BaseModel):
    email: str
    code: str
    password: str
    display_name: str = ""


class AccountResponse(BaseModel):
    id: str
    email: str
    display_name: str
    roles: list[str]


class CompleteSetupResponse(BaseModel):
    message: str
    user: AccountResponse
    access_token: str
    token_type: str = "bearer"


# --- Endpoints ---


@router.get("", response_model=SetupStatusResponse)
def setup_status(ctx: AccessContext = Depends(get_context)) -> SetupStatusResponse:
    result = bootstrap.run_setup_status(bootstrap.SetupStatusInput(), ctx.store)
    if not result.success or result.status is None:
        raise http_error(result.error, result.message)
    return SetupStatusResponse(
        admin_exists=result.status.admin_exists,
        lock_configured=result.status.lock_configured,
    )


@router.post("/verify-pin", response_model=VerifyPinResponse)
def verify_pin(
    body: VerifyPinRequest, ctx: AccessContext = Depends(get_context)
) -> VerifyPinResponse:
    result = bootstrap.run_verify_pin(
        bootstrap.VerifyPinStepInput(pin=body.pin), ctx.store, ctx.hasher
    )
    if not result.success:
        raise http_error(result.error, result.message)
    return VerifyPinResponse(verified=True)


@router.post("/request-code", response_model=RequestCodeResponse)
def request_code(
    body: RequestCodeRequest, ctx: AccessContext = Depends(get_context)
) -> RequestCodeResponse:
    result = bootstrap.run_request_code(
        bootstrap.RequestCodeInput(pin=body.pin, email=body.email),
        ctx.store,
        ctx.hasher,
        ctx.clock,
        ctx.email_dispatcher,
        ctx.rules.otp,
        expose_code=ctx.expose_codes,
    )
    if not result.success:
        raise http_error(result.error, result.message, result.retry_after_seconds)

    assert result.expires_at is not None
    return RequestCodeResponse(
        message=result.message or "Verification code sent",
        expires_at=result.expires_at.isoformat(),
        delivered=bool(result.delivered),
        code=result.debug_code,
    )


@router.post("/complete", response_model=CompleteSetupResponse)
def complete_setup(
    body: CompleteSetupRequest,
    response: Response,
    ctx: AccessContext = Depends(get_context),
) -> CompleteSetupResponse:
    result = bootstrap.run_complete_setup(
        bootstrap.CompleteSetupInput(
            email=body.email,
            code=body.code,
            password=body.password,
            display_name=body.display_name,
        ),
        ctx.store,
        ctx.passwords,
        ctx.tokens,
        ctx.clock,
        ctx.rules.otp,
    )
    if not result.success:
        raise single_use_error(result.error, result.message, INVALID_CODE_MESSAGE)

    assert result.account is not None and result.access_token is not None
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=f"Bearer {result.access_token}",
        httponly=True,
        samesite="lax",
        max_age=ACCESS_TOKEN_MINUTES * 60,
    )
    account = result.account
    ctx.admins.invalidate(str(account.id))
    return CompleteSetupResponse(
        message=result.message or "Administrator account created",
        user=AccountResponse(
            id=str(account.id),
            email=account.email,
            display_name=account.display_name,
            roles=list(account.roles),
        ),
        access_token=result.access_token,
    )
