"""
Maintenance mode API.

Public: status, emergency token request and redemption, static bypass.
Admin: read, update and clear the maintenance record; token statistics.
"""

import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel

from accessgate.adapters.email_dispatch import render_emergency_email
from accessgate.api.deps import BYPASS_COOKIE, get_context, get_current_admin
from accessgate.api.errors import INVALID_TOKEN_MESSAGE, http_error, single_use_error
from accessgate.app_shell.context import AccessContext
from accessgate.components import emergency_access, maintenance
from accessgate.domain.entities import AdminAccount, MaintenanceConfig
from accessgate.domain.errors import GateErrorCode

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response Models ---


class MaintenanceStatusResponse(BaseModel):
    enabled: bool
    message: str
    estimated_time: str


class MaintenanceConfigResponse(BaseModel):
    enabled: bool
    message: str
    estimated_time: str
    allowed_ips: list[str]
    allowed_emails: list[str]
    updated_at: str | None = None
    updated_by: str | None = None


class MaintenanceConfigUpdate(BaseModel):
    enabled: bool | None = None
    message: str | None = None
    estimated_time: str | None = None
    allowed_ips: list[str] | None = None
    allowed_emails: list[str] | None = None


class EmergencyRequest(BaseModel):
    email: str


class EmergencyRequestResponse(BaseModel):
    message: str
    expires_at: str
    delivered: bool
    token: str | None = None


class TokenRequest(BaseModel):
    token: str


class BypassResponse(BaseModel):
    message: str
    identity: str


class TokenStatsResponse(BaseModel):
    total: int
    active: int
    used: int
    expired: int


# --- Helpers ---


def _config_response(config: MaintenanceConfig) -> MaintenanceConfigResponse:
    return MaintenanceConfigResponse(
        enabled=config.enabled,
        message=config.message,
        estimated_time=config.estimated_time,
        allowed_ips=list(config.allowed_ips),
        allowed_emails=list(config.allowed_emails),
        updated_at=config.updated_at.isoformat() if config.updated_at else None,
        updated_by=config.updated_by,
    )


def _set_bypass_cookie(response: Response, ctx: AccessContext, identity: str) -> None:
    minutes = ctx.rules.emergency_access.bypass_cookie_minutes
    response.set_cookie(
        key=BYPASS_COOKIE,
        value=ctx.tokens.create_bypass_token(identity, minutes),
        httponly=True,
        samesite="lax",
        max_age=minutes * 60,
    )


# --- Public endpoints ---


@router.get("/status", response_model=MaintenanceStatusResponse)
def maintenance_status(ctx: AccessContext = Depends(get_context)) -> MaintenanceStatusResponse:
    result = maintenance.run_status(maintenance.StatusInput(), ctx.maintenance)
    assert result.status is not None
    return MaintenanceStatusResponse(
        enabled=result.status.enabled,
        message=result.status.message,
        estimated_time=result.status.estimated_time,
    )


@router.post("/emergency-access", response_model=EmergencyRequestResponse)
def request_emergency_access(
    body: EmergencyRequest,
    request: Request,
    ctx: AccessContext = Depends(get_context),
) -> EmergencyRequestResponse:
    rules = ctx.rules.emergency_access
    ip = getattr(request.state, "client_ip", None)
    result = emergency_access.run_issue(
        emergency_access.IssueTokenInput(email=body.email, ip_address=ip),
        ctx.store,
        ctx.maintenance,
        ctx.clock,
        rules,
    )
    if not result.success or result.token is None:
        raise http_error(result.error or GateErrorCode.INVALID_FORMAT, result.message)

    assert result.identity is not None and result.expires_at is not None
    subject, body_html, body_text = render_emergency_email(
        result.identity, result.token, rules.ttl_hours
    )
    delivered = ctx.email_dispatcher.send(result.identity, subject, body_html, body_text)
    if not delivered:
        logger.warning("Emergency token for %s persisted but not delivered", result.identity)
    if ctx.expose_codes:
        logger.debug("Emergency token for %s: %s", result.identity, result.token)

    return EmergencyRequestResponse(
        message="Emergency access token sent" if delivered else "Token issued; delivery failed",
        expires_at=result.expires_at.isoformat(),
        delivered=delivered,
        token=result.token if ctx.expose_codes else None,
    )


@router.post("/emergency-access/redeem", response_model=BypassResponse)
def redeem_emergency_access(
    body: TokenRequest,
    response: Response,
    ctx: AccessContext = Depends(get_context),
) -> BypassResponse:
    result = emergency_access.run_redeem(
        emergency_access.RedeemTokenInput(token=body.token), ctx.store, ctx.clock
    )
    if not result.success or result.identity is None:
        raise single_use_error(
            result.error or GateErrorCode.NOT_FOUND, result.message, INVALID_TOKEN_MESSAGE
        )

    _set_bypass_cookie(response, ctx, result.identity)
    return BypassResponse(message="Emergency access granted", identity=result.identity)


@router.post("/bypass", response_model=BypassResponse)
def static_bypass(
    body: TokenRequest,
    response: Response,
    ctx: AccessContext = Depends(get_context),
) -> BypassResponse:
    expected = ctx.settings.bypass_token
    if not expected:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    if not secrets.compare_digest(body.token.encode(), expected.encode()):
        logger.warning("Static bypass token rejected")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=INVALID_TOKEN_MESSAGE)

    _set_bypass_cookie(response, ctx, "static-bypass")
    logger.info("Static bypass token accepted")
    return BypassResponse(message="Maintenance bypass granted", identity="static-bypass")


# --- Admin endpoints ---


@router.get("", response_model=MaintenanceConfigResponse)
def get_maintenance_config(
    _admin: AdminAccount = Depends(get_current_admin),
    ctx: AccessContext = Depends(get_context),
) -> MaintenanceConfigResponse:
    result = maintenance.run_get_config(maintenance.GetConfigInput(), ctx.maintenance)
    if not result.success or result.config is None:
        raise http_error(result.error or GateErrorCode.STORE_UNAVAILABLE, result.message)
    return _config_response(result.config)


@router.put("", response_model=MaintenanceConfigResponse)
def update_maintenance_config(
    body: MaintenanceConfigUpdate,
    admin: AdminAccount = Depends(get_current_admin),
    ctx: AccessContext = Depends(get_context),
) -> MaintenanceConfigResponse:
    result = maintenance.run_set_config(
        maintenance.SetConfigInput(
            update=maintenance.MaintenanceUpdate(**body.model_dump()),
            actor=admin.email,
        ),
        ctx.maintenance,
    )
    if result.errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[
                {"field": e.field, "code": e.code, "message": e.message} for e in result.errors
            ],
        )
    if not result.success or result.config is None:
        raise http_error(result.error or GateErrorCode.STORE_UNAVAILABLE, result.message)
    return _config_response(result.config)


@router.delete("", response_model=MaintenanceConfigResponse)
def clear_maintenance_config(
    admin: AdminAccount = Depends(get_current_admin),
    ctx: AccessContext = Depends(get_context),
) -> MaintenanceConfigResponse:
    cleared = maintenance.run_clear(maintenance.ClearConfigInput(actor=admin.email), ctx.maintenance)
    if not cleared.success:
        raise http_error(cleared.error or GateErrorCode.STORE_UNAVAILABLE, cleared.message)
    return get_maintenance_config(admin, ctx)


@router.get("/emergency-access/stats", response_model=TokenStatsResponse)
def emergency_access_stats(
    _admin: AdminAccount = Depends(get_current_admin),
    ctx: AccessContext = Depends(get_context),
) -> TokenStatsResponse:
    result = emergency_access.run_stats(emergency_access.TokenStatsInput(), ctx.store, ctx.clock)
    if not result.success or result.stats is None:
        raise http_error(result.error or GateErrorCode.STORE_UNAVAILABLE, result.message)
    stats = result.stats
    return TokenStatsResponse(
        total=stats.total, active=stats.active, used=stats.used, expired=stats.expired
    )
