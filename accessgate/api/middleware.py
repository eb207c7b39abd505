"""
Edge gating applied to every request.

Order: resolve caller → rate limit (admins exempt) → maintenance gate
(exempt path prefixes re-checked on each request) → handler.
"""

from __future__ import annotations

import logging
from math import ceil

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from accessgate.api.deps import BYPASS_COOKIE, request_token
from accessgate.app_shell.client_ip import client_ip
from accessgate.app_shell.context import AccessContext

logger = logging.getLogger(__name__)

MAINTENANCE_PAGE = "/maintenance"


def is_exempt(path: str, prefixes: list[str]) -> bool:
    """Segment-aware prefix match: ``/admin`` covers ``/admin/x`` but not ``/administer``."""
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def _bearer(request: Request) -> str | None:
    auth = request.headers.get("authorization", "")
    scheme, _, value = auth.partition(" ")
    return value.strip() if scheme.lower() == "bearer" and value.strip() else None


class AccessGateMiddleware(BaseHTTPMiddleware):
    def _rate_headers(self, ctx: AccessContext, ip: str) -> dict[str, str]:
        limiter = ctx.rate_limiter
        reset_at = limiter.reset_time(ip)
        now = ctx.clock.now_utc()
        reset_in = ceil((reset_at - now).total_seconds()) if reset_at else 0
        return {
            "X-RateLimit-Limit": str(limiter.limit),
            "X-RateLimit-Remaining": str(limiter.remaining(ip)),
            "X-RateLimit-Reset": str(max(0, reset_in)),
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        ctx: AccessContext | None = getattr(request.app.state, "context", None)
        if ctx is None:
            return await call_next(request)

        path = request.url.path
        ip = client_ip(
            request.headers,
            request.client.host if request.client else None,
            ctx.settings.trusted_proxies,
        )

        token = request_token(request, _bearer(request))
        account = await run_in_threadpool(ctx.admins.account_for_token, token) if token else None
        is_admin = account is not None and account.is_admin

        request.state.client_ip = ip
        request.state.account = account

        # --- Rate limit ---
        rate_headers: dict[str, str] = {}
        if not is_admin:
            if ctx.rate_limiter.is_limited(ip, is_admin=False):
                headers = self._rate_headers(ctx, ip)
                headers["Retry-After"] = str(max(1, int(headers["X-RateLimit-Reset"])))
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too many requests, please try again later."},
                    headers=headers,
                )
            rate_headers = self._rate_headers(ctx, ip)

        # --- Maintenance gate ---
        if not is_exempt(path, ctx.rules.maintenance.exempt_path_prefixes):
            bypass = request.cookies.get(BYPASS_COOKIE)
            bypass_identity = ctx.tokens.decode_bypass_token(bypass) if bypass else None
            if bypass_identity is None:
                email = account.email if account else None
                allowed = await run_in_threadpool(ctx.maintenance.is_allowed, ip, email)
                if not allowed:
                    logger.info("Maintenance gate blocked %s on %s", ip, path)
                    return await self._blocked(ctx, path, rate_headers)

        response = await call_next(request)
        response.headers.update(rate_headers)
        return response

    async def _blocked(
        self, ctx: AccessContext, path: str, headers: dict[str, str]
    ) -> Response:
        if path.startswith("/api/"):
            status = await run_in_threadpool(ctx.maintenance.status_for_display)
            return JSONResponse(
                status_code=503,
                content={
                    "detail": status.message,
                    "maintenance": True,
                    "estimated_time": status.estimated_time,
                },
                headers=headers,
            )
        return RedirectResponse(url=MAINTENANCE_PAGE, status_code=307, headers=headers)
