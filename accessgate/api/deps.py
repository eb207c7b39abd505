from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from accessgate.app_shell.config import Settings
from accessgate.app_shell.context import AccessContext
from accessgate.domain.entities import AdminAccount

ACCESS_COOKIE = "access_token"
BYPASS_COOKIE = "maintenance_bypass"


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


# --- Context ---
def get_context(request: Request) -> AccessContext:
    ctx: AccessContext | None = getattr(request.app.state, "context", None)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting",
        )
    return ctx


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/setup/complete", auto_error=False)


def request_token(request: Request, bearer: str | None = None) -> str | None:
    """Bearer header first, then the HttpOnly access cookie."""
    if bearer:
        return bearer
    cookie_token = request.cookies.get(ACCESS_COOKIE)
    if cookie_token and cookie_token.startswith("Bearer "):
        return cookie_token.split(" ", 1)[1]
    return cookie_token or None


def get_current_admin(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    ctx: AccessContext = Depends(get_context),
) -> AdminAccount:
    token = request_token(request, token)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    account = ctx.admins.account_for_token(token)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not account.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

    return account
