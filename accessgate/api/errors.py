"""
Mapping from component error codes to HTTP responses.

One-time code and emergency token failures collapse to a single status and
message so callers cannot tell "never existed" from "expired" or "used".
The specific code is still logged by the component.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from accessgate.domain.errors import GateErrorCode

STATUS_BY_CODE: dict[GateErrorCode, int] = {
    GateErrorCode.INVALID_FORMAT: status.HTTP_400_BAD_REQUEST,
    GateErrorCode.NOT_CONFIGURED: status.HTTP_409_CONFLICT,
    GateErrorCode.INCORRECT_CURRENT_SECRET: status.HTTP_403_FORBIDDEN,
    GateErrorCode.MISMATCH: status.HTTP_401_UNAUTHORIZED,
    GateErrorCode.THROTTLED: status.HTTP_429_TOO_MANY_REQUESTS,
    GateErrorCode.EXPIRED: status.HTTP_400_BAD_REQUEST,
    GateErrorCode.ALREADY_CONSUMED: status.HTTP_400_BAD_REQUEST,
    GateErrorCode.NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    GateErrorCode.NOT_ALLOWLISTED: status.HTTP_403_FORBIDDEN,
    GateErrorCode.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    GateErrorCode.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

SINGLE_USE_FAILURES = frozenset(
    {
        GateErrorCode.MISMATCH,
        GateErrorCode.EXPIRED,
        GateErrorCode.ALREADY_CONSUMED,
        GateErrorCode.NOT_FOUND,
    }
)

INVALID_CODE_MESSAGE = "Invalid or expired code"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"


def http_error(
    code: GateErrorCode,
    message: str | None,
    retry_after_seconds: int | None = None,
) -> HTTPException:
    headers = None
    if code == GateErrorCode.THROTTLED and retry_after_seconds:
        headers = {"Retry-After": str(retry_after_seconds)}
    return HTTPException(
        status_code=STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST),
        detail=message or code.value,
        headers=headers,
    )


def single_use_error(
    code: GateErrorCode,
    message: str | None,
    generic_message: str,
    retry_after_seconds: int | None = None,
) -> HTTPException:
    """Like http_error, but every single-use failure reads the same."""
    if code in SINGLE_USE_FAILURES:
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=generic_message)
    return http_error(code, message, retry_after_seconds)
