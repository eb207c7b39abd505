"""Emergency access component implementation.

Tokens are opaque ``secrets.token_urlsafe`` strings handed to the caller
once; only their SHA-256 digest is stored. Redemption flips ``consumed``
with a compare-and-set, so a token admits exactly one redeemer.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from accessgate.adapters.auth.crypto import digest
from accessgate.core.ports.store import DocumentStorePort
from accessgate.domain.entities import EMERGENCY_COLLECTION, EmergencyToken
from accessgate.domain.errors import DuplicateKeyError, GateErrorCode, StoreUnavailableError
from accessgate.domain.identity import is_valid_email, normalize_email, normalize_ip
from accessgate.rules.models import EmergencyAccessRules

from .models import (
    EmergencyAccessOutput,
    IssueTokenInput,
    RedeemTokenInput,
    TokenStats,
    TokenStatsInput,
)
from .ports import AllowlistPort, TimePort

logger = logging.getLogger(__name__)


def _store_unavailable(exc: StoreUnavailableError) -> EmergencyAccessOutput:
    logger.error("Emergency access store unavailable: %s", exc)
    return EmergencyAccessOutput(
        success=False,
        error=GateErrorCode.STORE_UNAVAILABLE,
        message="Emergency access is unavailable; retry shortly",
    )


def _throttled(message: str) -> EmergencyAccessOutput:
    return EmergencyAccessOutput(success=False, error=GateErrorCode.THROTTLED, message=message)


def run_issue(
    inp: IssueTokenInput,
    store: DocumentStorePort,
    allowlist: AllowlistPort,
    time: TimePort,
    rules: EmergencyAccessRules | None = None,
) -> EmergencyAccessOutput:
    rules = rules or EmergencyAccessRules()
    email = normalize_email(inp.email)
    ip = normalize_ip(inp.ip_address) or None

    if not is_valid_email(email):
        return EmergencyAccessOutput(
            success=False,
            error=GateErrorCode.INVALID_FORMAT,
            message="A valid email address is required",
        )

    now = time.now_utc()
    try:
        if not allowlist.is_email_allowlisted(email):
            logger.warning("Emergency token refused for %s: not allow-listed", email)
            return EmergencyAccessOutput(
                success=False,
                error=GateErrorCode.NOT_ALLOWLISTED,
                message="Email is not authorized for emergency access",
            )

        active = store.count(
            EMERGENCY_COLLECTION,
            {"identity": email, "consumed": False, "expires_at": {"$gt": now}},
        )
        if active >= rules.max_active_per_email:
            logger.warning("Emergency token refused for %s: %d active", email, active)
            return _throttled("Too many active emergency tokens for this email")

        if ip:
            recent = store.count(
                EMERGENCY_COLLECTION,
                {"ip_address": ip, "created_at": {"$gt": now - timedelta(hours=1)}},
            )
            if recent >= rules.max_issued_per_ip_per_hour:
                logger.warning("Emergency token refused for %s: IP %s over hourly cap", email, ip)
                return _throttled("Too many emergency token requests; try again later")

        token = secrets.token_urlsafe(rules.token_bytes)
        record = EmergencyToken(
            token_hash=digest(token),
            identity=email,
            ip_address=ip,
            created_at=now,
            expires_at=now + timedelta(hours=rules.ttl_hours),
        )
        store.insert_one(
            EMERGENCY_COLLECTION, record.model_dump(mode="json"), unique_field="token_hash"
        )
    except DuplicateKeyError:
        # digest collision on token_hash
        logger.error("Emergency token digest collision for %s", email)
        return _throttled("Could not issue a token; try again")
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    logger.info("Emergency token issued for %s, expires %s", email, record.expires_at.isoformat())
    return EmergencyAccessOutput(
        success=True, token=token, identity=email, expires_at=record.expires_at
    )


def run_redeem(
    inp: RedeemTokenInput, store: DocumentStorePort, time: TimePort
) -> EmergencyAccessOutput:
    token = (inp.token or "").strip()
    if not token:
        return EmergencyAccessOutput(
            success=False, error=GateErrorCode.NOT_FOUND, message="Token not found"
        )

    now = time.now_utc()
    token_hash = digest(token)
    try:
        doc = store.find_one(EMERGENCY_COLLECTION, {"token_hash": token_hash})
        if doc is None:
            return EmergencyAccessOutput(
                success=False, error=GateErrorCode.NOT_FOUND, message="Token not found"
            )

        record = EmergencyToken.model_validate(doc)
        if record.consumed:
            return EmergencyAccessOutput(
                success=False,
                error=GateErrorCode.ALREADY_CONSUMED,
                message="Token has already been used",
            )
        if now > record.expires_at:
            return EmergencyAccessOutput(
                success=False, error=GateErrorCode.EXPIRED, message="Token has expired"
            )

        won = store.update_one(
            EMERGENCY_COLLECTION,
            {"token_hash": token_hash, "consumed": False},
            {"consumed": True, "consumed_at": now},
        )
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    if not won:
        return EmergencyAccessOutput(
            success=False,
            error=GateErrorCode.ALREADY_CONSUMED,
            message="Token has already been used",
        )

    logger.info("Emergency token redeemed by %s", record.identity)
    return EmergencyAccessOutput(success=True, identity=record.identity)


def run_stats(
    inp: TokenStatsInput, store: DocumentStorePort, time: TimePort
) -> EmergencyAccessOutput:
    now = time.now_utc()
    try:
        docs = store.find(EMERGENCY_COLLECTION, {})
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    stats = TokenStats(total=len(docs))
    for doc in docs:
        record = EmergencyToken.model_validate(doc)
        if record.consumed:
            stats.used += 1
        elif now > record.expires_at:
            stats.expired += 1
        else:
            stats.active += 1
    return EmergencyAccessOutput(success=True, stats=stats)


def run(
    inp: IssueTokenInput | RedeemTokenInput | TokenStatsInput,
    *,
    store: DocumentStorePort,
    time: TimePort,
    allowlist: AllowlistPort | None = None,
    rules: EmergencyAccessRules | None = None,
) -> EmergencyAccessOutput:
    if isinstance(inp, IssueTokenInput):
        assert allowlist
        return run_issue(inp, store, allowlist, time, rules)

    elif isinstance(inp, RedeemTokenInput):
        return run_redeem(inp, store, time)

    elif isinstance(inp, TokenStatsInput):
        return run_stats(inp, store, time)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
