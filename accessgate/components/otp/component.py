"""One-time code component implementation.

Codes are stored per issuance as ``sha256(identity:code)``. The live code for
an identity carries ``live_key = identity`` and is inserted under a unique
guard on that field, so two concurrent issues for one identity cannot both
leave a valid code behind: the loser gets THROTTLED. Replacing a live
code goes through a compare-and-set on that record, and a lost
compare-and-set is reported the same way.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Any

from accessgate.adapters.auth.crypto import digest, digests_equal
from accessgate.core.ports.store import DocumentStorePort
from accessgate.domain.entities import OTP_COLLECTION, OneTimeCode
from accessgate.domain.errors import DuplicateKeyError, GateErrorCode, StoreUnavailableError
from accessgate.domain.identity import is_valid_email, normalize_email
from accessgate.rules.models import OtpRules

from .models import (
    CodeVerification,
    IssueCodeInput,
    IssueCodeOutput,
    PurgeExpiredInput,
    PurgeExpiredOutput,
    VerifyCodeInput,
    VerifyCodeOutput,
)
from .ports import CodeGeneratorPort, TimePort

logger = logging.getLogger(__name__)

# Bounded retries for the attempt counter compare-and-set.
_ATTEMPT_CAS_RETRIES = 5


class SecretsCodeGenerator:
    """Uniform codes from the OS CSPRNG."""

    def generate(self, digits: int) -> str:
        return str(secrets.randbelow(10**digits)).zfill(digits)


def _code_hash(identity: str, code: str) -> str:
    return digest(identity, code)


def _retire(store: DocumentStorePort, record: OneTimeCode, now: datetime) -> int:
    return store.update_one(
        OTP_COLLECTION,
        {"id": str(record.id), "consumed": False},
        {"consumed": True, "consumed_at": now, "live_key": None},
    )


def _lost_race(rules: OtpRules) -> IssueCodeOutput:
    return IssueCodeOutput(
        success=False,
        error=GateErrorCode.THROTTLED,
        retry_after_seconds=rules.min_reissue_seconds,
        message="A code was sent recently; wait before requesting another",
    )


def run_issue(
    inp: IssueCodeInput,
    store: DocumentStorePort,
    time: TimePort,
    rules: OtpRules | None = None,
    generator: CodeGeneratorPort | None = None,
) -> IssueCodeOutput:
    rules = rules or OtpRules()
    generator = generator or SecretsCodeGenerator()
    identity = normalize_email(inp.identity)

    if not is_valid_email(identity):
        return IssueCodeOutput(
            success=False,
            error=GateErrorCode.INVALID_FORMAT,
            message="A valid email address is required",
        )

    now = time.now_utc()
    try:
        doc = store.find_one(OTP_COLLECTION, {"live_key": identity})
        live = OneTimeCode.model_validate(doc) if doc else None

        if live is not None and not live.is_expired(now):
            elapsed = (now - live.created_at).total_seconds()
            if elapsed < rules.min_reissue_seconds:
                logger.warning("OTP issue for %s throttled", identity)
                return IssueCodeOutput(
                    success=False,
                    error=GateErrorCode.THROTTLED,
                    retry_after_seconds=max(1, int(rules.min_reissue_seconds - elapsed)),
                    message="A code was sent recently; wait before requesting another",
                )

        if live is not None and _retire(store, live, now) == 0:
            # Another issuer retired or replaced the live code first.
            logger.warning("Concurrent OTP issue for %s lost the race", identity)
            return _lost_race(rules)
        # Stale unconsumed codes outside the live slot are retired as well.
        store.update_many(
            OTP_COLLECTION,
            {"identity": identity, "live_key": None, "consumed": False},
            {"consumed": True, "consumed_at": now, "live_key": None},
        )

        code = generator.generate(rules.digits)
        record = OneTimeCode(
            identity=identity,
            code_hash=_code_hash(identity, code),
            created_at=now,
            expires_at=now + timedelta(seconds=rules.ttl_seconds),
            live_key=identity,
        )
        store.insert_one(OTP_COLLECTION, record.model_dump(mode="json"), unique_field="live_key")
    except DuplicateKeyError:
        logger.warning("Concurrent OTP issue for %s lost the race", identity)
        return _lost_race(rules)
    except StoreUnavailableError as e:
        logger.error("OTP store unavailable during issue: %s", e)
        return IssueCodeOutput(
            success=False,
            error=GateErrorCode.STORE_UNAVAILABLE,
            message="Code storage is unavailable; retry shortly",
        )

    logger.info("OTP issued for %s, expires %s", identity, record.expires_at.isoformat())
    return IssueCodeOutput(success=True, code=code, expires_at=record.expires_at)


def _record_failed_attempt(
    store: DocumentStorePort, record: OneTimeCode, rules: OtpRules, now: datetime
) -> int:
    """Increment the attempt counter; burn the code at the cap. Returns attempts left."""
    current = record
    for _ in range(_ATTEMPT_CAS_RETRIES):
        attempts = current.attempts + 1
        update: dict[str, Any] = {"attempts": attempts}
        if attempts >= rules.max_attempts:
            update.update({"consumed": True, "consumed_at": now, "live_key": None})
        matched = store.update_one(
            OTP_COLLECTION,
            {"id": str(current.id), "consumed": False, "attempts": current.attempts},
            update,
        )
        if matched:
            if attempts >= rules.max_attempts:
                logger.warning(
                    "OTP for %s burned after %d failed attempts", record.identity, attempts
                )
            return max(0, rules.max_attempts - attempts)

        doc = store.find_one(OTP_COLLECTION, {"id": str(current.id)})
        if doc is None:
            return 0
        current = OneTimeCode.model_validate(doc)
        if current.consumed:
            return 0
    return max(0, rules.max_attempts - current.attempts)


def run_verify(
    inp: VerifyCodeInput,
    store: DocumentStorePort,
    time: TimePort,
    rules: OtpRules | None = None,
) -> VerifyCodeOutput:
    rules = rules or OtpRules()
    identity = normalize_email(inp.identity)
    code = (inp.code or "").strip()

    if not (len(code) == rules.digits and code.isascii() and code.isdigit()):
        return VerifyCodeOutput(
            success=False,
            error=GateErrorCode.INVALID_FORMAT,
            message=f"Code must be {rules.digits} digits",
        )

    now = time.now_utc()
    code_hash = _code_hash(identity, code)
    try:
        doc = store.find_one(
            OTP_COLLECTION, {"identity": identity, "code_hash": code_hash}, sort_by="created_at"
        )
        if doc is not None:
            record = OneTimeCode.model_validate(doc)
            if not digests_equal(record.code_hash, code_hash):
                doc = None

        if doc is None:
            latest_doc = store.find_one(OTP_COLLECTION, {"identity": identity}, sort_by="created_at")
            if latest_doc is None:
                return VerifyCodeOutput(
                    success=False, error=GateErrorCode.NOT_FOUND, message="No code issued"
                )
            latest = OneTimeCode.model_validate(latest_doc)
            if latest.consumed:
                return VerifyCodeOutput(
                    success=False, error=GateErrorCode.MISMATCH, message="Code does not match"
                )
            if latest.is_expired(now):
                return VerifyCodeOutput(
                    success=False, error=GateErrorCode.EXPIRED, message="Code has expired"
                )
            remaining = _record_failed_attempt(store, latest, rules, now)
            logger.warning("OTP mismatch for %s (%d attempts left)", identity, remaining)
            return VerifyCodeOutput(
                success=False,
                error=GateErrorCode.MISMATCH,
                attempts_remaining=remaining,
                message="Code does not match",
            )

        if record.consumed:
            return VerifyCodeOutput(
                success=False,
                error=GateErrorCode.ALREADY_CONSUMED,
                message="Code has already been used",
            )
        if record.is_expired(now):
            return VerifyCodeOutput(
                success=False, error=GateErrorCode.EXPIRED, message="Code has expired"
            )

        if not _retire(store, record, now):
            return VerifyCodeOutput(
                success=False,
                error=GateErrorCode.ALREADY_CONSUMED,
                message="Code has already been used",
            )
    except StoreUnavailableError as e:
        logger.error("OTP store unavailable during verify: %s", e)
        return VerifyCodeOutput(
            success=False,
            error=GateErrorCode.STORE_UNAVAILABLE,
            message="Code storage is unavailable; retry shortly",
        )

    logger.info("OTP consumed for %s", identity)
    return VerifyCodeOutput(
        success=True, verification=CodeVerification(identity=identity, verified_at=now)
    )


def run_purge_expired(
    inp: PurgeExpiredInput, store: DocumentStorePort, time: TimePort
) -> PurgeExpiredOutput:
    try:
        deleted = store.delete_many(OTP_COLLECTION, {"expires_at": {"$lt": time.now_utc()}})
    except StoreUnavailableError as e:
        logger.error("OTP store unavailable during purge: %s", e)
        return PurgeExpiredOutput(success=False, error=GateErrorCode.STORE_UNAVAILABLE)

    if deleted:
        logger.info("Purged %d expired one-time codes", deleted)
    return PurgeExpiredOutput(success=True, deleted=deleted)


def run(
    inp: IssueCodeInput | VerifyCodeInput | PurgeExpiredInput,
    *,
    store: DocumentStorePort,
    time: TimePort,
    rules: OtpRules | None = None,
    generator: CodeGeneratorPort | None = None,
) -> IssueCodeOutput | VerifyCodeOutput | PurgeExpiredOutput:
    if isinstance(inp, IssueCodeInput):
        return run_issue(inp, store, time, rules, generator)

    elif isinstance(inp, VerifyCodeInput):
        return run_verify(inp, store, time, rules)

    elif isinstance(inp, PurgeExpiredInput):
        return run_purge_expired(inp, store, time)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
