"""System lock component implementation.

The PIN lives in one HashedSecret document keyed ``system_lock_pin``.
Setting or changing the PIN upserts that document (no history is kept);
disabling only clears ``active`` so the hash survives for audit.
"""

from __future__ import annotations

import logging
import re

from accessgate.core.ports.store import DocumentStorePort
from accessgate.domain.entities import SECRETS_COLLECTION, SYSTEM_LOCK_KEY, HashedSecret
from accessgate.domain.errors import GateErrorCode, StoreUnavailableError

from .models import (
    ChangePinInput,
    DisableLockInput,
    LockStatus,
    LockStatusInput,
    SetPinInput,
    SystemLockOutput,
    VerifyPinInput,
)
from .ports import SecretHasherPort, TimePort

logger = logging.getLogger(__name__)

DEFAULT_PIN_PATTERN = r"^\d{4,6}$"

_LOCK_FILTER = {"key": SYSTEM_LOCK_KEY}


def _store_unavailable(exc: StoreUnavailableError) -> SystemLockOutput:
    logger.error("System lock store unavailable: %s", exc)
    return SystemLockOutput(
        success=False,
        error=GateErrorCode.STORE_UNAVAILABLE,
        message="System lock storage is unavailable; retry shortly",
    )


def _load_active(store: DocumentStorePort) -> HashedSecret | None:
    doc = store.find_one(SECRETS_COLLECTION, _LOCK_FILTER)
    if doc is None:
        return None
    secret = HashedSecret.model_validate(doc)
    return secret if secret.active else None


def _store_pin(
    pin: str,
    actor: str,
    store: DocumentStorePort,
    hasher: SecretHasherPort,
    time: TimePort,
) -> None:
    secret = HashedSecret(
        key=SYSTEM_LOCK_KEY,
        hash=hasher.hash_secret(pin),
        set_by=actor,
        set_at=time.now_utc(),
        active=True,
    )
    store.upsert(SECRETS_COLLECTION, _LOCK_FILTER, secret.model_dump(mode="json"))


def run_set_pin(
    inp: SetPinInput,
    store: DocumentStorePort,
    hasher: SecretHasherPort,
    time: TimePort,
    pin_pattern: str = DEFAULT_PIN_PATTERN,
) -> SystemLockOutput:
    if not re.fullmatch(pin_pattern, inp.pin or "", flags=re.ASCII):
        return SystemLockOutput(
            success=False,
            error=GateErrorCode.INVALID_FORMAT,
            message="PIN must be 4-6 digits only",
        )

    try:
        _store_pin(inp.pin, inp.actor, store, hasher, time)
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    logger.info("System lock PIN set by %s", inp.actor)
    return SystemLockOutput(success=True, message="System lock PIN set successfully")


def run_verify_pin(
    inp: VerifyPinInput,
    store: DocumentStorePort,
    hasher: SecretHasherPort,
) -> SystemLockOutput:
    try:
        secret = _load_active(store)
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    if secret is None:
        return SystemLockOutput(
            success=False,
            error=GateErrorCode.NOT_CONFIGURED,
            message="System lock not configured",
        )

    verified = bool(inp.pin) and hasher.verify_secret(inp.pin, secret.hash)
    return SystemLockOutput(success=True, verified=verified)


def run_change_pin(
    inp: ChangePinInput,
    store: DocumentStorePort,
    hasher: SecretHasherPort,
    time: TimePort,
    pin_pattern: str = DEFAULT_PIN_PATTERN,
) -> SystemLockOutput:
    if not re.fullmatch(pin_pattern, inp.new_pin or "", flags=re.ASCII):
        return SystemLockOutput(
            success=False,
            error=GateErrorCode.INVALID_FORMAT,
            message="PIN must be 4-6 digits only",
        )

    try:
        secret = _load_active(store)
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    if secret is None:
        return SystemLockOutput(
            success=False,
            error=GateErrorCode.NOT_CONFIGURED,
            message="System lock not configured",
        )

    if not inp.current_pin or not hasher.verify_secret(inp.current_pin, secret.hash):
        logger.warning("System lock PIN change by %s rejected: wrong current PIN", inp.actor)
        return SystemLockOutput(
            success=False,
            error=GateErrorCode.INCORRECT_CURRENT_SECRET,
            message="Current PIN is incorrect",
        )

    try:
        _store_pin(inp.new_pin, inp.actor, store, hasher, time)
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    logger.info("System lock PIN changed by %s", inp.actor)
    return SystemLockOutput(success=True, message="System lock PIN changed successfully")


def run_disable(inp: DisableLockInput, store: DocumentStorePort) -> SystemLockOutput:
    try:
        store.update_one(SECRETS_COLLECTION, _LOCK_FILTER, {"active": False})
    except StoreUnavailableError as e:
        return _store_unavailable(e)

    logger.info("System lock disabled by %s", inp.actor)
    return SystemLockOutput(success=True, message="System lock disabled")


def run_status(inp: LockStatusInput, store: DocumentStorePort) -> SystemLockOutput:
    try:
        doc = store.find_one(SECRETS_COLLECTION, _LOCK_FILTER)
    except StoreUnavailableError as e:
        # Report locked while the store is down.
        out = _store_unavailable(e)
        out.status = LockStatus(locked=True)
        return out

    if doc is None:
        return SystemLockOutput(success=True, status=LockStatus(locked=False))

    secret = HashedSecret.model_validate(doc)
    return SystemLockOutput(
        success=True,
        status=LockStatus(locked=secret.active, set_by=secret.set_by, set_at=secret.set_at),
    )


def run(
    inp: SetPinInput | VerifyPinInput | ChangePinInput | DisableLockInput | LockStatusInput,
    *,
    store: DocumentStorePort,
    hasher: SecretHasherPort | None = None,
    time: TimePort | None = None,
    pin_pattern: str = DEFAULT_PIN_PATTERN,
) -> SystemLockOutput:
    if isinstance(inp, SetPinInput):
        assert hasher and time
        return run_set_pin(inp, store, hasher, time, pin_pattern)

    elif isinstance(inp, VerifyPinInput):
        assert hasher
        return run_verify_pin(inp, store, hasher)

    elif isinstance(inp, ChangePinInput):
        assert hasher and time
        return run_change_pin(inp, store, hasher, time, pin_pattern)

    elif isinstance(inp, DisableLockInput):
        return run_disable(inp, store)

    elif isinstance(inp, LockStatusInput):
        return run_status(inp, store)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
