"""Administrator bootstrap flow.

Steps, each a separate stateless request:

1. verify-pin: check the system lock PIN (nothing persisted)
2. request-code: re-verify the PIN, issue a one-time code for the email and
   mail it
3. complete: consume the code, then insert the account under a unique guard
   on email

Only the one-time code is persisted between steps, so replay protection
rests on the code being single use.
"""

from __future__ import annotations

import logging
from datetime import datetime

from accessgate.adapters.email_dispatch import render_code_email
from accessgate.components import otp, system_lock
from accessgate.core.ports.store import DocumentStorePort
from accessgate.domain.entities import ACCOUNTS_COLLECTION, AdminAccount
from accessgate.domain.errors import DuplicateKeyError, GateErrorCode, StoreUnavailableError
from accessgate.domain.identity import is_valid_email, normalize_email
from accessgate.rules.models import OtpRules

from .models import (
    BootstrapOutput,
    CompleteSetupInput,
    CreateAdminInput,
    RequestCodeInput,
    SetupStatus,
    SetupStatusInput,
    VerifyPinStepInput,
)
from .ports import AccessTokenPort, EmailSenderPort, PasswordHasherPort, TimePort

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
MAX_DISPLAY_NAME_LENGTH = 100
ACCESS_TOKEN_MINUTES = 24 * 60


def _check_pin(
    pin: str, store: DocumentStorePort, hasher: system_lock.SecretHasherPort
) -> BootstrapOutput | None:
    """Return a failure output, or None when the PIN verified."""
    result = system_lock.run_verify_pin(system_lock.VerifyPinInput(pin=pin), store, hasher)
    if result.error is not None:
        return BootstrapOutput.failed(result.error, result.message or "System lock unavailable")
    if not result.verified:
        logger.warning("Bootstrap PIN verification failed")
        return BootstrapOutput.failed(GateErrorCode.MISMATCH, "Invalid PIN")
    return None


def run_verify_pin(
    inp: VerifyPinStepInput,
    store: DocumentStorePort,
    hasher: system_lock.SecretHasherPort,
) -> BootstrapOutput:
    failure = _check_pin(inp.pin, store, hasher)
    if failure is not None:
        return failure
    return BootstrapOutput(success=True, verified=True, message="PIN verified")


def run_request_code(
    inp: RequestCodeInput,
    store: DocumentStorePort,
    hasher: system_lock.SecretHasherPort,
    time: TimePort,
    email_sender: EmailSenderPort,
    otp_rules: OtpRules | None = None,
    generator: otp.CodeGeneratorPort | None = None,
    expose_code: bool = False,
) -> BootstrapOutput:
    otp_rules = otp_rules or OtpRules()
    email = normalize_email(inp.email)
    if not is_valid_email(email):
        return BootstrapOutput.failed(
            GateErrorCode.INVALID_FORMAT, "A valid email address is required"
        )

    failure = _check_pin(inp.pin, store, hasher)
    if failure is not None:
        return failure

    issued = otp.run_issue(otp.IssueCodeInput(identity=email), store, time, otp_rules, generator)
    if not issued.success or issued.code is None:
        assert issued.error is not None
        return BootstrapOutput.failed(
            issued.error,
            issued.message or "Could not issue a code",
            retry_after_seconds=issued.retry_after_seconds,
        )

    subject, body_html, body_text = render_code_email(issued.code, otp_rules.ttl_seconds)
    delivered = email_sender.send(email, subject, body_html, body_text)
    if not delivered:
        # The code stays valid; the caller may request a fresh one later.
        logger.warning("Setup code for %s persisted but not delivered", email)
    if expose_code:
        logger.debug("Setup code for %s: %s", email, issued.code)

    return BootstrapOutput(
        success=True,
        verified=True,
        expires_at=issued.expires_at,
        delivered=delivered,
        debug_code=issued.code if expose_code else None,
        message=(
            "Verification code sent" if delivered else "Verification code issued; delivery failed"
        ),
    )


def _validate_credentials(password: str, display_name: str) -> BootstrapOutput | None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return BootstrapOutput.failed(
            GateErrorCode.INVALID_FORMAT,
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    if len(display_name) > MAX_DISPLAY_NAME_LENGTH:
        return BootstrapOutput.failed(
            GateErrorCode.INVALID_FORMAT,
            f"Display name must not exceed {MAX_DISPLAY_NAME_LENGTH} characters",
        )
    return None


def run_create_admin(
    inp: CreateAdminInput,
    store: DocumentStorePort,
    passwords: PasswordHasherPort,
    tokens: AccessTokenPort,
    time: TimePort,
) -> BootstrapOutput:
    display_name = (inp.display_name or "").strip()
    failure = _validate_credentials(inp.password, display_name)
    if failure is not None:
        return failure

    email = inp.verification.identity
    now: datetime = time.now_utc()
    account = AdminAccount(
        email=email,
        display_name=display_name or email.split("@", 1)[0],
        password_hash=passwords.hash_password(inp.password),
        roles=["admin"],
        status="active",
        created_at=now,
        updated_at=now,
    )
    try:
        store.insert_one(ACCOUNTS_COLLECTION, account.model_dump(mode="json"), unique_field="email")
    except DuplicateKeyError:
        logger.warning("Administrator %s already exists", email)
        return BootstrapOutput.failed(
            GateErrorCode.ALREADY_EXISTS, "An account with this email already exists"
        )
    except StoreUnavailableError as e:
        logger.error("Account store unavailable: %s", e)
        return BootstrapOutput.failed(
            GateErrorCode.STORE_UNAVAILABLE, "Account storage is unavailable; retry shortly"
        )

    logger.info("Administrator %s created", email)
    return BootstrapOutput(
        success=True,
        verified=True,
        account=account,
        access_token=tokens.create_access_token(account.id, ACCESS_TOKEN_MINUTES),
        message="Administrator account created",
    )


def run_complete_setup(
    inp: CompleteSetupInput,
    store: DocumentStorePort,
    passwords: PasswordHasherPort,
    tokens: AccessTokenPort,
    time: TimePort,
    otp_rules: OtpRules | None = None,
) -> BootstrapOutput:
    # Reject bad credentials before the code is spent.
    failure = _validate_credentials(inp.password, (inp.display_name or "").strip())
    if failure is not None:
        return failure

    verified = otp.run_verify(
        otp.VerifyCodeInput(identity=inp.email, code=inp.code), store, time, otp_rules
    )
    if not verified.success or verified.verification is None:
        assert verified.error is not None
        logger.warning(
            "Setup code rejected for %s: %s", normalize_email(inp.email), verified.error.value
        )
        return BootstrapOutput.failed(verified.error, verified.message or "Invalid code")

    return run_create_admin(
        CreateAdminInput(
            verification=verified.verification,
            password=inp.password,
            display_name=inp.display_name,
        ),
        store,
        passwords,
        tokens,
        time,
    )


def run_setup_status(
    inp: SetupStatusInput,
    store: DocumentStorePort,
) -> BootstrapOutput:
    lock = system_lock.run_status(system_lock.LockStatusInput(), store)
    try:
        accounts = store.find(ACCOUNTS_COLLECTION, {"status": "active"})
    except StoreUnavailableError as e:
        logger.error("Account store unavailable: %s", e)
        return BootstrapOutput.failed(
            GateErrorCode.STORE_UNAVAILABLE, "Account storage is unavailable; retry shortly"
        )

    admin_exists = any(AdminAccount.model_validate(doc).is_admin for doc in accounts)
    return BootstrapOutput(
        success=lock.success,
        status=SetupStatus(
            admin_exists=admin_exists,
            lock_configured=bool(lock.status and lock.status.locked),
        ),
        error=lock.error,
    )


def run(
    inp: VerifyPinStepInput
    | RequestCodeInput
    | CompleteSetupInput
    | CreateAdminInput
    | SetupStatusInput,
    *,
    store: DocumentStorePort,
    time: TimePort,
    hasher: system_lock.SecretHasherPort | None = None,
    email_sender: EmailSenderPort | None = None,
    passwords: PasswordHasherPort | None = None,
    tokens: AccessTokenPort | None = None,
    otp_rules: OtpRules | None = None,
    generator: otp.CodeGeneratorPort | None = None,
    expose_code: bool = False,
) -> BootstrapOutput:
    if isinstance(inp, VerifyPinStepInput):
        assert hasher
        return run_verify_pin(inp, store, hasher)

    elif isinstance(inp, RequestCodeInput):
        assert hasher and email_sender
        return run_request_code(
            inp, store, hasher, time, email_sender, otp_rules, generator, expose_code
        )

    elif isinstance(inp, CompleteSetupInput):
        assert passwords and tokens
        return run_complete_setup(inp, store, passwords, tokens, time, otp_rules)

    elif isinstance(inp, CreateAdminInput):
        assert passwords and tokens
        return run_create_admin(inp, store, passwords, tokens, time)

    elif isinstance(inp, SetupStatusInput):
        return run_setup_status(inp, store)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
