"""
Process settings from the environment, plus startup validation.

The rules file carries tunables; the environment carries deployment
toggles and secrets. ``validate_startup`` stops the process before it
serves anything when the two cannot work together.
"""

from __future__ import annotations

import logging
import os
import re
import secrets
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from accessgate.app_shell.client_ip import is_valid_proxy
from accessgate.domain.identity import is_valid_email, is_valid_ip, normalize_email, normalize_ip
from accessgate.rules.models import Rules

logger = logging.getLogger(__name__)

DB_FILENAME = "access.db"
DEFAULT_RULES_PATH = "rules.yaml"
MIN_SECRET_LENGTH = 16

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUE_VALUES


def _split(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path(".")
    rules_path: Path = Path(DEFAULT_RULES_PATH)
    secret_key: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    secret_key_from_env: bool = False
    maintenance_mode: bool = False
    allowed_ips: tuple[str, ...] = ()
    allowed_emails: tuple[str, ...] = ()
    bypass_token: str | None = None
    debug_codes: bool = False
    trusted_proxies: tuple[str, ...] = ()

    @property
    def db_path(self) -> str:
        return str(self.data_dir / DB_FILENAME)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        secret_key = env.get("ACCESS_SECRET_KEY")
        return cls(
            data_dir=Path(env.get("ACCESS_DATA_DIR", ".")),
            rules_path=Path(env.get("ACCESS_RULES_PATH", DEFAULT_RULES_PATH)),
            secret_key=secret_key or secrets.token_urlsafe(32),
            secret_key_from_env=bool(secret_key),
            maintenance_mode=_flag(env.get("MAINTENANCE_MODE")),
            allowed_ips=tuple(normalize_ip(ip) for ip in _split(env.get("MAINTENANCE_ALLOWED_IPS"))),
            allowed_emails=tuple(
                normalize_email(e) for e in _split(env.get("MAINTENANCE_ALLOWED_EMAILS"))
            ),
            bypass_token=env.get("MAINTENANCE_BYPASS_TOKEN") or None,
            debug_codes=_flag(env.get("ACCESS_DEBUG_CODES")),
            trusted_proxies=tuple(
                normalize_ip(p) for p in _split(env.get("ACCESS_TRUSTED_PROXIES"))
            ),
        )


def config_problems(rules: Rules, settings: Settings) -> list[str]:
    """Every reason the rules/settings combination cannot run."""
    problems: list[str] = []

    try:
        re.compile(rules.system_lock.pin_pattern)
    except re.error as e:
        problems.append(f"system_lock.pin_pattern is not a valid regex: {e}")

    if settings.secret_key_from_env and len(settings.secret_key) < MIN_SECRET_LENGTH:
        problems.append(f"ACCESS_SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters")

    if settings.bypass_token is not None and len(settings.bypass_token) < MIN_SECRET_LENGTH:
        problems.append(
            f"MAINTENANCE_BYPASS_TOKEN must be at least {MIN_SECRET_LENGTH} characters"
        )

    bad_ips = [ip for ip in settings.allowed_ips if not is_valid_ip(ip)]
    if bad_ips:
        problems.append(f"MAINTENANCE_ALLOWED_IPS has invalid entries: {', '.join(bad_ips)}")

    bad_proxies = [p for p in settings.trusted_proxies if not is_valid_proxy(p)]
    if bad_proxies:
        problems.append(f"ACCESS_TRUSTED_PROXIES has invalid entries: {', '.join(bad_proxies)}")

    bad_emails = [e for e in settings.allowed_emails if not is_valid_email(e)]
    if bad_emails:
        problems.append(
            f"MAINTENANCE_ALLOWED_EMAILS has invalid entries: {', '.join(bad_emails)}"
        )

    if not settings.data_dir.is_dir():
        problems.append(f"ACCESS_DATA_DIR {settings.data_dir} is not a directory")

    return problems


def validate_startup(rules: Rules, settings: Settings) -> None:
    """Exit with status 1 when the configuration cannot work."""
    problems = config_problems(rules, settings)
    if problems:
        for problem in problems:
            print(f"CRITICAL: {problem}", file=sys.stderr)
        sys.exit(1)

    if not settings.secret_key_from_env:
        logger.warning(
            "ACCESS_SECRET_KEY not set; using a per-process key "
            "(sessions and bypass cookies end on restart)"
        )
    if settings.debug_codes or rules.debug.expose_codes:
        logger.warning("Debug code exposure is ON; one-time codes appear in responses and logs")
    if settings.maintenance_mode:
        logger.warning("MAINTENANCE_MODE is set; maintenance is forced on")
