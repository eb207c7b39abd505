"""
MaintenanceGate - global maintenance flag plus allow-lists.

Key behaviors:
- One singleton record (``maintenance_mode``) holds the operator's settings;
  the baseline allow-lists from configuration are merged in on every read
- Reads are cached per process for at most ``cache_ttl_seconds``; every
  write drops the cache
- ``is_allowed`` fails closed when the store is unavailable (only the
  baseline allow-lists still pass); ``status_for_display`` fails open so
  the maintenance page never takes the site down with it
- ``force_enabled`` (the MAINTENANCE_MODE switch) overrides the stored flag
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from threading import Lock
from typing import Any

from accessgate.core.ports.store import DocumentStorePort
from accessgate.domain.entities import MAINTENANCE_COLLECTION, MAINTENANCE_KEY, MaintenanceConfig
from accessgate.domain.errors import StoreUnavailableError
from accessgate.domain.identity import is_valid_email, is_valid_ip, normalize_email, normalize_ip
from accessgate.rules.models import MaintenanceRules

from .models import MaintenanceStatus, MaintenanceUpdate, ValidationError
from .ports import TimePort

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500
MAX_ESTIMATED_TIME_LENGTH = 100

_RECORD_FILTER = {"key": MAINTENANCE_KEY}


# --- Pure functions ---


def merge_allowlists(baseline: Iterable[str], override: Iterable[str]) -> list[str]:
    """Union of both lists, blank entries dropped, sorted and deduplicated."""
    return sorted({entry for entry in (*baseline, *override) if entry})


def validate_update(update: MaintenanceUpdate) -> list[ValidationError]:
    errors: list[ValidationError] = []

    if update.message is not None and len(update.message) > MAX_MESSAGE_LENGTH:
        errors.append(
            ValidationError(
                field="message",
                code="max_length",
                message=f"Field 'message' must not exceed {MAX_MESSAGE_LENGTH} characters",
            )
        )
    if update.estimated_time is not None and len(update.estimated_time) > MAX_ESTIMATED_TIME_LENGTH:
        errors.append(
            ValidationError(
                field="estimated_time",
                code="max_length",
                message=(
                    "Field 'estimated_time' must not exceed "
                    f"{MAX_ESTIMATED_TIME_LENGTH} characters"
                ),
            )
        )

    for ip in update.allowed_ips or []:
        if not is_valid_ip(normalize_ip(ip)):
            errors.append(
                ValidationError(
                    field="allowed_ips",
                    code="invalid_ip",
                    message=f"'{ip}' is not a valid IP address",
                )
            )
    for email in update.allowed_emails or []:
        if not is_valid_email(normalize_email(email)):
            errors.append(
                ValidationError(
                    field="allowed_emails",
                    code="invalid_email",
                    message=f"'{email}' is not a valid email address",
                )
            )
    return errors


# --- Service ---


class MaintenanceGate:
    """Maintenance flag and allow-list checks consulted on every request."""

    def __init__(
        self,
        store: DocumentStorePort,
        time: TimePort,
        rules: MaintenanceRules | None = None,
        baseline_ips: Iterable[str] | None = None,
        baseline_emails: Iterable[str] | None = None,
        force_enabled: bool = False,
    ) -> None:
        self._store = store
        self._time = time
        self._rules = rules or MaintenanceRules()
        ips = self._rules.baseline_allowed_ips if baseline_ips is None else baseline_ips
        emails = self._rules.baseline_allowed_emails if baseline_emails is None else baseline_emails
        self.baseline_ips = merge_allowlists((normalize_ip(ip) for ip in ips), [])
        self.baseline_emails = merge_allowlists((normalize_email(e) for e in emails), [])
        self.force_enabled = force_enabled
        self._cache: tuple[MaintenanceConfig, datetime] | None = None
        self._lock = Lock()

    # --- Reads ---

    def _defaults(self) -> MaintenanceConfig:
        return MaintenanceConfig(
            enabled=False,
            message=self._rules.default_message,
            estimated_time=self._rules.default_estimated_time,
        )

    def _load(self) -> MaintenanceConfig:
        doc = self._store.find_one(MAINTENANCE_COLLECTION, _RECORD_FILTER)
        stored = MaintenanceConfig.model_validate(doc) if doc else self._defaults()
        return stored.model_copy(
            update={
                "enabled": stored.enabled or self.force_enabled,
                "allowed_ips": merge_allowlists(self.baseline_ips, stored.allowed_ips),
                "allowed_emails": merge_allowlists(self.baseline_emails, stored.allowed_emails),
            }
        )

    def get_config(self) -> MaintenanceConfig:
        """
        Current config with baseline allow-lists merged in.

        Raises StoreUnavailableError when the store cannot be read and the
        cache is stale.
        """
        now = self._time.now_utc()
        ttl = timedelta(seconds=self._rules.cache_ttl_seconds)
        with self._lock:
            if self._cache is not None and now - self._cache[1] < ttl:
                return self._cache[0].model_copy(deep=True)

        config = self._load()
        with self._lock:
            self._cache = (config, now)
        return config.model_copy(deep=True)

    def invalidate(self) -> None:
        with self._lock:
            self._cache = None

    # --- Writes ---

    def set_config(
        self, update: MaintenanceUpdate, actor: str
    ) -> tuple[MaintenanceConfig | None, list[ValidationError]]:
        """
        Merge ``update`` over the stored record and persist it.

        Returns (config, errors); nothing is saved when errors is non-empty.
        """
        errors = validate_update(update)
        if errors:
            return None, errors

        doc = self._store.find_one(MAINTENANCE_COLLECTION, _RECORD_FILTER)
        stored = MaintenanceConfig.model_validate(doc) if doc else self._defaults()

        fields: dict[str, Any] = {
            "enabled": stored.enabled if update.enabled is None else update.enabled,
            "message": stored.message if update.message is None else update.message,
            "estimated_time": (
                stored.estimated_time if update.estimated_time is None else update.estimated_time
            ),
            "allowed_ips": (
                stored.allowed_ips
                if update.allowed_ips is None
                else merge_allowlists([], (normalize_ip(ip) for ip in update.allowed_ips))
            ),
            "allowed_emails": (
                stored.allowed_emails
                if update.allowed_emails is None
                else merge_allowlists([], (normalize_email(e) for e in update.allowed_emails))
            ),
            "updated_at": self._time.now_utc(),
            "updated_by": actor,
        }
        self._store.upsert(MAINTENANCE_COLLECTION, _RECORD_FILTER, fields)
        self.invalidate()

        if update.enabled is not None and update.enabled != stored.enabled:
            logger.warning(
                "Maintenance mode %s by %s", "ENABLED" if update.enabled else "disabled", actor
            )
        else:
            logger.info("Maintenance config updated by %s", actor)
        return self.get_config(), []

    def clear(self, actor: str) -> None:
        """Remove the stored record: maintenance off, baseline allow-lists only."""
        self._store.delete_one(MAINTENANCE_COLLECTION, _RECORD_FILTER)
        self.invalidate()
        logger.warning("Maintenance config cleared by %s", actor)

    # --- Decisions ---

    def is_allowed(self, ip: str | None = None, email: str | None = None) -> bool:
        """True when maintenance is off or the caller is allow-listed."""
        ip = normalize_ip(ip)
        email = normalize_email(email)
        try:
            config = self.get_config()
        except StoreUnavailableError as e:
            logger.error("Maintenance store unavailable, failing closed: %s", e)
            return bool(ip and ip in self.baseline_ips) or bool(
                email and email in self.baseline_emails
            )

        if not config.enabled:
            return True
        if ip and ip in config.allowed_ips:
            return True
        return bool(email and email in config.allowed_emails)

    def is_email_allowlisted(self, email: str) -> bool:
        """Membership in the merged email allow-list, regardless of the flag.

        Raises StoreUnavailableError.
        """
        email = normalize_email(email)
        return bool(email) and email in self.get_config().allowed_emails

    def status_for_display(self) -> MaintenanceStatus:
        """Public status for page rendering; reports 'off' when the store is down."""
        try:
            config = self.get_config()
        except StoreUnavailableError as e:
            logger.warning("Maintenance status unavailable, failing open: %s", e)
            return MaintenanceStatus(
                enabled=self.force_enabled,
                message=self._rules.default_message,
                estimated_time=self._rules.default_estimated_time,
            )
        return MaintenanceStatus(
            enabled=config.enabled,
            message=config.message,
            estimated_time=config.estimated_time,
        )
