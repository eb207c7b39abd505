from __future__ import annotations

import logging
from dataclasses import dataclass
from accessgate.adapters.accounts import AccountDirectory
from accessgate.adapters.auth.crypto import Argon2SecretHasher, JWTTokenAdapter, PasswordAdapter
from accessgate.adapters.clock import SystemClock
from accessgate.adapters.dev_email import DevEmailAdapter
from accessgate.adapters.email_dispatch import TimedEmailDispatcher
from accessgate.adapters.sqlite.document_store import SQLiteDocumentStore
from accessgate.adapters.sqlite.migrator import SQLiteMigrator
from accessgate.app_shell.admin_identity import AdminResolver
from accessgate.app_shell.config import Settings
from accessgate.app_shell.rate_limit import RateLimiter
from accessgate.app_shell.reaper import Reaper
from accessgate.components import otp
from accessgate.components.maintenance import MaintenanceGate, merge_allowlists
from accessgate.core.ports.email import EmailPort
from accessgate.core.ports.store import DocumentStorePort
from accessgate.core.ports.time import TimePort
from accessgate.rules.models import Rules

logger = logging.getLogger(__name__)


@dataclass
class AccessContext:
    """
    Owns every long-lived service of the access core.

    One instance per process: ``create`` wires it, ``init`` starts the
    background reaper (rate-limit eviction, one-time code purge), and
    ``teardown`` stops the reaper and the worker pools.
    """

    rules: Rules
    settings: Settings
    store: DocumentStorePort
    clock: TimePort
    hasher: Argon2SecretHasher
    passwords: PasswordAdapter
    tokens: JWTTokenAdapter
    email: EmailPort
    email_dispatcher: TimedEmailDispatcher
    maintenance: MaintenanceGate
    rate_limiter: RateLimiter
    accounts: AccountDirectory
    admins: AdminResolver
    reaper: Reaper
    migrate_on_init: bool = False

    @property
    def expose_codes(self) -> bool:
        return self.settings.debug_codes or self.rules.debug.expose_codes

    @classmethod
    def create(
        cls,
        rules: Rules,
        settings: Settings,
        store: DocumentStorePort | None = None,
        email: EmailPort | None = None,
        clock: TimePort | None = None,
    ) -> AccessContext:
        clock = clock or SystemClock()
        migrate = store is None
        if store is None:
            store = SQLiteDocumentStore(settings.db_path, timeout_seconds=rules.timeouts.store_seconds)
        email = email or DevEmailAdapter()

        maintenance = MaintenanceGate(
            store,
            clock,
            rules.maintenance,
            baseline_ips=merge_allowlists(
                rules.maintenance.baseline_allowed_ips, settings.allowed_ips
            ),
            baseline_emails=merge_allowlists(
                rules.maintenance.baseline_allowed_emails, settings.allowed_emails
            ),
            force_enabled=settings.maintenance_mode,
        )
        rate_limiter = RateLimiter(rules.rate_limits, clock)

        reaper = Reaper(rules.rate_limits.reaper_interval_seconds)
        reaper.add_task("rate_limit_eviction", rate_limiter.evict_expired)
        reaper.add_task(
            "otp_purge",
            lambda: otp.run_purge_expired(otp.PurgeExpiredInput(), store, clock),
        )

        tokens = JWTTokenAdapter(settings.secret_key)
        accounts = AccountDirectory(store)

        return cls(
            rules=rules,
            settings=settings,
            store=store,
            clock=clock,
            hasher=Argon2SecretHasher(rules.system_lock),
            passwords=PasswordAdapter(),
            tokens=tokens,
            email=email,
            email_dispatcher=TimedEmailDispatcher(email, rules.timeouts.email_seconds),
            maintenance=maintenance,
            rate_limiter=rate_limiter,
            accounts=accounts,
            admins=AdminResolver(
                tokens, accounts, clock, rules.rate_limits.admin_cache_seconds
            ),
            reaper=reaper,
            migrate_on_init=migrate,
        )

    def init(self, start_reaper: bool = True) -> None:
        if self.migrate_on_init:
            applied = SQLiteMigrator(self.settings.db_path).run_migrations()
            if applied:
                logger.info("Applied %d migration(s) to %s", applied, self.settings.db_path)
        if start_reaper:
            self.reaper.start()

    def teardown(self) -> None:
        self.reaper.stop()
        self.email_dispatcher.shutdown()
        self.hasher.shutdown()
