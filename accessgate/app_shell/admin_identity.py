"""
Access-token to administrator resolution with a short answer cache.

Consulted on every request by the edge middleware, so account lookups are
cached for ``cache_seconds`` per user id.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from threading import Lock

from accessgate.adapters.accounts import AccountDirectory
from accessgate.adapters.auth.crypto import JWTTokenAdapter
from accessgate.core.ports.time import TimePort
from accessgate.domain.entities import AdminAccount
from accessgate.domain.errors import StoreUnavailableError


class AdminResolver:
    def __init__(
        self,
        tokens: JWTTokenAdapter,
        accounts: AccountDirectory,
        time: TimePort,
        cache_seconds: int = 60,
    ) -> None:
        self._tokens = tokens
        self._accounts = accounts
        self._time = time
        self._ttl = timedelta(seconds=cache_seconds)
        self._cache: dict[str, tuple[AdminAccount | None, datetime]] = {}
        self._lock = Lock()

    def account(self, user_id: str) -> AdminAccount | None:
        now = self._time.now_utc()
        with self._lock:
            cached = self._cache.get(user_id)
            if cached is not None and now - cached[1] < self._ttl:
                return cached[0]

        try:
            account = self._accounts.get(user_id)
        except StoreUnavailableError:
            # Not cached; the next request asks the store again.
            return None

        with self._lock:
            self._cache[user_id] = (account, now)
        return account

    def account_for_token(self, token: str | None) -> AdminAccount | None:
        if not token:
            return None
        user_id = self._tokens.decode_access_token(token)
        return self.account(user_id) if user_id else None

    def is_admin(self, user_id: str) -> bool:
        account = self.account(user_id)
        return account is not None and account.is_admin

    def invalidate(self, user_id: str | None = None) -> None:
        with self._lock:
            if user_id is None:
                self._cache.clear()
            else:
                self._cache.pop(user_id, None)
