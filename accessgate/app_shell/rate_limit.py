"""
Fixed-window request limiter keyed by client IP.

Each key holds a count and the instant its window ends. The first request
after that instant opens a new window with ``count=1``. Up to ``2N``
requests can pass across a window boundary; that is the accepted cost of a
fixed window.

State lives in this process only. Running several instances multiplies the
effective ceiling by the instance count.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock

from accessgate.adapters.clock import SystemClock
from accessgate.core.ports.time import TimePort
from accessgate.rules.models import RateLimitRules

logger = logging.getLogger(__name__)


@dataclass
class RateWindow:
    count: int
    reset_at: datetime


@dataclass
class RateLimitStatus:
    tracked_keys: int
    limit: int
    window_seconds: int


class RateLimiter:
    def __init__(
        self,
        rules: RateLimitRules,
        time_port: TimePort | None = None,
    ):
        self.rules = rules
        self._time = time_port if time_port is not None else SystemClock()
        self._windows: dict[str, RateWindow] = {}
        self._lock = Lock()

    @property
    def limit(self) -> int:
        return self.rules.anonymous.max_requests

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.rules.anonymous.window_seconds)

    def _active(self, key: str, now: datetime) -> RateWindow | None:
        entry = self._windows.get(key)
        if entry is None or now > entry.reset_at:
            return None
        return entry

    def is_limited(self, ip: str, is_admin: bool = False) -> bool:
        """
        Count one request for ``ip``.

        Returns True when the request must be rejected. Admins are never
        limited and are not counted.
        """
        if is_admin:
            return False

        now = self._time.now_utc()
        with self._lock:
            entry = self._active(ip, now)
            if entry is None:
                self._windows[ip] = RateWindow(count=1, reset_at=now + self.window)
                return self.limit <= 0
            if entry.count >= self.limit:
                limited = True
            else:
                entry.count += 1
                limited = False

        if limited:
            logger.warning("Rate limit exceeded for %s", ip)
        return limited

    def remaining(self, ip: str) -> int:
        now = self._time.now_utc()
        with self._lock:
            entry = self._active(ip, now)
            if entry is None:
                return self.limit
            return max(0, self.limit - entry.count)

    def reset_time(self, ip: str) -> datetime | None:
        """End of the current window for ``ip``, or None when no window is open."""
        now = self._time.now_utc()
        with self._lock:
            entry = self._active(ip, now)
            return entry.reset_at if entry else None

    def status(self) -> RateLimitStatus:
        with self._lock:
            tracked = len(self._windows)
        return RateLimitStatus(
            tracked_keys=tracked,
            limit=self.limit,
            window_seconds=self.rules.anonymous.window_seconds,
        )

    def reset(self, ip: str) -> None:
        with self._lock:
            self._windows.pop(ip, None)

    def reset_all(self) -> None:
        with self._lock:
            self._windows.clear()

    def evict_expired(self) -> int:
        """Drop windows that ended more than the eviction grace ago."""
        now = self._time.now_utc()
        cutoff = now - timedelta(seconds=self.rules.eviction_grace_seconds)
        with self._lock:
            stale = [key for key, entry in self._windows.items() if entry.reset_at < cutoff]
            for key in stale:
                del self._windows[key]
        if stale:
            logger.debug("Evicted %d idle rate-limit windows", len(stale))
        return len(stale)
