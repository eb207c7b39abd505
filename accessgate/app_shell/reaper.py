"""
Background housekeeping thread.

Runs each registered task every ``interval_seconds`` until stopped. A task
that raises is logged and the loop carries on.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Reaper:
    def __init__(self, interval_seconds: float) -> None:
        self._interval = interval_seconds
        self._tasks: list[tuple[str, Callable[[], object]]] = []
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def add_task(self, name: str, task: Callable[[], object]) -> None:
        self._tasks.append((name, task))

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the background loop."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll_loop, name="reaper", daemon=True)
        self._thread.start()
        self._running = True
        logger.info("Reaper started (interval: %.1fs)", self._interval)

    def stop(self) -> None:
        """Stop the loop and wait briefly for the thread."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info("Reaper stopped")

    def run_once(self) -> None:
        for name, task in self._tasks:
            try:
                task()
            except Exception:
                logger.exception("Reaper task %s failed", name)

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._interval):
            self.run_once()
