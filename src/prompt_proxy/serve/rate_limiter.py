"""Per-client sliding-window admission gate (in-memory)."""
from __future__ import annotations
import asyncio
import logging
import threading
import time
from collections import deque
from typing import Callable

LOGGER = logging.getLogger("promptproxy.ratelimit")

DEFAULT_LIMIT = 20
DEFAULT_WINDOW_SECONDS = 60.0
SWEEP_INTERVAL_SECONDS = 300.0


class RateLimiter:
    """
    Sliding-log limiter: at most `limit` admissions per client within any
    trailing `window_seconds`.

    Records hold only instants inside the window; a client whose record is
    empty after pruning is dropped by `sweep()`.
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._records: dict[str, deque[float]] = {}
        # admit() may be called from worker threads
        self._lock = threading.Lock()

    @property
    def active_clients(self) -> int:
        return len(self._records)

    def _prune(self, record: deque[float], now: float) -> None:
        window_start = now - self.window_seconds
        while record and record[0] <= window_start:
            record.popleft()

    def admit(self, client_id: str) -> bool:
        """Return True and record the request if the client is under quota."""
        now = self._clock()
        with self._lock:
            record = self._records.get(client_id)
            if record is None:
                record = self._records[client_id] = deque()
            self._prune(record, now)
            if len(record) >= self.limit:
                return False
            record.append(now)
            return True

    def sweep(self) -> int:
        """Prune every record and drop clients left empty. Returns how many were dropped."""
        now = self._clock()
        with self._lock:
            stale = []
            for client_id, record in self._records.items():
                self._prune(record, now)
                if not record:
                    stale.append(client_id)
            for client_id in stale:
                del self._records[client_id]
        return len(stale)


async def run_sweeper(limiter: RateLimiter, interval: float = SWEEP_INTERVAL_SECONDS) -> None:
    """Call `limiter.sweep()` every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = limiter.sweep()
        if removed:
            LOGGER.debug("Rate limiter sweep removed %s idle clients", removed)
