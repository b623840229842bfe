"""
=============================================================================
Per-Client Rate Limiter
=============================================================================

Fixed-window request counter keyed by client identifier (usually the
forwarded client IP). Gates all traffic before any other processing.

WINDOW SEMANTICS:
-----------------
- First request from an unseen client opens a window (count = 1).
- Once now > window_reset_at, the window restarts at count = 1.
- At capacity, further requests are rejected WITHOUT bumping the count.
- last_seen_at is refreshed on every call, accepted or not.

MEMORY BOUND:
-------------
evict_idle() drops clients that have been idle longer than idle_seconds.
GatewayState.run_maintenance() calls it at most once per maintenance
interval.
=============================================================================
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class RateWindowState:
    """Counter state for a single client."""

    count: int
    window_reset_at: float
    last_seen_at: float


class RateLimiter:
    """
    In-process rate limiter.

    Usage:
        limiter = RateLimiter(capacity=20, window_seconds=60)

        if not limiter.allow(client_id):
            raise RateLimitedError(limiter.retry_after(client_id))
    """

    def __init__(
        self,
        capacity: int = 20,
        window_seconds: float = 60.0,
        idle_seconds: float = 600.0,
        clock: Clock = time.monotonic,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.capacity = capacity
        self.window_seconds = window_seconds
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._windows: dict[str, RateWindowState] = {}
        self._lock = threading.Lock()

    def allow(self, client_id: str) -> bool:
        """Count a request for client_id and report whether it may proceed."""
        with self._lock:
            now = self._clock()
            state = self._windows.get(client_id)

            if state is None:
                self._windows[client_id] = RateWindowState(
                    count=1,
                    window_reset_at=now + self.window_seconds,
                    last_seen_at=now,
                )
                return True

            state.last_seen_at = now

            if now > state.window_reset_at:
                state.count = 1
                state.window_reset_at = now + self.window_seconds
                return True

            if state.count >= self.capacity:
                logger.debug(
                    f"[RATELIMIT] Rejecting client={client_id} "
                    f"count={state.count} capacity={self.capacity}"
                )
                return False

            state.count += 1
            return True

    def retry_after(self, client_id: str) -> int:
        """Whole seconds until the client's current window rolls over (at least 1)."""
        with self._lock:
            state = self._windows.get(client_id)
            if state is None:
                return 1
            remaining = state.window_reset_at - self._clock()
        return max(1, int(remaining + 0.999))

    def evict_idle(self) -> int:
        """
        Drop clients idle longer than idle_seconds.

        Returns the number of evicted entries.
        """
        with self._lock:
            now = self._clock()
            cutoff = now - self.idle_seconds
            stale = [cid for cid, st in self._windows.items() if st.last_seen_at < cutoff]
            for cid in stale:
                del self._windows[cid]

        if stale:
            logger.info(f"[RATELIMIT] Evicted {len(stale)} idle clients")
        return len(stale)

    def get(self, client_id: str) -> RateWindowState | None:
        return self._windows.get(client_id)

    def __len__(self) -> int:
        return len(self._windows)
