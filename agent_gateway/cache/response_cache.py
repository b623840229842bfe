"""
=============================================================================
Response Cache
=============================================================================

TTL-keyed in-memory store that replays a previously computed agent
response for a logically identical request.

KEY INSIGHT: two requests are "the same" when their (query, context)
pair serializes identically. The fingerprint sorts every object key, so
the order in which a client wrote its context never busts the cache.

EXPIRY:
-------
- get() treats a record past expires_at as absent and deletes it (lazy).
- sweep() removes every expired record; it only exists for memory
  hygiene, correctness never depends on it.

There is no negative caching and no cross-process sharing: each running
instance has its own cache for its own uptime.
=============================================================================
"""

import hashlib
import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


def fingerprint(query: str, context: dict[str, Any] | None) -> str:
    """
    Deterministic cache key for an agent request.

    A missing context and an empty context produce the same key.
    """
    canonical = json.dumps(
        {"query": query, "context": context or {}},
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class CacheRecord(Generic[V]):
    value: V
    expires_at: float


class ResponseCache(Generic[V]):
    """Single-process TTL cache."""

    def __init__(
        self,
        default_ttl_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._records: dict[str, CacheRecord[V]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> V | None:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            if self._clock() > record.expires_at:
                del self._records[key]
                logger.debug(f"[CACHE] Expired key={key[:12]}")
                return None
            return record.value

    def set(self, key: str, value: V, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._records[key] = CacheRecord(value=value, expires_at=self._clock() + ttl)

    def sweep(self) -> int:
        """Remove all expired records. Returns how many were dropped."""
        with self._lock:
            now = self._clock()
            expired = [k for k, r in self._records.items() if now > r.expires_at]
            for key in expired:
                del self._records[key]

        if expired:
            logger.info(f"[CACHE] Swept {len(expired)} expired records")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
