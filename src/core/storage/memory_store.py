"""In-process implementation of CounterStore.

Concrete implementation using Python dicts guarded by an asyncio.Lock.
No external dependencies: used for development, tests, and as the fallback
when Redis is not configured or unreachable.

Guarantee weakening (accepted and logged by the factory/failover store):
state is NOT shared across processes, so with N worker processes the
effective limit when degraded is up to N times the configured one. Within a
single process the sliding-window bound holds exactly, because windows keep
timestamps rather than a fixed-window counter.
"""

import asyncio
import bisect
import fnmatch
import time
from typing import Dict, List, Optional, Tuple

import structlog

from src.core.storage.base import CounterStore

logger = structlog.get_logger(__name__)


class MemoryCounterStore(CounterStore):
    """In-memory counter store with TTL tracking.

    Design Pattern:
        - Concrete implementation (no abstraction needed)
        - No external dependencies (pure Python)
        - TTL-based cleanup swept at most every ``cleanup_interval_seconds``
        - Key count bounded by ``max_keys`` (soonest-expiring evicted first)

    Usage:
        ```python
        store = MemoryCounterStore()
        count = await store.record_event("ratelimit:1.2.3.4:/api", "m1", now_ms, 60_000)
        ```
    """

    name = "memory"

    def __init__(
        self,
        cleanup_interval_seconds: float = 60.0,
        max_keys: int = 100_000,
    ):
        """Initialize in-memory store.

        Args:
            cleanup_interval_seconds: Minimum time between expiry sweeps.
            max_keys: Maximum number of keys kept.

        Raises:
            ValueError: If an argument is not positive
        """
        if cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be positive")
        if max_keys < 1:
            raise ValueError("max_keys must be at least 1")
        self._cleanup_interval = cleanup_interval_seconds
        self._max_keys = max_keys
        # key -> sorted list of (score_ms, member)
        self._windows: Dict[str, List[Tuple[int, str]]] = {}
        self._values: Dict[str, str] = {}
        # key -> expiry (epoch seconds), shared by windows and values
        self._expires_at: Dict[str, float] = {}
        self._lock = asyncio.Lock()
        self._last_cleanup = time.time()

    def _is_expired(self, key: str, now: float) -> bool:
        expires_at = self._expires_at.get(key)
        return expires_at is not None and expires_at <= now

    def _drop(self, key: str) -> bool:
        existed = key in self._windows or key in self._values
        self._windows.pop(key, None)
        self._values.pop(key, None)
        self._expires_at.pop(key, None)
        return existed

    def _maybe_cleanup(self, now: float) -> None:
        """Remove expired keys, then enforce the key cap.

        Called automatically during operations.
        """
        over_capacity = len(self._expires_at) > self._max_keys
        if not over_capacity and now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now

        expired = [key for key, at in self._expires_at.items() if at <= now]
        for key in expired:
            self._drop(key)

        overflow = len(self._expires_at) - self._max_keys
        if overflow > 0:
            soonest = sorted(self._expires_at, key=self._expires_at.__getitem__)
            for key in soonest[:overflow]:
                self._drop(key)
            logger.warning("memory_store_evicted", evicted=overflow)

        if expired:
            logger.debug("memory_store_swept", expired=len(expired))

    def _live_window(self, key: str, now: float) -> List[Tuple[int, str]]:
        if self._is_expired(key, now):
            self._drop(key)
        return self._windows.get(key, [])

    async def record_event(
        self,
        key: str,
        member: str,
        timestamp_ms: int,
        window_ms: int,
    ) -> int:
        """Prune, insert, count and expire under the store lock."""
        async with self._lock:
            now = time.time()
            window = self._live_window(key, now)
            window_start = timestamp_ms - window_ms
            cut = bisect.bisect_left(window, (window_start, ""))
            window = window[cut:]
            window = [entry for entry in window if entry[1] != member]
            bisect.insort(window, (timestamp_ms, member))
            self._windows[key] = window
            self._values.pop(key, None)
            self._expires_at[key] = now + window_ms / 1000
            self._maybe_cleanup(now)
            return len(window)

    async def count_events(self, key: str, since_ms: int) -> int:
        """Count members scored at or after since_ms."""
        async with self._lock:
            window = self._live_window(key, time.time())
            return len(window) - bisect.bisect_left(window, (since_ms, ""))

    async def get_value(self, key: str) -> Optional[str]:
        """Get value by key (None if missing or expired)."""
        async with self._lock:
            if self._is_expired(key, time.time()):
                self._drop(key)
                return None
            return self._values.get(key)

    async def set_value(self, key: str, value: str, ttl_seconds: int) -> None:
        """Set key-value pair with TTL."""
        async with self._lock:
            now = time.time()
            self._windows.pop(key, None)
            self._values[key] = value
            self._expires_at[key] = now + ttl_seconds
            self._maybe_cleanup(now)

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set key-value pair with TTL only if absent."""
        async with self._lock:
            now = time.time()
            if self._is_expired(key, now):
                self._drop(key)
            if key in self._values or key in self._windows:
                return False
            self._values[key] = value
            self._expires_at[key] = now + ttl_seconds
            self._maybe_cleanup(now)
            return True

    async def delete(self, *keys: str) -> int:
        """Delete keys."""
        async with self._lock:
            return sum(1 for key in keys if self._drop(key))

    async def scan_keys(self, pattern: str) -> list[str]:
        """List live keys matching a glob pattern."""
        async with self._lock:
            now = time.time()
            return [
                key
                for key in list(self._expires_at)
                if not self._is_expired(key, now) and fnmatch.fnmatchcase(key, pattern)
            ]

    async def ping(self) -> bool:
        """In-process store is always reachable."""
        return True

    async def close(self) -> None:
        """Drop all state."""
        async with self._lock:
            self._windows.clear()
            self._values.clear()
            self._expires_at.clear()
