"""Counter storage abstraction shared by the rate limiter and lockout guard.

SOLID Principles:
- Interface Segregation: Only the operations the security components need
  (sliding-window event sets, small TTL-bound values, namespaced scans)
- Dependency Inversion: Services depend on CounterStore, not on Redis
- Single Responsibility: Storage operations only (no allow/deny decisions)

Design Decision:
- One abstraction, different keyspaces and TTL policies per consumer:
  rate limiter uses ``ratelimit:*`` windows, the lockout guard uses
  ``auth:failed:*`` ledgers and ``auth:locked:*`` records
- Implementations raise StorageError on any backend failure; each consumer
  applies its own failure policy (fail-open for rate limiting, fail-closed
  with local fallback for lockout)

Timestamps are integer epoch milliseconds throughout.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageError(Exception):
    """Base exception for counter storage operations."""

    pass


class CounterStore(ABC):
    """Abstract counter store.

    Implementations must be safe for concurrent use by many in-process
    callers, and ``record_event`` must be atomic per key.
    """

    name: str = "abstract"

    @abstractmethod
    async def record_event(
        self,
        key: str,
        member: str,
        timestamp_ms: int,
        window_ms: int,
    ) -> int:
        """Atomically add an event to a sliding window and count the window.

        Steps, executed without interleaving with other callers on the key:
        prune members scored before ``timestamp_ms - window_ms``, insert
        ``member`` scored ``timestamp_ms``, count, set key expiry to the window.

        Args:
            key: Window key (e.g., 'ratelimit:203.0.113.9:/api/auth/login')
            member: Unique member for this event (may carry JSON metadata)
            timestamp_ms: Event time (epoch milliseconds)
            window_ms: Window length in milliseconds

        Returns:
            Number of events in the window including this one

        Raises:
            StorageError: If the backend operation fails
        """
        pass

    @abstractmethod
    async def count_events(self, key: str, since_ms: int) -> int:
        """Count window members scored at or after ``since_ms``.

        Raises:
            StorageError: If the backend operation fails
        """
        pass

    @abstractmethod
    async def get_value(self, key: str) -> Optional[str]:
        """Get value by key.

        Returns:
            Value if exists and not expired, None otherwise

        Raises:
            StorageError: If the backend operation fails
        """
        pass

    @abstractmethod
    async def set_value(self, key: str, value: str, ttl_seconds: int) -> None:
        """Set key-value pair with TTL.

        Raises:
            StorageError: If the backend operation fails
        """
        pass

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set key-value pair with TTL only if the key does not exist.

        Returns:
            True if the value was written, False if the key already existed

        Raises:
            StorageError: If the backend operation fails
        """
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys (windows or values).

        Returns:
            Number of keys removed

        Raises:
            StorageError: If the backend operation fails
        """
        pass

    @abstractmethod
    async def scan_keys(self, pattern: str) -> list[str]:
        """List keys matching a glob pattern without blocking the backend.

        Raises:
            StorageError: If the backend operation fails
        """
        pass

    async def delete_matching(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Callers must pass a namespaced pattern (e.g., 'ratelimit:*').

        Returns:
            Number of keys removed

        Raises:
            StorageError: If the backend operation fails
            ValueError: If the pattern is not namespaced
        """
        if not pattern or pattern.startswith("*"):
            raise ValueError("delete_matching requires a namespaced pattern")
        keys = await self.scan_keys(pattern)
        if not keys:
            return 0
        return await self.delete(*keys)

    @abstractmethod
    async def ping(self) -> bool:
        """Check backend reachability.

        Returns:
            True if reachable, False otherwise (never raises)
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connections and cleanup resources.

        Should be called during application shutdown.
        """
        pass
