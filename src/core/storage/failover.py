"""Failover CounterStore: shared backend first, in-process fallback on error.

The primary (Redis) serves every call while it is healthy. When a call raises
StorageError the failure is logged and the same call is served by the
fallback (memory) store, so a Redis outage degrades limits to per-process
instead of disabling them.

Consistency choices:
    - Deletes go to both stores, so a reset (successful login, admin unlock,
      admin clear) also clears anything written during an outage.
    - Values written while the primary is healthy are mirrored to the
      fallback, so a lockout record created before an outage still holds while
      Redis is unreachable. The mirror only exists in the process that wrote
      it.
    - get_value reads the fallback when the primary has no value only for keys
      written during an outage, so such a record still holds after Redis
      recovers and a mirror never resurrects a key another process deleted.
    - Windows are not merged: a window started on one store continues there
      until it expires.
"""

from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from src.core.storage.base import CounterStore, StorageError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class FailoverCounterStore(CounterStore):
    """Composite store delegating to a primary with automatic fallback.

    Attributes:
        primary: Shared store (RedisCounterStore in production).
        fallback: Process-local store (MemoryCounterStore).
    """

    def __init__(self, primary: CounterStore, fallback: CounterStore):
        self.primary = primary
        self.fallback = fallback
        self._degraded = False
        # keys whose only copy was written to the fallback
        self._written_while_degraded: set[str] = set()

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"{self.primary.name}+{self.fallback.name}"

    @property
    def degraded(self) -> bool:
        """True when the last primary call failed."""
        return self._degraded

    async def _call(
        self,
        operation: str,
        primary_call: Callable[[], Awaitable[T]],
        fallback_call: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            result = await primary_call()
        except StorageError as e:
            if not self._degraded:
                logger.warning(
                    "counter_store_failover",
                    operation=operation,
                    primary=self.primary.name,
                    fallback=self.fallback.name,
                    error=str(e),
                )
            self._degraded = True
            return await fallback_call()

        if self._degraded:
            logger.info("counter_store_recovered", primary=self.primary.name)
            self._degraded = False
        return result

    async def record_event(
        self,
        key: str,
        member: str,
        timestamp_ms: int,
        window_ms: int,
    ) -> int:
        return await self._call(
            "record_event",
            lambda: self.primary.record_event(key, member, timestamp_ms, window_ms),
            lambda: self.fallback.record_event(key, member, timestamp_ms, window_ms),
        )

    async def count_events(self, key: str, since_ms: int) -> int:
        return await self._call(
            "count_events",
            lambda: self.primary.count_events(key, since_ms),
            lambda: self.fallback.count_events(key, since_ms),
        )

    async def get_value(self, key: str) -> Optional[str]:
        value = await self._call(
            "get_value",
            lambda: self.primary.get_value(key),
            lambda: self.fallback.get_value(key),
        )
        if value is None and not self._degraded and key in self._written_while_degraded:
            value = await self.fallback.get_value(key)
            if value is None:
                self._written_while_degraded.discard(key)
        return value

    async def set_value(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._call(
            "set_value",
            lambda: self.primary.set_value(key, value, ttl_seconds),
            lambda: self.fallback.set_value(key, value, ttl_seconds),
        )
        await self._after_write(key, value, ttl_seconds, written=True)

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        created = await self._call(
            "set_if_absent",
            lambda: self.primary.set_if_absent(key, value, ttl_seconds),
            lambda: self.fallback.set_if_absent(key, value, ttl_seconds),
        )
        await self._after_write(key, value, ttl_seconds, written=created)
        return created

    async def _after_write(
        self, key: str, value: str, ttl_seconds: int, written: bool
    ) -> None:
        """Track outage-only keys, or mirror a primary write to the fallback."""
        if not written:
            return
        if self._degraded:
            self._written_while_degraded.add(key)
        else:
            await self.fallback.set_value(key, value, ttl_seconds)

    async def delete(self, *keys: str) -> int:
        self._written_while_degraded.difference_update(keys)
        local = await self.fallback.delete(*keys)
        shared = await self._call(
            "delete",
            lambda: self.primary.delete(*keys),
            lambda: self._no_op_count(),
        )
        return max(local, shared)

    async def scan_keys(self, pattern: str) -> list[str]:
        local = await self.fallback.scan_keys(pattern)
        shared = await self._call(
            "scan_keys",
            lambda: self.primary.scan_keys(pattern),
            lambda: self._no_op_keys(),
        )
        return sorted(set(shared) | set(local))

    async def ping(self) -> bool:
        return await self.primary.ping()

    async def close(self) -> None:
        await self.primary.close()
        await self.fallback.close()

    @staticmethod
    async def _no_op_count() -> int:
        return 0

    @staticmethod
    async def _no_op_keys() -> list[str]:
        return []
