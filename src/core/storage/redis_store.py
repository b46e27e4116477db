"""Redis implementation of CounterStore.

Sliding windows are sorted sets scored by epoch milliseconds. The
prune-insert-count-expire sequence runs as a single MULTI/EXEC pipeline, one
round trip, so concurrent callers on the same key cannot interleave.

Every Redis error (connection refused, socket timeout, protocol error) is
re-raised as StorageError; consumers decide whether that means allow or deny.
"""

import math
from typing import Optional

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.core.storage.base import CounterStore, StorageError

logger = structlog.get_logger(__name__)

SCAN_BATCH_SIZE = 100


class RedisCounterStore(CounterStore):
    """Redis counter store shared by every process.

    Attributes:
        client: Redis async client (decode_responses=True, short socket timeouts)
    """

    name = "redis"

    def __init__(self, redis_client: Redis):
        """Initialize Redis store with client.

        Args:
            redis_client: Async Redis client instance. Must be created with
                decode_responses=True and socket timeouts in single-digit seconds.
        """
        self.client = redis_client

    async def record_event(
        self,
        key: str,
        member: str,
        timestamp_ms: int,
        window_ms: int,
    ) -> int:
        """Prune, insert, count and expire in one MULTI/EXEC round trip.

        Raises:
            StorageError: If Redis operation fails
        """
        window_start = timestamp_ms - window_ms
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                # Exclusive bound: members scored exactly at window_start stay
                pipe.zremrangebyscore(key, "-inf", f"({window_start}")
                pipe.zadd(key, {member: timestamp_ms})
                pipe.zcard(key)
                pipe.expire(key, max(1, math.ceil(window_ms / 1000)))
                results = await pipe.execute()
        except RedisError as e:
            raise StorageError(f"Failed to record event for key: {key}") from e

        count = int(results[2])
        logger.debug("redis_event_recorded", key=key, count=count)
        return count

    async def count_events(self, key: str, since_ms: int) -> int:
        """Count members scored at or after since_ms.

        Raises:
            StorageError: If Redis operation fails
        """
        try:
            return int(await self.client.zcount(key, since_ms, "+inf"))
        except RedisError as e:
            raise StorageError(f"Failed to count events for key: {key}") from e

    async def get_value(self, key: str) -> Optional[str]:
        """Get value by key from Redis.

        Raises:
            StorageError: If Redis operation fails
        """
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise StorageError(f"Failed to get key: {key}") from e

    async def set_value(self, key: str, value: str, ttl_seconds: int) -> None:
        """Set key-value pair with TTL (SETEX).

        Raises:
            StorageError: If Redis operation fails
        """
        try:
            await self.client.setex(key, ttl_seconds, value)
        except RedisError as e:
            raise StorageError(f"Failed to set key: {key}") from e

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Set key-value pair with TTL only if absent (SET NX EX).

        Raises:
            StorageError: If Redis operation fails
        """
        try:
            result = await self.client.set(key, value, ex=ttl_seconds, nx=True)
        except RedisError as e:
            raise StorageError(f"Failed to set key: {key}") from e
        return bool(result)

    async def delete(self, *keys: str) -> int:
        """Delete keys from Redis.

        Raises:
            StorageError: If Redis operation fails
        """
        if not keys:
            return 0
        try:
            return int(await self.client.delete(*keys))
        except RedisError as e:
            raise StorageError(f"Failed to delete keys: {keys}") from e

    async def scan_keys(self, pattern: str) -> list[str]:
        """Collect keys matching pattern with SCAN (never KEYS).

        Raises:
            StorageError: If Redis operation fails
        """
        try:
            return [
                key
                async for key in self.client.scan_iter(
                    match=pattern, count=SCAN_BATCH_SIZE
                )
            ]
        except RedisError as e:
            raise StorageError(f"Failed to scan keys: {pattern}") from e

    async def ping(self) -> bool:
        """Check Redis reachability.

        Returns:
            True if Redis answered PING, False otherwise
        """
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        try:
            await self.client.aclose()
            logger.info("redis_store_closed")
        except RedisError as e:
            logger.error("redis_store_close_failed", error=str(e))
