"""Counter store factory.

SOLID Principles:
- Dependency Inversion: Factory creates concrete implementations, services
  depend on the CounterStore abstraction
- Single Responsibility: Factory only responsible for store creation

Design Decision:
- Redis configured: Redis primary with an in-process fallback behind
  FailoverCounterStore, so an unreachable Redis degrades instead of failing
- Redis not configured: in-process store only, with a warning that limits
  are enforced per process
- Redis client carries short socket timeouts; a timeout is a StorageError
"""

import structlog
from redis.asyncio import Redis

from src.core.config import Settings
from src.core.storage.base import CounterStore
from src.core.storage.failover import FailoverCounterStore
from src.core.storage.memory_store import MemoryCounterStore
from src.core.storage.redis_store import RedisCounterStore

logger = structlog.get_logger(__name__)


def create_memory_store(settings: Settings) -> MemoryCounterStore:
    """Create the in-process store from settings."""
    return MemoryCounterStore(
        cleanup_interval_seconds=settings.memory_store_cleanup_interval_seconds,
        max_keys=settings.memory_store_max_keys,
    )


def create_redis_client(settings: Settings) -> Redis:
    """Create the async Redis client used by RedisCounterStore.

    Args:
        settings: Provides redis_url and redis_timeout_seconds.

    Returns:
        Redis client with decode_responses=True and short timeouts.

    Raises:
        ValueError: If redis_url is not configured
    """
    if not settings.redis_url:
        raise ValueError("redis_url is not configured")
    return Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_timeout_seconds,
        socket_timeout=settings.redis_timeout_seconds,
    )


def create_counter_store(settings: Settings) -> CounterStore:
    """Create the counter store selected by configuration.

    Args:
        settings: Application settings.

    Returns:
        FailoverCounterStore (Redis + memory) or MemoryCounterStore.

    Example:
        >>> store = create_counter_store(get_settings())
        >>> await store.ping()
    """
    if not settings.redis_url:
        logger.warning(
            "counter_store_memory_only",
            detail="redis_url not configured; limits are enforced per process",
        )
        return create_memory_store(settings)

    store = FailoverCounterStore(
        primary=RedisCounterStore(create_redis_client(settings)),
        fallback=create_memory_store(settings),
    )
    logger.info("counter_store_initialized", store=store.name)
    return store
