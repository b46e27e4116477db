"""Counter storage abstraction for the security components.

This package provides the CounterStore interface used by both the rate
limiter (sliding windows under ``ratelimit:``) and the account lockout guard
(ledgers under ``auth:failed:`` and records under ``auth:locked:``), with
Redis, in-process and failover implementations.
"""

from src.core.storage.base import CounterStore, StorageError
from src.core.storage.factory import create_counter_store
from src.core.storage.failover import FailoverCounterStore
from src.core.storage.memory_store import MemoryCounterStore
from src.core.storage.redis_store import RedisCounterStore

__all__ = [
    "CounterStore",
    "FailoverCounterStore",
    "MemoryCounterStore",
    "RedisCounterStore",
    "StorageError",
    "create_counter_store",
]
