"""Rate Limiter Test Configuration.

Fixtures isolated to the rate limiter. Storage is either the in-process
store or a RedisCounterStore on an isolated fakeredis server, so tests run
without external services.
"""

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio

from src.core.storage.base import CounterStore, StorageError
from src.core.storage.memory_store import MemoryCounterStore
from src.core.storage.redis_store import RedisCounterStore
from src.notifications.models import Notification
from src.rate_limiter.config import RateLimitConfig, RateLimitRule


class RecordingNotifier:
    """Notifier that keeps notifications instead of delivering them."""

    def __init__(self):
        self.sent: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.sent.append(notification)


class UnavailableStore(MemoryCounterStore):
    """Store whose every operation fails like an unreachable backend."""

    name = "unavailable"

    async def record_event(self, key, member, timestamp_ms, window_ms):
        raise StorageError("connection refused")

    async def count_events(self, key, since_ms):
        raise StorageError("connection refused")

    async def ping(self):
        return False


@pytest.fixture
def login_rule():
    """5 requests per 15 minutes."""
    return RateLimitRule(requests=5, window_ms=900_000)


@pytest.fixture
def rate_limit_config(login_rule):
    """Small route table used across tests."""
    return RateLimitConfig(
        rules={
            "/api/auth/login": login_rule,
            "/api": RateLimitRule.per_minutes(100, 1),
        },
        default=RateLimitRule.per_minutes(300, 1),
    )


@pytest.fixture
def memory_store() -> CounterStore:
    return MemoryCounterStore()


@pytest_asyncio.fixture
async def redis_store():
    """RedisCounterStore on an isolated fakeredis server."""
    client = fakeredis.aioredis.FakeRedis(
        server=fakeredis.FakeServer(), decode_responses=True
    )
    yield RedisCounterStore(client)
    await client.aclose()


@pytest.fixture
def unavailable_store() -> CounterStore:
    return UnavailableStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()
