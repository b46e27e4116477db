"""Account lockout test configuration.

Fixtures provide the in-process store, a fakeredis-backed failover store,
a store that always fails, and a notifier that records what it was given.
"""

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio

from src.account_lockout.config import LockoutConfig
from src.account_lockout.service import AccountLockoutGuard
from src.core.storage.base import StorageError
from src.core.storage.failover import FailoverCounterStore
from src.core.storage.memory_store import MemoryCounterStore
from src.core.storage.redis_store import RedisCounterStore
from src.notifications.models import Notification


class RecordingNotifier:
    """Notifier that keeps notifications instead of delivering them."""

    def __init__(self):
        self.sent: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.sent.append(notification)

    def events(self, name: str) -> list[Notification]:
        return [n for n in self.sent if n.event == name]


class BrokenStore(MemoryCounterStore):
    """Store whose reads and writes all fail."""

    name = "broken"

    async def record_event(self, key, member, timestamp_ms, window_ms):
        raise StorageError("connection refused")

    async def count_events(self, key, since_ms):
        raise StorageError("connection refused")

    async def get_value(self, key):
        raise StorageError("connection refused")

    async def set_if_absent(self, key, value, ttl_seconds):
        raise StorageError("connection refused")

    async def delete(self, *keys):
        raise StorageError("connection refused")

    async def scan_keys(self, pattern):
        raise StorageError("connection refused")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def memory_store():
    return MemoryCounterStore()


@pytest.fixture
def config():
    return LockoutConfig()


@pytest.fixture
def guard(memory_store, config, notifier):
    return AccountLockoutGuard(memory_store, config, notifier)


@pytest.fixture
def broken_guard(notifier):
    return AccountLockoutGuard(BrokenStore(), LockoutConfig(), notifier)


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def failover_store(fake_server):
    """Redis (fakeredis) primary with an in-process fallback."""
    client = fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
    yield FailoverCounterStore(RedisCounterStore(client), MemoryCounterStore())
    await client.aclose()
