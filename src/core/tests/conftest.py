"""Core test configuration.

Fixtures for the counter storage tests. Redis is emulated with fakeredis;
every test gets its own FakeServer so no state leaks between tests, and a
test can simulate an outage with ``fake_server.connected = False``.
"""

import fakeredis
import fakeredis.aioredis
import pytest
import pytest_asyncio

from src.core.storage.memory_store import MemoryCounterStore
from src.core.storage.redis_store import RedisCounterStore


@pytest.fixture
def fake_server():
    """Isolated fakeredis server."""
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(fake_server):
    """fakeredis async client bound to the isolated server."""
    client = fakeredis.aioredis.FakeRedis(server=fake_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def redis_store(redis_client):
    """RedisCounterStore backed by fakeredis."""
    return RedisCounterStore(redis_client)


@pytest.fixture
def memory_store():
    """Fresh in-process store."""
    return MemoryCounterStore(cleanup_interval_seconds=60.0, max_keys=1000)
