"""Tests for SecurityEventStore."""

from datetime import timedelta

import pytest

from src.anomaly_detection.event_store import SecurityEventStore
from src.anomaly_detection.models import SecuritySeverity

from .conftest import NOW, make_event


@pytest.mark.asyncio
class TestSecurityEventStore:
    async def test_per_user_cap_drops_oldest(self):
        store = SecurityEventStore(max_events_per_user=3)
        for i in range(5):
            await store.add(make_event(timestamp=NOW + timedelta(minutes=i)))

        events = await store.get_user_events("user-1")

        assert [e.timestamp for e in events] == [
            NOW + timedelta(minutes=i) for i in (2, 3, 4)
        ]

    async def test_user_events_since_and_limit(self, event_store):
        for i in range(6):
            await event_store.add(make_event(timestamp=NOW + timedelta(minutes=i)))

        since = await event_store.get_user_events("user-1", since=NOW + timedelta(minutes=2))
        last_two = await event_store.get_user_events("user-1", limit=2)

        assert len(since) == 4
        assert [e.timestamp for e in last_two] == [
            NOW + timedelta(minutes=4),
            NOW + timedelta(minutes=5),
        ]

    async def test_all_events_newest_first_with_filters(self, event_store):
        await event_store.add(make_event("a", timestamp=NOW))
        await event_store.add(
            make_event("b", severity=SecuritySeverity.CRITICAL, timestamp=NOW + timedelta(hours=1))
        )
        await event_store.add(make_event("c", timestamp=NOW + timedelta(hours=2)))

        everything = await event_store.get_all_events()
        critical = await event_store.get_all_events(severity=SecuritySeverity.CRITICAL)
        newest = await event_store.get_all_events(limit=1)

        assert [e.user_id for e in everything] == ["c", "b", "a"]
        assert [e.user_id for e in critical] == ["b"]
        assert [e.user_id for e in newest] == ["c"]

    async def test_clear_older_than(self, event_store):
        await event_store.add(make_event("a", timestamp=NOW - timedelta(days=40)))
        await event_store.add(make_event("a", timestamp=NOW - timedelta(days=1)))
        await event_store.add(make_event("b", timestamp=NOW - timedelta(days=31)))

        removed = await event_store.clear_older_than(NOW - timedelta(days=30))

        assert removed == 2
        assert await event_store.count() == 1
        assert await event_store.get_user_events("b") == []

    def test_rejects_invalid_cap(self):
        with pytest.raises(ValueError):
            SecurityEventStore(max_events_per_user=0)
