"""Bounded in-process store of security events.

Events are kept per user in arrival order, at most ``max_events_per_user``
each (oldest dropped). ``clear_older_than`` is the time sweep run by the
monitor's retention cleanup.
"""

import asyncio
from collections import deque
from datetime import datetime
from typing import Deque, Optional

from src.anomaly_detection.models import SecurityEvent, SecuritySeverity


class SecurityEventStore:
    """Per-user capped event lists guarded by an asyncio.Lock."""

    def __init__(self, max_events_per_user: int = 100):
        if max_events_per_user < 1:
            raise ValueError("max_events_per_user must be at least 1")
        self.max_events_per_user = max_events_per_user
        self._events: dict[str, Deque[SecurityEvent]] = {}
        self._lock = asyncio.Lock()

    async def add(self, event: SecurityEvent) -> None:
        async with self._lock:
            events = self._events.get(event.user_id)
            if events is None:
                events = deque(maxlen=self.max_events_per_user)
                self._events[event.user_id] = events
            events.append(event)

    async def get_user_events(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[SecurityEvent]:
        """Events of one user, oldest first; ``limit`` keeps the most recent."""
        async with self._lock:
            events = list(self._events.get(user_id, ()))
        if since is not None:
            events = [e for e in events if e.timestamp >= since]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events

    async def get_all_events(
        self,
        since: Optional[datetime] = None,
        severity: Optional[SecuritySeverity] = None,
        limit: Optional[int] = None,
    ) -> list[SecurityEvent]:
        """Events of all users, newest first."""
        async with self._lock:
            events = [e for user_events in self._events.values() for e in user_events]
        if since is not None:
            events = [e for e in events if e.timestamp >= since]
        if severity is not None:
            events = [e for e in events if e.severity == severity]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        if limit is not None:
            events = events[:limit]
        return events

    async def clear_older_than(self, cutoff: datetime) -> int:
        """Drop events at or before ``cutoff``.

        Returns:
            Number of events removed.
        """
        removed = 0
        async with self._lock:
            for user_id in list(self._events):
                events = self._events[user_id]
                kept = [e for e in events if e.timestamp > cutoff]
                removed += len(events) - len(kept)
                if kept:
                    self._events[user_id] = deque(kept, maxlen=self.max_events_per_user)
                else:
                    del self._events[user_id]
        return removed

    async def count(self) -> int:
        async with self._lock:
            return sum(len(events) for events in self._events.values())
