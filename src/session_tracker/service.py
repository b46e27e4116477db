"""Session tracker.

Keeps the set of active sessions per user and runs the session anomaly
detectors on every new session. Detected SecurityEvents are published to
subscribers (normally ``SecurityMonitor.record_event``); lifecycle events
(created, touched, removed) go to lifecycle subscribers.

Concurrency:
    One asyncio.Lock guards all session state. The insert and the detection
    run under the same lock acquisition, so two near-simultaneous logins
    cannot both miss a concurrent-session alert. Subscribers are called
    after the lock is released and may therefore call back into the tracker
    (a force-logout response calls ``remove_all``).

Bounds:
    At most ``max_tracked_per_user`` sessions per user (least recently active
    dropped first). Sessions idle longer than ``stale_after_hours`` are
    pruned whenever the user's sessions are accessed, and for every user by
    ``prune_stale`` (run periodically by the retention sweeper).

Usage:
    ```python
    tracker = SessionTracker(SessionTrackerConfig())
    tracker.subscribe(monitor.record_event)

    events = await tracker.track(
        SessionRecord(user_id="u1", session_id="s1", ip_address="203.0.113.7")
    )
    ```
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Iterable, Optional

import structlog

from src.anomaly_detection.detectors import (
    detect_concurrent_sessions,
    detect_device_change,
    detect_rapid_origin_change,
)
from src.anomaly_detection.models import SecurityEvent
from src.session_tracker.config import SessionTrackerConfig
from src.session_tracker.models import (
    SessionLifecycle,
    SessionLifecycleEvent,
    SessionRecord,
    utc_now,
)

logger = structlog.get_logger(__name__)

SecurityEventHandler = Callable[[SecurityEvent], Awaitable[Any]]
LifecycleHandler = Callable[[SessionLifecycleEvent], Awaitable[Any]]


class SessionTracker:
    """In-process tracker of active sessions per user."""

    def __init__(self, config: Optional[SessionTrackerConfig] = None):
        self.config = config or SessionTrackerConfig()
        self._sessions: dict[str, dict[str, SessionRecord]] = {}
        self._lock = asyncio.Lock()
        self._event_handlers: list[SecurityEventHandler] = []
        self._lifecycle_handlers: list[LifecycleHandler] = []

    def subscribe(self, handler: SecurityEventHandler) -> None:
        """Register a coroutine called with each detected SecurityEvent."""
        self._event_handlers.append(handler)

    def subscribe_lifecycle(self, handler: LifecycleHandler) -> None:
        """Register a coroutine called with each SessionLifecycleEvent."""
        self._lifecycle_handlers.append(handler)

    async def track(self, session: SessionRecord) -> list[SecurityEvent]:
        """Start tracking a session and run the session detectors.

        A session id that is already tracked for the user is replaced.

        Returns:
            SecurityEvents detected for this session (also published).
        """
        async with self._lock:
            now = utc_now()
            user_sessions = self._sessions.setdefault(session.user_id, {})
            dropped = self._prune_stale(user_sessions, now)
            user_sessions[session.session_id] = session
            dropped += self._enforce_cap(user_sessions, keep=session.session_id)

            sessions = list(user_sessions.values())
            detected = [
                event
                for event in (
                    detect_concurrent_sessions(
                        session.user_id, sessions, self.config.max_concurrent_sessions, now
                    ),
                    detect_rapid_origin_change(
                        session.user_id, sessions, self.config.max_ip_changes_per_hour, now
                    ),
                    detect_device_change(session.user_id, sessions, session, now),
                )
                if event is not None
            ]
            tracked = len(sessions)

        logger.debug(
            "session_tracked",
            user_id=session.user_id,
            session_id=session.session_id,
            tracked_sessions=tracked,
            detected=[event.type.value for event in detected],
        )
        await self._publish_lifecycle(SessionLifecycle.REMOVED, dropped)
        await self._publish_lifecycle(SessionLifecycle.CREATED, [session])
        for event in detected:
            await self._publish(self._event_handlers, event)
        return detected

    async def touch(self, session_id: str, user_id: str) -> bool:
        """Record activity on a session.

        Returns:
            False if the session is not tracked.
        """
        async with self._lock:
            user_sessions = self._sessions.get(user_id)
            current = user_sessions.get(session_id) if user_sessions else None
            if current is None:
                return False
            touched = current.model_copy(update={"last_activity": utc_now()})
            user_sessions[session_id] = touched

        await self._publish_lifecycle(SessionLifecycle.TOUCHED, [touched])
        return True

    async def remove(self, session_id: str, user_id: str) -> bool:
        """Stop tracking one session.

        Returns:
            False if the session was not tracked.
        """
        async with self._lock:
            user_sessions = self._sessions.get(user_id)
            removed = user_sessions.pop(session_id, None) if user_sessions else None
            if user_sessions is not None and not user_sessions:
                del self._sessions[user_id]

        if removed is None:
            return False
        await self._publish_lifecycle(SessionLifecycle.REMOVED, [removed])
        return True

    async def remove_all(self, user_id: str) -> int:
        """Stop tracking every session of a user (forced logout).

        Returns:
            Number of sessions removed.
        """
        async with self._lock:
            removed = list(self._sessions.pop(user_id, {}).values())

        if removed:
            logger.info("sessions_removed", user_id=user_id, count=len(removed))
        await self._publish_lifecycle(SessionLifecycle.REMOVED, removed)
        return len(removed)

    async def get_active_sessions(
        self,
        user_id: str,
        within: Optional[timedelta] = None,
    ) -> list[SessionRecord]:
        """Tracked sessions of a user, most recently active first.

        Args:
            user_id: Session owner.
            within: Only sessions active within this interval.
        """
        async with self._lock:
            now = utc_now()
            user_sessions = self._sessions.get(user_id)
            if not user_sessions:
                return []
            dropped = self._prune_stale(user_sessions, now)
            if not user_sessions:
                del self._sessions[user_id]
            sessions = [
                s
                for s in user_sessions.values()
                if within is None or now - s.last_activity <= within
            ]

        await self._publish_lifecycle(SessionLifecycle.REMOVED, dropped)
        return sorted(sessions, key=lambda s: s.last_activity, reverse=True)

    async def prune_stale(self) -> int:
        """Forget idle sessions of every user (periodic sweep).

        Users whose sessions are all stale are dropped entirely.

        Returns:
            Number of sessions removed.
        """
        async with self._lock:
            now = utc_now()
            dropped: list[SessionRecord] = []
            for user_id in list(self._sessions):
                user_sessions = self._sessions[user_id]
                dropped.extend(self._prune_stale(user_sessions, now))
                if not user_sessions:
                    del self._sessions[user_id]

        if dropped:
            logger.info("stale_sessions_pruned", count=len(dropped))
        await self._publish_lifecycle(SessionLifecycle.REMOVED, dropped)
        return len(dropped)

    async def tracked_user_count(self) -> int:
        async with self._lock:
            return len(self._sessions)

    # -------------------------------------------------------------------------
    # Internals (called with the lock held unless noted)
    # -------------------------------------------------------------------------

    def _prune_stale(
        self, user_sessions: dict[str, SessionRecord], now: datetime
    ) -> list[SessionRecord]:
        cutoff = now - self.config.stale_after
        stale = [s for s in user_sessions.values() if s.last_activity < cutoff]
        for s in stale:
            del user_sessions[s.session_id]
        return stale

    def _enforce_cap(
        self, user_sessions: dict[str, SessionRecord], keep: str
    ) -> list[SessionRecord]:
        overflow = len(user_sessions) - self.config.max_tracked_per_user
        if overflow <= 0:
            return []
        candidates = sorted(
            (s for s in user_sessions.values() if s.session_id != keep),
            key=lambda s: s.last_activity,
        )
        evicted = candidates[:overflow]
        for s in evicted:
            del user_sessions[s.session_id]
        logger.info(
            "sessions_evicted", user_id=evicted[0].user_id, count=len(evicted)
        )
        return evicted

    async def _publish_lifecycle(
        self, kind: SessionLifecycle, sessions: Iterable[SessionRecord]
    ) -> None:
        """Called without the lock held."""
        for session in sessions:
            await self._publish(
                self._lifecycle_handlers, SessionLifecycleEvent(kind=kind, session=session)
            )

    @staticmethod
    async def _publish(handlers: list, item: Any) -> None:
        """Fan out to subscribers; a failing subscriber never affects the caller."""
        if not handlers:
            return
        results = await asyncio.gather(*(h(item) for h in handlers), return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, BaseException):
                logger.error(
                    "session_subscriber_failed",
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error_type=type(result).__name__,
                    error_message=str(result),
                )
