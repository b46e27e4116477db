"""Automated responses to security events.

Detection and response are kept apart: detectors only describe what they
saw, and this executor performs the side effects named by the event's
``auto_response``:

    alert_user              enqueue a ``security_alert`` notification
    force_logout            terminate all tracked sessions, then alert
    require_second_factor   call the injected hook (if any), then alert
    none                    nothing

The same (user, event type) is answered at most once per cooldown period;
repeats are logged and suppressed so a burst of detections cannot become a
burst of emails or logouts.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

import structlog

from src.anomaly_detection.models import AutoResponse, SecurityEvent
from src.notifications.base import Notifier
from src.notifications.models import Notification, NotificationSeverity

logger = structlog.get_logger(__name__)

SessionTerminator = Callable[[str], Awaitable[Any]]
SecondFactorHook = Callable[[str], Awaitable[Any]]


class AutomatedResponseExecutor:
    """Runs the automated response of a SecurityEvent."""

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        terminate_sessions: Optional[SessionTerminator] = None,
        require_second_factor: Optional[SecondFactorHook] = None,
        cooldown_seconds: float = 300,
    ):
        """Initialize the executor.

        Args:
            notifier: Destination of security alerts.
            terminate_sessions: Coroutine ending every session of a user
                (normally ``SessionTracker.remove_all``).
            require_second_factor: Coroutine flagging a user for step-up
                authentication.
            cooldown_seconds: Suppression period per (user, event type).
        """
        if cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must not be negative")
        self.notifier = notifier
        self.terminate_sessions = terminate_sessions
        self.require_second_factor = require_second_factor
        self.cooldown_seconds = cooldown_seconds
        self._last_response: dict[tuple[str, str], float] = {}
        self._lock = asyncio.Lock()

    async def execute(self, event: SecurityEvent) -> bool:
        """Run the event's automated response.

        Returns:
            True if a response ran, False for ``none`` or a suppressed repeat.
        """
        if event.auto_response == AutoResponse.NONE:
            return False
        if not await self._claim(event):
            logger.info(
                "automated_response_suppressed",
                user_id=event.user_id,
                event_type=event.type.value,
                auto_response=event.auto_response.value,
                cooldown_seconds=self.cooldown_seconds,
            )
            return False

        if event.auto_response == AutoResponse.FORCE_LOGOUT:
            await self._force_logout(event)
        elif event.auto_response == AutoResponse.REQUIRE_SECOND_FACTOR:
            await self._require_second_factor(event)

        self._alert_user(event)
        return True

    async def _claim(self, event: SecurityEvent) -> bool:
        """Take the cooldown slot for (user, type); False if still cooling down."""
        now = time.time()
        key = (event.user_id, event.type.value)
        async with self._lock:
            expired = [
                k
                for k, at in self._last_response.items()
                if now - at >= self.cooldown_seconds
            ]
            for k in expired:
                del self._last_response[k]
            if key in self._last_response:
                return False
            self._last_response[key] = now
            return True

    async def _force_logout(self, event: SecurityEvent) -> None:
        if self.terminate_sessions is None:
            logger.warning("force_logout_unavailable", user_id=event.user_id)
            return
        try:
            removed = await self.terminate_sessions(event.user_id)
        except Exception as e:
            logger.error(
                "automated_response_failed",
                user_id=event.user_id,
                auto_response=event.auto_response.value,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return
        logger.warning(
            "forced_logout",
            user_id=event.user_id,
            event_type=event.type.value,
            sessions_removed=removed,
        )

    async def _require_second_factor(self, event: SecurityEvent) -> None:
        if self.require_second_factor is None:
            return
        try:
            await self.require_second_factor(event.user_id)
        except Exception as e:
            logger.error(
                "automated_response_failed",
                user_id=event.user_id,
                auto_response=event.auto_response.value,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return
        logger.warning("second_factor_required", user_id=event.user_id)

    def _alert_user(self, event: SecurityEvent) -> None:
        if self.notifier is None:
            return
        self.notifier.notify(
            Notification(
                event="security_alert",
                severity=NotificationSeverity(event.severity.value),
                recipient=event.user_id,
                metadata={
                    "event_id": event.event_id,
                    "event_type": event.type.value,
                    "description": event.description,
                    "detected_at": event.timestamp.isoformat(),
                    "sessions_terminated": event.auto_response == AutoResponse.FORCE_LOGOUT,
                    "details": event.metadata,
                },
            )
        )
