"""Security monitor.

Central sink for SecurityEvents: every event, whichever detector produced
it, goes through ``record_event``, which stores it, logs it and hands it to
the automated response executor. The monitor also runs the login-time
detectors directly (unusual local hour, second-factor failures, reported
session hijack) and answers admin queries over stored events.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog

from src.anomaly_detection.detectors import (
    detect_excessive_second_factor_failures,
    detect_session_hijack,
    detect_unusual_login_time,
)
from src.anomaly_detection.event_store import SecurityEventStore
from src.anomaly_detection.models import SecurityEvent, SecuritySeverity
from src.anomaly_detection.responder import AutomatedResponseExecutor
from src.core.config import Settings

logger = structlog.get_logger(__name__)

_LOG_LEVEL_BY_SEVERITY = {
    SecuritySeverity.LOW: "info",
    SecuritySeverity.MEDIUM: "warning",
    SecuritySeverity.HIGH: "warning",
    SecuritySeverity.CRITICAL: "error",
}


@dataclass
class MonitorConfig:
    """Security monitor thresholds.

    Attributes:
        max_second_factor_failures: Failures that trigger a forced logout (default: 3)
        max_events_per_user: Stored events per user (default: 100)
        event_retention_days: Default age for clear_old_events (default: 30)
        response_cooldown_seconds: Automated response suppression period (default: 300)
    """

    max_second_factor_failures: int = 3
    max_events_per_user: int = 100
    event_retention_days: int = 30
    response_cooldown_seconds: int = 300

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.max_second_factor_failures < 1:
            raise ValueError("max_second_factor_failures must be at least 1")
        if self.max_events_per_user < 1:
            raise ValueError("max_events_per_user must be at least 1")
        if self.event_retention_days < 1:
            raise ValueError("event_retention_days must be at least 1")
        if self.response_cooldown_seconds < 0:
            raise ValueError("response_cooldown_seconds must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "MonitorConfig":
        """Build from application settings."""
        return cls(
            max_second_factor_failures=settings.security_max_second_factor_failures,
            max_events_per_user=settings.security_max_events_per_user,
            event_retention_days=settings.security_event_retention_days,
            response_cooldown_seconds=settings.security_response_cooldown_seconds,
        )


class SecurityMonitor:
    """Stores, logs and responds to security events."""

    def __init__(
        self,
        event_store: SecurityEventStore,
        responder: AutomatedResponseExecutor,
        config: Optional[MonitorConfig] = None,
    ):
        self.event_store = event_store
        self.responder = responder
        self.config = config or MonitorConfig()

    async def record_event(self, event: SecurityEvent) -> None:
        """Store, log and respond to one event."""
        await self.event_store.add(event)
        log = getattr(logger, _LOG_LEVEL_BY_SEVERITY[event.severity])
        log(
            "security_event_detected",
            event_id=event.event_id,
            event_type=event.type.value,
            severity=event.severity.value,
            user_id=event.user_id,
            auto_response=event.auto_response.value,
            details=event.metadata,
        )
        await self.responder.execute(event)

    async def _record_if_detected(
        self, event: Optional[SecurityEvent]
    ) -> Optional[SecurityEvent]:
        if event is not None:
            await self.record_event(event)
        return event

    # -------------------------------------------------------------------------
    # Login-time checks
    # -------------------------------------------------------------------------

    async def check_unusual_login_time(
        self,
        user_id: str,
        at: Optional[datetime] = None,
        tz_name: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Optional[SecurityEvent]:
        """Flag logins between 02:00 and 05:59 in the user's local time."""
        return await self._record_if_detected(
            detect_unusual_login_time(
                user_id, at or datetime.now(timezone.utc), tz_name, ip_address
            )
        )

    async def check_second_factor_failures(
        self, user_id: str, failure_count: int
    ) -> Optional[SecurityEvent]:
        return await self._record_if_detected(
            detect_excessive_second_factor_failures(
                user_id, failure_count, self.config.max_second_factor_failures
            )
        )

    async def report_session_hijack(
        self,
        user_id: str,
        session_id: str,
        reason: str,
        evidence: Optional[dict[str, Any]] = None,
    ) -> SecurityEvent:
        """Record caller-detected hijack evidence (always forces logout)."""
        event = detect_session_hijack(user_id, session_id, reason, evidence)
        await self.record_event(event)
        return event

    # -------------------------------------------------------------------------
    # Queries and retention
    # -------------------------------------------------------------------------

    async def get_user_events(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[SecurityEvent]:
        return await self.event_store.get_user_events(user_id, since, limit)

    async def get_all_events(
        self,
        since: Optional[datetime] = None,
        severity: Optional[SecuritySeverity] = None,
        limit: Optional[int] = None,
    ) -> list[SecurityEvent]:
        """All users' events, newest first."""
        return await self.event_store.get_all_events(since, severity, limit)

    async def clear_old_events(self, older_than_days: Optional[int] = None) -> int:
        """Drop events older than the retention period.

        Returns:
            Number of events removed.
        """
        days = older_than_days
        if days is None:
            days = self.config.event_retention_days
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        removed = await self.event_store.clear_older_than(cutoff)
        logger.info("security_events_cleared", removed=removed, older_than_days=days)
        return removed
