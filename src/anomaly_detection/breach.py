"""Breach detection over the audit log.

BreachDetector runs the audit detectors for a user, records anything found
through the SecurityMonitor (so it is stored and answered like any other
event) and reports it to the security team as a ``security_breach``
notification. Audit reader failures are logged and treated as "nothing
detected": a broken audit query must not break the request that triggered
the check. Invalid arguments raise ValueError before any query runs.

Administrators can also report a breach by hand (``report_breach``); the
report is logged and sent to the security team the same way.
"""

from datetime import datetime, timedelta
from typing import Any, Awaitable, Optional

import structlog

from src.anomaly_detection.audit import AuditLogReader
from src.anomaly_detection.detectors import (
    detect_account_compromise,
    detect_brute_force_login,
    detect_data_exfiltration,
    detect_mass_data_access,
    detect_multi_origin_login,
)
from src.anomaly_detection.models import (
    BreachReport,
    BreachType,
    SecurityEvent,
    SecuritySeverity,
)
from src.anomaly_detection.monitor import SecurityMonitor
from src.notifications.base import Notifier
from src.notifications.models import Notification, NotificationSeverity

logger = structlog.get_logger(__name__)


def _require_user(user_id: str) -> None:
    if not user_id or not user_id.strip():
        raise ValueError("user_id must be a non-empty string")


class BreachDetector:
    """Audit-log breach checks wired to the monitor and the security team."""

    def __init__(
        self,
        reader: AuditLogReader,
        monitor: SecurityMonitor,
        notifier: Optional[Notifier] = None,
        security_team_recipient: str = "security-team",
    ):
        self.reader = reader
        self.monitor = monitor
        self.notifier = notifier
        self.security_team_recipient = security_team_recipient

    async def check_login(
        self,
        user_id: str,
        ip_address: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> Optional[SecurityEvent]:
        """Brute force from the login IP, then logins from many IPs."""
        _require_user(user_id)
        if ip_address:
            event = await self._run(
                "brute_force_login",
                user_id,
                detect_brute_force_login(self.reader, user_id, ip_address, at),
            )
            if event is not None:
                return event
        return await self._run(
            "multi_origin_login", user_id, detect_multi_origin_login(self.reader, user_id, at)
        )

    async def check_mass_data_access(
        self,
        user_id: str,
        resource_type: str,
        window: timedelta,
        threshold: int,
    ) -> Optional[SecurityEvent]:
        """PHI views of one resource type in ``window`` reaching ``threshold``.

        Raises:
            ValueError: If an argument is empty or not positive.
        """
        _require_user(user_id)
        if not resource_type:
            raise ValueError("resource_type must be a non-empty string")
        if window <= timedelta(0):
            raise ValueError("window must be positive")
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        return await self._run(
            "mass_data_access",
            user_id,
            detect_mass_data_access(self.reader, user_id, resource_type, window, threshold),
        )

    async def check_account_compromise(self, user_id: str) -> Optional[SecurityEvent]:
        _require_user(user_id)
        return await self._run(
            "account_compromise", user_id, detect_account_compromise(self.reader, user_id)
        )

    async def check_data_exfiltration(self, user_id: str) -> Optional[SecurityEvent]:
        _require_user(user_id)
        return await self._run(
            "data_exfiltration", user_id, detect_data_exfiltration(self.reader, user_id)
        )

    async def _run(
        self,
        detector: str,
        user_id: str,
        detection: Awaitable[Optional[SecurityEvent]],
    ) -> Optional[SecurityEvent]:
        try:
            event = await detection
        except Exception as e:
            logger.error(
                "breach_detection_failed",
                detector=detector,
                user_id=user_id,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return None

        if event is None:
            return None
        await self.monitor.record_event(event)
        self._report(event)
        return event

    def _report(self, event: SecurityEvent) -> None:
        logger.critical(
            "security_breach_detected",
            event_id=event.event_id,
            event_type=event.type.value,
            severity=event.severity.value,
            user_id=event.user_id,
        )
        if self.notifier is None:
            return
        self.notifier.notify(
            Notification(
                event="security_breach",
                severity=NotificationSeverity(event.severity.value),
                recipient=self.security_team_recipient,
                metadata={
                    "event_id": event.event_id,
                    "event_type": event.type.value,
                    "description": event.description,
                    "affected_users": [event.user_id],
                    "affected_data": ["PHI"],
                    "details": event.metadata,
                },
            )
        )

    def report_breach(
        self,
        breach_type: BreachType,
        severity: SecuritySeverity,
        description: str,
        affected_users: Optional[list[str]] = None,
        affected_data: Optional[list[str]] = None,
        reported_by: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> BreachReport:
        """Record a breach reported by an administrator and alert the security team.

        Returns:
            BreachReport carrying the new breach id.

        Raises:
            ValueError: If description is empty.
        """
        if not description or not description.strip():
            raise ValueError("description must be a non-empty string")
        report = BreachReport(
            type=breach_type,
            severity=severity,
            description=description,
            affected_users=affected_users or [],
            affected_data=affected_data or [],
            reported_by=reported_by,
            details=details or {},
        )
        logger.critical(
            "security_breach_reported",
            breach_id=report.breach_id,
            breach_type=report.type.value,
            severity=report.severity.value,
            affected_user_count=len(report.affected_users),
            affected_data=report.affected_data,
            reported_by=reported_by,
        )
        if self.notifier is not None:
            self.notifier.notify(
                Notification(
                    event="security_breach",
                    severity=NotificationSeverity(report.severity.value),
                    recipient=self.security_team_recipient,
                    metadata={
                        "breach_id": report.breach_id,
                        "breach_type": report.type.value,
                        "description": report.description,
                        "affected_users": report.affected_users,
                        "affected_user_count": len(report.affected_users),
                        "affected_data": report.affected_data,
                        "reported_by": reported_by,
                        "details": report.details,
                    },
                )
            )
        return report
