"""Anomaly detection test configuration.

Fixtures wire the real event store, response executor, monitor and breach
detector around an in-memory audit log and a recording notifier.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.anomaly_detection.audit import AuditRecord, InMemoryAuditLog
from src.anomaly_detection.breach import BreachDetector
from src.anomaly_detection.event_store import SecurityEventStore
from src.anomaly_detection.models import (
    AutoResponse,
    SecurityEvent,
    SecurityEventType,
    SecuritySeverity,
)
from src.anomaly_detection.monitor import MonitorConfig, SecurityMonitor
from src.anomaly_detection.responder import AutomatedResponseExecutor
from src.notifications.models import Notification

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


class RecordingNotifier:
    def __init__(self):
        self.sent: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.sent.append(notification)


class SessionTerminatorSpy:
    """Stands in for SessionTracker.remove_all."""

    def __init__(self, removed=2):
        self.calls: list[str] = []
        self.removed = removed

    async def __call__(self, user_id: str) -> int:
        self.calls.append(user_id)
        return self.removed


def make_event(
    user_id="user-1",
    event_type=SecurityEventType.DEVICE_CHANGE,
    severity=SecuritySeverity.MEDIUM,
    auto_response=AutoResponse.ALERT_USER,
    timestamp=None,
):
    return SecurityEvent(
        type=event_type,
        severity=severity,
        user_id=user_id,
        description="test event",
        auto_response=auto_response,
        timestamp=timestamp or NOW,
    )


def add_records(log, action, count, at, **fields):
    for i in range(count):
        log.append(AuditRecord(action=action, timestamp=at + timedelta(seconds=i), **fields))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def terminator():
    return SessionTerminatorSpy()


@pytest.fixture
def audit_log():
    return InMemoryAuditLog()


@pytest.fixture
def event_store():
    return SecurityEventStore(max_events_per_user=100)


@pytest.fixture
def responder(notifier, terminator):
    return AutomatedResponseExecutor(notifier, terminate_sessions=terminator, cooldown_seconds=300)


@pytest.fixture
def monitor(event_store, responder):
    return SecurityMonitor(event_store, responder, MonitorConfig())


@pytest.fixture
def breach_detector(audit_log, monitor, notifier):
    return BreachDetector(audit_log, monitor, notifier, security_team_recipient="soc")

