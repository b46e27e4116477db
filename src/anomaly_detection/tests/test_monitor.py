"""Tests for SecurityMonitor and MonitorConfig."""

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time
from structlog.testing import capture_logs

from src.anomaly_detection.models import SecurityEventType, SecuritySeverity
from src.anomaly_detection.monitor import MonitorConfig
from src.core.config import Settings
from src.core.enums import Environment

from .conftest import make_event


class TestMonitorConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_second_factor_failures": 0},
            {"max_events_per_user": 0},
            {"event_retention_days": 0},
            {"response_cooldown_seconds": -5},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            MonitorConfig(**kwargs)

    def test_from_settings(self):
        settings = Settings(
            environment=Environment.TESTING,
            security_max_second_factor_failures=4,
            security_event_retention_days=7,
        )

        config = MonitorConfig.from_settings(settings)

        assert config.max_second_factor_failures == 4
        assert config.event_retention_days == 7
        assert config.max_events_per_user == 100


@pytest.mark.asyncio
class TestRecordEvent:
    async def test_stores_logs_and_responds(self, monitor, notifier):
        event = make_event(severity=SecuritySeverity.HIGH)

        with capture_logs() as logs:
            await monitor.record_event(event)

        assert await monitor.get_user_events("user-1") == [event]
        assert logs[0]["event"] == "security_event_detected"
        assert logs[0]["log_level"] == "warning"
        assert logs[0]["event_type"] == "device_change"
        assert [n.event for n in notifier.sent] == ["security_alert"]

    async def test_critical_events_log_as_errors(self, monitor):
        with capture_logs() as logs:
            await monitor.record_event(make_event(severity=SecuritySeverity.CRITICAL))

        assert logs[0]["log_level"] == "error"


@pytest.mark.asyncio
class TestLoginChecks:
    async def test_unusual_login_time_recorded_without_response(self, monitor, notifier):
        at = datetime(2026, 6, 1, 8, 15, tzinfo=timezone.utc)

        event = await monitor.check_unusual_login_time(
            "user-1", at=at, tz_name="America/Chicago", ip_address="10.0.0.1"
        )

        assert event.type == SecurityEventType.UNUSUAL_LOGIN_TIME
        assert event.metadata["hour"] == 3
        assert await monitor.get_user_events("user-1") == [event]
        assert notifier.sent == []

    async def test_daytime_login_records_nothing(self, monitor):
        at = datetime(2026, 6, 1, 15, 0, tzinfo=timezone.utc)

        assert await monitor.check_unusual_login_time("user-1", at=at) is None
        assert await monitor.get_user_events("user-1") == []

    async def test_second_factor_failures_force_logout(self, monitor, terminator):
        assert await monitor.check_second_factor_failures("user-1", 2) is None

        event = await monitor.check_second_factor_failures("user-1", 3)

        assert event.type == SecurityEventType.EXCESSIVE_SECOND_FACTOR_FAILURES
        assert terminator.calls == ["user-1"]

    async def test_reported_hijack(self, monitor, terminator, notifier):
        event = await monitor.report_session_hijack(
            "user-1", "sess-1", "user agent changed mid-session", {"old": "A", "new": "B"}
        )

        assert event.severity == SecuritySeverity.CRITICAL
        assert terminator.calls == ["user-1"]
        assert notifier.sent[0].metadata["sessions_terminated"] is True


@pytest.mark.asyncio
class TestQueries:
    async def test_get_all_events_newest_first(self, monitor):
        with freeze_time("2026-06-01 12:00:00") as frozen:
            for user_id in ("a", "b", "c"):
                await monitor.record_event(
                    make_event(user_id, timestamp=datetime.now(timezone.utc))
                )
                frozen.tick(timedelta(minutes=1))

        events = await monitor.get_all_events(limit=2)

        assert [e.user_id for e in events] == ["c", "b"]

    async def test_clear_old_events_uses_retention(self, monitor):
        now = datetime.now(timezone.utc)
        await monitor.record_event(make_event("a", timestamp=now - timedelta(days=45)))
        await monitor.record_event(make_event("b", timestamp=now - timedelta(days=2)))

        assert await monitor.clear_old_events() == 1
        assert await monitor.clear_old_events(older_than_days=1) == 1
        assert await monitor.get_all_events() == []
