"""Tests for RetentionSweeper."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time
from structlog.testing import capture_logs

from src.anomaly_detection.models import SecurityEvent, SecurityEventType, SecuritySeverity
from src.core.config import Settings
from src.core.container import build_security_core
from src.core.enums import Environment
from src.core.retention import RetentionSweeper
from src.session_tracker.models import SessionRecord

START = "2026-06-01 12:00:00"


@pytest.fixture
def core():
    settings = Settings(environment=Environment.TESTING, redis_url=None, _env_file=None)
    return build_security_core(settings, channels=[])


def event_at(user_id, timestamp):
    return SecurityEvent(
        type=SecurityEventType.DEVICE_CHANGE,
        severity=SecuritySeverity.MEDIUM,
        user_id=user_id,
        description="device change",
        timestamp=timestamp,
    )


@pytest.mark.asyncio
class TestRetentionSweeper:
    async def test_sweep_clears_old_events_and_stale_sessions(self, core):
        with freeze_time(START) as frozen:
            now = datetime.now(timezone.utc)
            await core.event_store.add(event_at("user-1", now - timedelta(days=31)))
            await core.event_store.add(event_at("user-2", now - timedelta(days=1)))
            await core.session_tracker.track(
                SessionRecord(user_id="user-1", session_id="s1", ip_address="203.0.113.1")
            )
            frozen.tick(timedelta(hours=25))

            events_removed, sessions_removed = await core.sweeper.sweep_once()

            assert (events_removed, sessions_removed) == (1, 1)
            assert await core.event_store.count() == 1
            assert await core.session_tracker.tracked_user_count() == 0

    async def test_runs_periodically_until_stopped(self, core):
        sweeper = RetentionSweeper(core.monitor, core.session_tracker, interval_seconds=0.01)

        with capture_logs() as logs:
            await sweeper.start()
            await asyncio.sleep(0.1)
            await sweeper.stop()

        assert sweeper.running is False
        assert any(e["event"] == "retention_sweep_completed" for e in logs)

    async def test_failed_sweep_keeps_running(self, core, monkeypatch):
        async def unavailable(older_than_days=None):
            raise RuntimeError("event store unavailable")

        monkeypatch.setattr(core.monitor, "clear_old_events", unavailable)
        sweeper = RetentionSweeper(core.monitor, core.session_tracker, interval_seconds=0.01)

        with capture_logs() as logs:
            await sweeper.start()
            await asyncio.sleep(0.1)
            still_running = sweeper.running
            await sweeper.stop()

        assert still_running is True
        failures = [e for e in logs if e["event"] == "retention_sweep_failed"]
        assert failures and failures[0]["error_type"] == "RuntimeError"


def test_interval_must_be_positive(core):
    with pytest.raises(ValueError):
        RetentionSweeper(core.monitor, core.session_tracker, interval_seconds=0)
