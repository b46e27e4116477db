"""Tests for AutomatedResponseExecutor."""

from datetime import timedelta

import pytest
from freezegun import freeze_time
from structlog.testing import capture_logs

from src.anomaly_detection.models import AutoResponse, SecurityEventType, SecuritySeverity
from src.anomaly_detection.responder import AutomatedResponseExecutor

from .conftest import make_event


@pytest.mark.asyncio
class TestResponses:
    async def test_alert_user(self, responder, notifier, terminator):
        executed = await responder.execute(make_event())

        assert executed is True
        assert terminator.calls == []
        alert = notifier.sent[0]
        assert alert.event == "security_alert"
        assert alert.recipient == "user-1"
        assert alert.severity.value == "medium"
        assert alert.metadata["event_type"] == "device_change"
        assert alert.metadata["sessions_terminated"] is False

    async def test_force_logout_terminates_then_alerts(self, responder, notifier, terminator):
        event = make_event(
            event_type=SecurityEventType.SUSPECTED_HIJACK,
            severity=SecuritySeverity.CRITICAL,
            auto_response=AutoResponse.FORCE_LOGOUT,
        )

        with capture_logs() as logs:
            await responder.execute(event)

        assert terminator.calls == ["user-1"]
        assert notifier.sent[0].metadata["sessions_terminated"] is True
        logout = [e for e in logs if e["event"] == "forced_logout"]
        assert logout[0]["sessions_removed"] == 2

    async def test_require_second_factor_hook(self, notifier):
        flagged = []

        async def require(user_id):
            flagged.append(user_id)

        responder = AutomatedResponseExecutor(notifier, require_second_factor=require)

        await responder.execute(
            make_event(
                event_type=SecurityEventType.ACCOUNT_COMPROMISE,
                auto_response=AutoResponse.REQUIRE_SECOND_FACTOR,
            )
        )

        assert flagged == ["user-1"]
        assert len(notifier.sent) == 1

    async def test_none_does_nothing(self, responder, notifier, terminator):
        executed = await responder.execute(make_event(auto_response=AutoResponse.NONE))

        assert executed is False
        assert notifier.sent == []
        assert terminator.calls == []

    async def test_failing_terminator_still_alerts(self, notifier):
        async def broken(user_id):
            raise RuntimeError("session store down")

        responder = AutomatedResponseExecutor(notifier, terminate_sessions=broken)

        with capture_logs() as logs:
            await responder.execute(make_event(auto_response=AutoResponse.FORCE_LOGOUT))

        assert len(notifier.sent) == 1
        assert logs[0]["event"] == "automated_response_failed"


@pytest.mark.asyncio
class TestCooldown:
    async def test_repeat_within_cooldown_is_suppressed(self, responder, notifier):
        with freeze_time("2026-06-01 12:00:00") as frozen:
            first = await responder.execute(make_event())
            frozen.tick(timedelta(seconds=299))
            with capture_logs() as logs:
                second = await responder.execute(make_event())

        assert (first, second) == (True, False)
        assert len(notifier.sent) == 1
        assert logs[0]["event"] == "automated_response_suppressed"

    async def test_cooldown_expires(self, responder, notifier):
        with freeze_time("2026-06-01 12:00:00") as frozen:
            await responder.execute(make_event())
            frozen.tick(timedelta(seconds=300))

            again = await responder.execute(make_event())

        assert again is True
        assert len(notifier.sent) == 2

    async def test_cooldown_is_per_user_and_type(self, responder, notifier):
        await responder.execute(make_event("user-1"))
        await responder.execute(make_event("user-2"))
        await responder.execute(
            make_event("user-1", event_type=SecurityEventType.RAPID_ORIGIN_CHANGE)
        )

        assert len(notifier.sent) == 3

    def test_negative_cooldown_rejected(self):
        with pytest.raises(ValueError):
            AutomatedResponseExecutor(cooldown_seconds=-1)
