"""Notification test fixtures."""

import pytest

from src.notifications.base import NotificationChannel
from src.notifications.models import Notification


class RecordingChannel(NotificationChannel):
    """Channel that keeps every delivered notification."""

    name = "recording"

    def __init__(self):
        self.sent: list[Notification] = []
        self.closed = False

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)

    async def close(self) -> None:
        self.closed = True


class FailingChannel(NotificationChannel):
    """Channel whose delivery always fails."""

    name = "failing"

    async def send(self, notification: Notification) -> None:
        raise ConnectionError("smtp relay unreachable")


@pytest.fixture
def recording_channel():
    return RecordingChannel()


@pytest.fixture
def failing_channel():
    return FailingChannel()


@pytest.fixture
def notification():
    return Notification(
        event="account_locked",
        severity="high",
        recipient="user@example.com",
        metadata={"failed_attempts": 5},
    )
