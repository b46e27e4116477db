"""Session tracker test configuration."""

import pytest

from src.session_tracker.config import SessionTrackerConfig
from src.session_tracker.models import SessionRecord
from src.session_tracker.service import SessionTracker


class Recorder:
    """Async subscriber that remembers what it received."""

    def __init__(self):
        self.received = []

    async def __call__(self, item):
        self.received.append(item)


def make_session(session_id, ip_address="203.0.113.1", user_id="user-1", **kwargs):
    return SessionRecord(
        user_id=user_id, session_id=session_id, ip_address=ip_address, **kwargs
    )


@pytest.fixture
def config():
    return SessionTrackerConfig(
        max_concurrent_sessions=3,
        max_ip_changes_per_hour=5,
        max_tracked_per_user=20,
        stale_after_hours=24,
    )


@pytest.fixture
def tracker(config):
    return SessionTracker(config)


@pytest.fixture
def recorder():
    return Recorder()
