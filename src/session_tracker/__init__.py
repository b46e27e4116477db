"""Active session tracking with session anomaly detection."""

from src.session_tracker.config import SessionTrackerConfig
from src.session_tracker.models import (
    SessionLifecycle,
    SessionLifecycleEvent,
    SessionRecord,
)
from src.session_tracker.service import SessionTracker

__all__ = [
    "SessionLifecycle",
    "SessionLifecycleEvent",
    "SessionRecord",
    "SessionTracker",
    "SessionTrackerConfig",
]
