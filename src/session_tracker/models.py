"""Tracked session models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionRecord(BaseModel):
    """One authenticated session as seen by the tracker.

    Attributes:
        user_id: Owner of the session.
        session_id: Unique session identifier.
        ip_address: Client IP address at login.
        device_id: Device fingerprint, if the client supplied one.
        user_agent: Client User-Agent string.
        created_at: When the session was tracked.
        last_activity: Last time the session was seen.
        timezone: IANA timezone of the client, used for local-hour checks.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1)
    ip_address: Optional[str] = None
    device_id: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    last_activity: datetime = Field(default_factory=utc_now)
    timezone: Optional[str] = None


class SessionLifecycle(str, Enum):
    CREATED = "created"
    TOUCHED = "touched"
    REMOVED = "removed"


class SessionLifecycleEvent(BaseModel):
    """Notification of a change to the tracked session set."""

    model_config = ConfigDict(frozen=True)

    kind: SessionLifecycle
    session: SessionRecord
    at: datetime = Field(default_factory=utc_now)
