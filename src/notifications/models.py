"""Notification payload model.

A notification is the only thing the security core hands to the outside
world when something needs a human's attention: an account lock or unlock,
a security alert for a user, a breach report or a DoS warning for the
security team.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationSeverity(str, Enum):
    """Urgency attached to a notification."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Notification(BaseModel):
    """Immutable notification handed to the notifier.

    Attributes:
        event: Event or reason key (e.g., "account_locked", "security_alert").
        severity: Urgency.
        recipient: Identity to notify (email, user id, or a team alias).
        metadata: Free-form evidence and template data.
        created_at: Creation time (UTC).
    """

    model_config = ConfigDict(frozen=True)

    event: str = Field(..., min_length=1, description="Event or reason key")
    severity: NotificationSeverity = Field(
        default=NotificationSeverity.INFO, description="Urgency"
    )
    recipient: str = Field(..., min_length=1, description="Identity to notify")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Evidence bag")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation time (UTC)",
    )
