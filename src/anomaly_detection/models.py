"""Security event model.

A SecurityEvent is the single output type of every detector, whether it
looks at tracked sessions, at a login, or at the audit log. Events are
immutable once produced; the monitor stores them and the response executor
acts on ``auto_response``.
"""

import secrets
import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SecurityEventType(str, Enum):
    """What was detected."""

    CONCURRENT_SESSION = "concurrent_session"
    RAPID_ORIGIN_CHANGE = "rapid_origin_change"
    DEVICE_CHANGE = "device_change"
    UNUSUAL_LOGIN_TIME = "unusual_login_time"
    EXCESSIVE_SECOND_FACTOR_FAILURES = "excessive_second_factor_failures"
    SUSPECTED_HIJACK = "suspected_hijack"
    UNUSUAL_LOGIN_PATTERN = "unusual_login_pattern"
    MASS_DATA_ACCESS = "mass_data_access"
    ACCOUNT_COMPROMISE = "account_compromise"
    DATA_EXFILTRATION = "data_exfiltration"


class SecuritySeverity(str, Enum):
    """Event severity, ordered from least to most urgent."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AutoResponse(str, Enum):
    """Automated response attached to an event."""

    ALERT_USER = "alert_user"
    FORCE_LOGOUT = "force_logout"
    REQUIRE_SECOND_FACTOR = "require_second_factor"
    NONE = "none"


class SecurityEvent(BaseModel):
    """Immutable record of one detected anomaly.

    Attributes:
        event_id: Unique identifier.
        type: What was detected.
        severity: How urgent it is.
        user_id: Affected user.
        timestamp: Detection time (UTC).
        description: Human-readable summary.
        metadata: Evidence (counts, addresses, devices, thresholds).
        auto_response: Response the executor should run.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: SecurityEventType
    severity: SecuritySeverity
    user_id: str = Field(..., min_length=1)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    auto_response: AutoResponse = AutoResponse.NONE


class BreachType(str, Enum):
    """Category of a manually reported breach."""

    UNAUTHORIZED_ACCESS = "unauthorized_access"
    DATA_EXFILTRATION = "data_exfiltration"
    BRUTE_FORCE_ATTACK = "brute_force_attack"
    UNUSUAL_LOGIN_PATTERN = "unusual_login_pattern"
    MASS_DATA_ACCESS = "mass_data_access"
    ACCOUNT_COMPROMISE = "account_compromise"
    PHI_EXPOSURE = "phi_exposure"
    SYSTEM_INTRUSION = "system_intrusion"


def new_breach_id() -> str:
    """``BREACH-<epoch ms>-<6 hex chars>``, sortable by report time."""
    return f"BREACH-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


class BreachReport(BaseModel):
    """A breach reported by an administrator.

    Attributes:
        breach_id: Identifier returned to the reporter.
        type: Breach category.
        severity: How urgent it is.
        description: What happened.
        affected_users: User ids involved.
        affected_data: Data categories involved (e.g. "PHI").
        reported_by: Reporting administrator, if known.
        reported_at: Report time (UTC).
        details: Free-form evidence.
    """

    model_config = ConfigDict(frozen=True)

    breach_id: str = Field(default_factory=new_breach_id)
    type: BreachType
    severity: SecuritySeverity
    description: str = Field(..., min_length=1)
    affected_users: list[str] = Field(default_factory=list)
    affected_data: list[str] = Field(default_factory=list)
    reported_by: Optional[str] = None
    reported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    details: dict[str, Any] = Field(default_factory=dict)
