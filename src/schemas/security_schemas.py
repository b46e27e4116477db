"""Security admin request/response schemas.

Pydantic models for the health endpoint and the admin security API.

Endpoints:
    GET    /api/health                             - Health and storage backend
    GET    /api/admin/account-lockout              - List locked accounts
    POST   /api/admin/account-lockout              - Unlock or inspect an account
    GET    /api/admin/security-events              - Query security events
    POST   /api/admin/security-breach               - Report a breach
    DELETE /api/admin/rate-limits                  - Clear all rate windows
    GET    /api/admin/rate-limits/{identifier}     - Inspect one rate window
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.account_lockout.models import LockedAccount, LockoutStatus
from src.anomaly_detection.models import BreachType, SecurityEvent, SecuritySeverity


class HealthResponse(BaseModel):
    """Response schema for GET /api/health."""

    status: str = Field(..., description="Overall status")
    storage: str = Field(..., description="Counter store backend name")
    degraded: bool = Field(..., description="True while running on the local fallback store")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"status": "healthy", "storage": "redis+memory", "degraded": False}
        }
    )


class LockedAccountsResponse(BaseModel):
    """Response schema for GET /api/admin/account-lockout."""

    locked_accounts: list[LockedAccount]
    count: int


class AccountLockoutRequest(BaseModel):
    """Request schema for POST /api/admin/account-lockout.

    ``action`` is "unlock" to lift a lock; anything else returns the status.
    """

    email: str = Field(..., min_length=1, description="Account email")
    action: Literal["unlock", "status"] = Field(default="status")


class AccountUnlockResponse(BaseModel):
    email: str
    was_locked: bool
    message: str


class AccountStatusResponse(BaseModel):
    email: str
    status: LockoutStatus


class SecurityEventSummary(BaseModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


class SecurityEventsResponse(BaseModel):
    """Response schema for GET /api/admin/security-events."""

    events: list[SecurityEvent]
    summary: SecurityEventSummary
    by_type: dict[str, int]


class RateLimitsClearedResponse(BaseModel):
    deleted: int = Field(..., description="Rate windows removed")


class SecurityBreachReportRequest(BaseModel):
    """Request schema for POST /api/admin/security-breach."""

    type: BreachType = Field(..., description="Breach category")
    severity: SecuritySeverity = Field(..., description="Breach severity")
    description: str = Field(..., min_length=1, description="What happened")
    affected_users: list[str] = Field(default_factory=list, description="User ids involved")
    affected_data: list[str] = Field(
        default_factory=list, description="Data categories involved (e.g. PHI)"
    )
    details: dict[str, Any] = Field(default_factory=dict, description="Free-form evidence")

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "type": "phi_exposure",
                "severity": "critical",
                "description": "Lab results emailed to the wrong clinic",
                "affected_users": ["user-1"],
                "affected_data": ["PHI"],
            }
        },
    )
