"""Request/response schemas for API endpoints.

Pydantic models for HTTP request validation and response serialization.
Schemas are kept separate from component models (HTTP-layer concerns only).

Usage:
    from src.schemas import HealthResponse, AccountLockoutRequest
"""

from src.schemas.security_schemas import (
    AccountLockoutRequest,
    AccountStatusResponse,
    AccountUnlockResponse,
    HealthResponse,
    LockedAccountsResponse,
    RateLimitsClearedResponse,
    SecurityBreachReportRequest,
    SecurityEventSummary,
    SecurityEventsResponse,
)

__all__ = [
    "AccountLockoutRequest",
    "AccountStatusResponse",
    "AccountUnlockResponse",
    "HealthResponse",
    "LockedAccountsResponse",
    "RateLimitsClearedResponse",
    "SecurityBreachReportRequest",
    "SecurityEventSummary",
    "SecurityEventsResponse",
]
