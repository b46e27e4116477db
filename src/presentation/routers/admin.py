"""Security admin handlers.

Every route requires the ``X-Admin-Token`` header to match the configured
``admin_api_token``; with no token configured the whole router answers 403.

Handlers:
    list_locked_accounts   - GET    /api/admin/account-lockout
    manage_account_lockout - POST   /api/admin/account-lockout
    report_security_breach - POST   /api/admin/security-breach
    list_security_events   - GET    /api/admin/security-events
    clear_rate_limits      - DELETE /api/admin/rate-limits
    get_rate_limit_info    - GET    /api/admin/rate-limits/{identifier}
"""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from src.anomaly_detection.models import BreachReport, SecuritySeverity
from src.core.container import SecurityCore
from src.presentation.routers.dependencies import get_security_core, require_admin_token
from src.rate_limiter.service import RateLimitInfo
from src.schemas.security_schemas import (
    AccountLockoutRequest,
    AccountStatusResponse,
    AccountUnlockResponse,
    LockedAccountsResponse,
    RateLimitsClearedResponse,
    SecurityBreachReportRequest,
    SecurityEventSummary,
    SecurityEventsResponse,
)

logger = structlog.get_logger(__name__)

admin_router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin_token)],
)


# =============================================================================
# Account Lockout
# =============================================================================


@admin_router.get("/account-lockout", response_model=LockedAccountsResponse)
async def list_locked_accounts(
    core: SecurityCore = Depends(get_security_core),
) -> LockedAccountsResponse:
    accounts = await core.lockout.get_locked_accounts()
    return LockedAccountsResponse(locked_accounts=accounts, count=len(accounts))


@admin_router.post(
    "/account-lockout",
    response_model=AccountUnlockResponse | AccountStatusResponse,
)
async def manage_account_lockout(
    body: AccountLockoutRequest,
    core: SecurityCore = Depends(get_security_core),
) -> AccountUnlockResponse | AccountStatusResponse:
    """Unlock an account, or return its lockout status.

    POST /api/admin/account-lockout → 200 OK
    """
    if body.action == "unlock":
        was_locked = await core.lockout.unlock(body.email, actor_id="admin-api")
        return AccountUnlockResponse(
            email=body.email,
            was_locked=was_locked,
            message=f"Account {body.email} has been unlocked",
        )
    lockout_status = await core.lockout.is_locked(body.email)
    return AccountStatusResponse(email=body.email, status=lockout_status)


# =============================================================================
# Security Events
# =============================================================================


@admin_router.get("/security-events", response_model=SecurityEventsResponse)
async def list_security_events(
    user_id: Optional[str] = Query(default=None),
    severity: Optional[SecuritySeverity] = Query(default=None),
    since_days: Optional[int] = Query(default=None, ge=1),
    limit: int = Query(default=100, ge=1, le=1000),
    core: SecurityCore = Depends(get_security_core),
) -> SecurityEventsResponse:
    """Query security events with a severity summary.

    With ``user_id`` the user's events are returned oldest first; otherwise
    events of all users, newest first.
    """
    since = None
    if since_days is not None:
        since = datetime.now(timezone.utc) - timedelta(days=since_days)

    if user_id:
        events = await core.monitor.get_user_events(user_id, since=since)
        if severity is not None:
            events = [e for e in events if e.severity == severity]
        events = events[-limit:]
    else:
        events = await core.monitor.get_all_events(since=since, severity=severity, limit=limit)

    by_severity = Counter(e.severity.value for e in events)
    return SecurityEventsResponse(
        events=events,
        summary=SecurityEventSummary(total=len(events), **by_severity),
        by_type=dict(Counter(e.type.value for e in events)),
    )


# =============================================================================
# Security Breach
# =============================================================================


@admin_router.post(
    "/security-breach",
    response_model=BreachReport,
    status_code=status.HTTP_201_CREATED,
)
async def report_security_breach(
    body: SecurityBreachReportRequest,
    core: SecurityCore = Depends(get_security_core),
) -> BreachReport:
    """Record a manually reported breach and alert the security team.

    POST /api/admin/security-breach → 201 Created
    """
    return core.breach_detector.report_breach(
        body.type,
        body.severity,
        body.description,
        affected_users=body.affected_users,
        affected_data=body.affected_data,
        reported_by="admin-api",
        details=body.details,
    )


# =============================================================================
# Rate Limits
# =============================================================================


@admin_router.delete("/rate-limits", response_model=RateLimitsClearedResponse)
async def clear_rate_limits(
    core: SecurityCore = Depends(get_security_core),
) -> RateLimitsClearedResponse:
    deleted = await core.rate_limiter.clear_all()
    return RateLimitsClearedResponse(deleted=deleted)


@admin_router.get("/rate-limits/{identifier}", response_model=RateLimitInfo)
async def get_rate_limit_info(
    identifier: str,
    path: str = Query(..., min_length=1),
    core: SecurityCore = Depends(get_security_core),
) -> RateLimitInfo:
    return await core.rate_limiter.get_info(identifier, path)
