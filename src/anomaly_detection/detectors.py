"""Anomaly detectors.

Each detector inspects its inputs and returns a SecurityEvent, or None when
nothing is wrong. Detectors never store events or act on them; that is the
job of SecurityMonitor and AutomatedResponseExecutor.

Two families:
    Session detectors (synchronous, pure): run by the session tracker on the
        user's tracked sessions, and by the monitor on login metadata.
    Audit detectors (async, read-only): query an AuditLogReader.

Severity and auto response are fixed per detector:

    concurrent sessions        high      alert_user
    rapid origin change        medium    alert_user
    device change              medium    alert_user
    unusual login time         low       none
    second-factor failures     high      force_logout
    session hijack             critical  force_logout
    brute-force login          high      alert_user
    multi-origin login         medium    alert_user
    mass data access           critical  force_logout
    account compromise         critical  force_logout (MFA disabled)
                               high      require_second_factor (password change)
    data exfiltration          critical  force_logout
"""

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from src.anomaly_detection.audit import AuditAction, AuditLogReader
from src.anomaly_detection.models import (
    AutoResponse,
    SecurityEvent,
    SecurityEventType,
    SecuritySeverity,
)

if TYPE_CHECKING:
    from src.session_tracker.models import SessionRecord

logger = structlog.get_logger(__name__)

CONCURRENT_ACTIVITY_WINDOW = timedelta(seconds=60)
ORIGIN_CHANGE_WINDOW = timedelta(hours=1)
DEVICE_CHANGE_WINDOW = timedelta(hours=24)
UNUSUAL_HOURS = range(2, 6)

BRUTE_FORCE_THRESHOLD = 5
BRUTE_FORCE_WINDOW = timedelta(hours=1)
MULTI_ORIGIN_THRESHOLD = 3
MULTI_ORIGIN_WINDOW = timedelta(minutes=5)
COMPROMISE_LOOKBACK = timedelta(hours=24)
PASSWORD_CHANGE_ACCESS_WINDOW = timedelta(hours=1)
PASSWORD_CHANGE_ACCESS_THRESHOLD = 20
EXFILTRATION_THRESHOLD = 5
EXFILTRATION_WINDOW = timedelta(hours=1)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _event(
    event_type: SecurityEventType,
    severity: SecuritySeverity,
    user_id: str,
    description: str,
    metadata: dict[str, Any],
    auto_response: AutoResponse,
    at: Optional[datetime] = None,
) -> SecurityEvent:
    return SecurityEvent(
        type=event_type,
        severity=severity,
        user_id=user_id,
        timestamp=at or _now(),
        description=description,
        metadata=metadata,
        auto_response=auto_response,
    )


# =============================================================================
# Session detectors
# =============================================================================


def detect_concurrent_sessions(
    user_id: str,
    sessions: Sequence["SessionRecord"],
    max_sessions: int,
    now: Optional[datetime] = None,
) -> Optional[SecurityEvent]:
    """More than ``max_sessions`` active in the last minute from two or more IPs."""
    now = now or _now()
    recent = [s for s in sessions if now - s.last_activity < CONCURRENT_ACTIVITY_WINDOW]
    if len(recent) <= max_sessions:
        return None
    ips = sorted({s.ip_address for s in recent if s.ip_address})
    if len(ips) < 2:
        return None
    return _event(
        SecurityEventType.CONCURRENT_SESSION,
        SecuritySeverity.HIGH,
        user_id,
        f"{len(recent)} sessions active within one minute from {len(ips)} IP addresses",
        {"session_count": len(recent), "unique_ips": ips, "max_sessions": max_sessions},
        AutoResponse.ALERT_USER,
        now,
    )


def detect_rapid_origin_change(
    user_id: str,
    sessions: Sequence["SessionRecord"],
    max_ip_changes: int,
    now: Optional[datetime] = None,
) -> Optional[SecurityEvent]:
    """More than ``max_ip_changes`` distinct IPs among sessions active in the last hour."""
    now = now or _now()
    ips = sorted(
        {
            s.ip_address
            for s in sessions
            if s.ip_address and now - s.last_activity < ORIGIN_CHANGE_WINDOW
        }
    )
    if len(ips) <= max_ip_changes:
        return None
    return _event(
        SecurityEventType.RAPID_ORIGIN_CHANGE,
        SecuritySeverity.MEDIUM,
        user_id,
        f"Sessions from {len(ips)} IP addresses within one hour",
        {"ip_changes": len(ips), "threshold": max_ip_changes, "ips": ips},
        AutoResponse.ALERT_USER,
        now,
    )


def detect_device_change(
    user_id: str,
    sessions: Sequence["SessionRecord"],
    current: "SessionRecord",
    now: Optional[datetime] = None,
) -> Optional[SecurityEvent]:
    """Another device was active on the account within the last 24 hours."""
    if not current.device_id:
        return None
    now = now or _now()
    others = [
        s
        for s in sessions
        if s.session_id != current.session_id
        and s.device_id
        and s.device_id != current.device_id
        and now - s.last_activity < DEVICE_CHANGE_WINDOW
    ]
    if not others:
        return None
    previous = max(others, key=lambda s: s.last_activity)
    minutes_since = int((now - previous.last_activity).total_seconds() // 60)
    return _event(
        SecurityEventType.DEVICE_CHANGE,
        SecuritySeverity.MEDIUM,
        user_id,
        "New device detected for the account",
        {
            "previous_device": previous.device_id,
            "new_device": current.device_id,
            "minutes_since_previous_device": minutes_since,
            "session_id": current.session_id,
        },
        AutoResponse.ALERT_USER,
        now,
    )


def local_hour(at: datetime, tz_name: Optional[str]) -> int:
    """Hour of ``at`` in the given IANA timezone (UTC when unknown or unset)."""
    if at.tzinfo is None:
        at = at.replace(tzinfo=timezone.utc)
    if tz_name:
        try:
            return at.astimezone(ZoneInfo(tz_name)).hour
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("unknown_timezone", timezone=tz_name)
    return at.astimezone(timezone.utc).hour


def detect_unusual_login_time(
    user_id: str,
    at: datetime,
    tz_name: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Optional[SecurityEvent]:
    """Login between 02:00 and 05:59 in the user's local time."""
    hour = local_hour(at, tz_name)
    if hour not in UNUSUAL_HOURS:
        return None
    return _event(
        SecurityEventType.UNUSUAL_LOGIN_TIME,
        SecuritySeverity.LOW,
        user_id,
        f"Login at unusual local hour {hour:02d}:00",
        {"hour": hour, "timezone": tz_name or "UTC", "ip_address": ip_address},
        AutoResponse.NONE,
        at if at.tzinfo else at.replace(tzinfo=timezone.utc),
    )


def detect_excessive_second_factor_failures(
    user_id: str,
    failure_count: int,
    max_failures: int,
) -> Optional[SecurityEvent]:
    if failure_count < max_failures:
        return None
    return _event(
        SecurityEventType.EXCESSIVE_SECOND_FACTOR_FAILURES,
        SecuritySeverity.HIGH,
        user_id,
        f"{failure_count} failed second-factor attempts",
        {"failure_count": failure_count, "threshold": max_failures},
        AutoResponse.FORCE_LOGOUT,
    )


def detect_session_hijack(
    user_id: str,
    session_id: str,
    reason: str,
    evidence: Optional[dict[str, Any]] = None,
) -> SecurityEvent:
    """Caller-reported hijack evidence always produces an event."""
    return _event(
        SecurityEventType.SUSPECTED_HIJACK,
        SecuritySeverity.CRITICAL,
        user_id,
        f"Suspected session hijack: {reason}",
        {"session_id": session_id, "reason": reason, "evidence": evidence or {}},
        AutoResponse.FORCE_LOGOUT,
    )


# =============================================================================
# Audit detectors
# =============================================================================


async def detect_brute_force_login(
    reader: AuditLogReader,
    user_id: str,
    ip_address: str,
    at: Optional[datetime] = None,
) -> Optional[SecurityEvent]:
    """Five or more failed logins from one IP address in the last hour."""
    at = at or _now()
    failures = await reader.count(
        AuditAction.LOGIN_FAILED, since=at - BRUTE_FORCE_WINDOW, ip_address=ip_address
    )
    if failures < BRUTE_FORCE_THRESHOLD:
        return None
    return _event(
        SecurityEventType.UNUSUAL_LOGIN_PATTERN,
        SecuritySeverity.HIGH,
        user_id,
        f"{failures} failed login attempts from IP {ip_address} in the last hour",
        {
            "pattern": "brute_force",
            "ip_address": ip_address,
            "failed_attempts": failures,
            "window_minutes": 60,
        },
        AutoResponse.ALERT_USER,
        at,
    )


async def detect_multi_origin_login(
    reader: AuditLogReader,
    user_id: str,
    at: Optional[datetime] = None,
) -> Optional[SecurityEvent]:
    """Logins from three or more IP addresses within five minutes."""
    at = at or _now()
    ips = await reader.distinct_ip_addresses(
        AuditAction.LOGIN, user_id=user_id, since=at - MULTI_ORIGIN_WINDOW
    )
    if len(ips) < MULTI_ORIGIN_THRESHOLD:
        return None
    return _event(
        SecurityEventType.UNUSUAL_LOGIN_PATTERN,
        SecuritySeverity.MEDIUM,
        user_id,
        f"Logins from {len(ips)} IP addresses within five minutes",
        {"pattern": "multi_origin", "ip_addresses": list(ips), "window_minutes": 5},
        AutoResponse.ALERT_USER,
        at,
    )


async def detect_mass_data_access(
    reader: AuditLogReader,
    user_id: str,
    resource_type: str,
    window: timedelta,
    threshold: int,
    at: Optional[datetime] = None,
) -> Optional[SecurityEvent]:
    """PHI views of one resource type reaching ``threshold`` inside ``window``."""
    if threshold < 1:
        raise ValueError("threshold must be at least 1")
    at = at or _now()
    accessed = await reader.count(
        AuditAction.PHI_VIEW,
        since=at - window,
        user_id=user_id,
        resource_type=resource_type,
    )
    if accessed < threshold:
        return None
    seconds = int(window.total_seconds())
    return _event(
        SecurityEventType.MASS_DATA_ACCESS,
        SecuritySeverity.CRITICAL,
        user_id,
        f"{accessed} {resource_type} records accessed in {seconds} seconds "
        f"(threshold: {threshold})",
        {
            "resource_type": resource_type,
            "access_count": accessed,
            "threshold": threshold,
            "window_seconds": seconds,
        },
        AutoResponse.FORCE_LOGOUT,
        at,
    )


async def detect_account_compromise(
    reader: AuditLogReader,
    user_id: str,
    at: Optional[datetime] = None,
) -> Optional[SecurityEvent]:
    """Sensitive access following a second-factor disable or password change.

    Checked in order:
        1. MFA disabled in the last 24 hours, then any PHI view since.
        2. Password changed in the last 24 hours, then 20 or more PHI views
           within one hour of the change.
    """
    at = at or _now()
    since = at - COMPROMISE_LOOKBACK

    mfa_disabled = await reader.latest(AuditAction.MFA_DISABLED, user_id=user_id, since=since)
    if mfa_disabled is not None:
        views = await reader.count(
            AuditAction.PHI_VIEW, since=mfa_disabled.timestamp, user_id=user_id
        )
        if views > 0:
            return _event(
                SecurityEventType.ACCOUNT_COMPROMISE,
                SecuritySeverity.CRITICAL,
                user_id,
                f"Second factor disabled, then PHI accessed ({views} access events)",
                {
                    "indicator": "mfa_disabled",
                    "mfa_disabled_at": mfa_disabled.timestamp.isoformat(),
                    "phi_access_count": views,
                },
                AutoResponse.FORCE_LOGOUT,
                at,
            )

    changed = await reader.latest(AuditAction.PASSWORD_CHANGE, user_id=user_id, since=since)
    if changed is not None:
        views = await reader.count(
            AuditAction.PHI_VIEW,
            since=changed.timestamp,
            until=changed.timestamp + PASSWORD_CHANGE_ACCESS_WINDOW,
            user_id=user_id,
        )
        if views >= PASSWORD_CHANGE_ACCESS_THRESHOLD:
            return _event(
                SecurityEventType.ACCOUNT_COMPROMISE,
                SecuritySeverity.HIGH,
                user_id,
                f"{views} PHI access events within one hour of a password change",
                {
                    "indicator": "password_change",
                    "password_changed_at": changed.timestamp.isoformat(),
                    "phi_access_count": views,
                    "window_minutes": 60,
                },
                AutoResponse.REQUIRE_SECOND_FACTOR,
                at,
            )

    return None


async def detect_data_exfiltration(
    reader: AuditLogReader,
    user_id: str,
    at: Optional[datetime] = None,
) -> Optional[SecurityEvent]:
    """Five or more PHI exports in the last hour."""
    at = at or _now()
    exports = await reader.count(
        AuditAction.PHI_EXPORT, since=at - EXFILTRATION_WINDOW, user_id=user_id
    )
    if exports < EXFILTRATION_THRESHOLD:
        return None
    return _event(
        SecurityEventType.DATA_EXFILTRATION,
        SecuritySeverity.CRITICAL,
        user_id,
        f"Potential data exfiltration: {exports} PHI exports in the last hour",
        {"export_count": exports, "window_minutes": 60},
        AutoResponse.FORCE_LOGOUT,
        at,
    )
