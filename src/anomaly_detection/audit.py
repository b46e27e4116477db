"""Audit log access for the breach detectors.

The detectors only read the audit trail. They depend on the
``AuditLogReader`` protocol so the application can back it with whatever
holds its audit records; ``InMemoryAuditLog`` is a bounded in-process
implementation for development and tests.
"""

from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, Enum):
    """Audited actions the detectors query."""

    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    PHI_VIEW = "PHI_VIEW"
    PHI_EXPORT = "PHI_EXPORT"
    MFA_ENABLED = "MFA_ENABLED"
    MFA_DISABLED = "MFA_DISABLED"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"


class AuditRecord(BaseModel):
    """One audit log entry."""

    model_config = ConfigDict(frozen=True)

    action: AuditAction
    user_id: Optional[str] = None
    ip_address: Optional[str] = None
    resource_type: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AuditLogReader(Protocol):
    """Read-only queries over the audit log.

    Time bounds are inclusive. Filters left as None match any value.
    """

    async def count(
        self,
        action: AuditAction,
        *,
        since: datetime,
        until: Optional[datetime] = None,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        resource_type: Optional[str] = None,
    ) -> int:
        """Number of matching records."""
        ...

    async def latest(
        self,
        action: AuditAction,
        *,
        user_id: str,
        since: datetime,
    ) -> Optional[AuditRecord]:
        """Most recent matching record, or None."""
        ...

    async def distinct_ip_addresses(
        self,
        action: AuditAction,
        *,
        user_id: str,
        since: datetime,
    ) -> list[str]:
        """Distinct non-empty IP addresses of matching records."""
        ...


class InMemoryAuditLog:
    """Bounded in-process audit log.

    Keeps the newest ``max_records`` entries; older entries fall off the end.
    """

    def __init__(self, max_records: int = 10_000):
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        self._records: Deque[AuditRecord] = deque(maxlen=max_records)

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: AuditRecord) -> None:
        self._records.append(record)

    def _select(
        self,
        action: AuditAction,
        since: datetime,
        until: Optional[datetime] = None,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        resource_type: Optional[str] = None,
    ) -> list[AuditRecord]:
        return [
            record
            for record in self._records
            if record.action == action
            and record.timestamp >= since
            and (until is None or record.timestamp <= until)
            and (user_id is None or record.user_id == user_id)
            and (ip_address is None or record.ip_address == ip_address)
            and (resource_type is None or record.resource_type == resource_type)
        ]

    async def count(
        self,
        action: AuditAction,
        *,
        since: datetime,
        until: Optional[datetime] = None,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        resource_type: Optional[str] = None,
    ) -> int:
        return len(
            self._select(action, since, until, user_id, ip_address, resource_type)
        )

    async def latest(
        self,
        action: AuditAction,
        *,
        user_id: str,
        since: datetime,
    ) -> Optional[AuditRecord]:
        matches = self._select(action, since, user_id=user_id)
        return max(matches, key=lambda record: record.timestamp, default=None)

    async def distinct_ip_addresses(
        self,
        action: AuditAction,
        *,
        user_id: str,
        since: datetime,
    ) -> list[str]:
        return sorted(
            {r.ip_address for r in self._select(action, since, user_id=user_id) if r.ip_address}
        )
