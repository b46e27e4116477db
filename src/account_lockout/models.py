"""Account lockout result models.

All timestamps are epoch milliseconds, matching the stored lock records.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LockoutStatus(BaseModel):
    """Lockout state of one identity.

    Attributes:
        locked: Whether authentication must be rejected.
        locked_at: When the lock was placed (None when not locked).
        unlock_at: When the lock lifts (None when not locked).
        failed_attempts: Failures in the current window, or the count at
            lock time while locked.
        requires_captcha: Whether the next attempt needs a CAPTCHA.
    """

    model_config = ConfigDict(frozen=True)

    locked: bool = False
    locked_at: Optional[int] = None
    unlock_at: Optional[int] = None
    failed_attempts: int = Field(default=0, ge=0)
    requires_captcha: bool = False


class AttemptDecision(BaseModel):
    """Whether a login attempt may proceed to credential verification."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[str] = None


class LockedAccount(BaseModel):
    """Admin view of one locked account."""

    model_config = ConfigDict(frozen=True)

    email: str
    locked_at: int
    unlock_at: int
    failed_attempts: int
