"""Account lockout after repeated failed logins."""

from src.account_lockout.config import LockoutConfig
from src.account_lockout.models import AttemptDecision, LockedAccount, LockoutStatus
from src.account_lockout.service import AccountLockoutGuard

__all__ = [
    "AccountLockoutGuard",
    "AttemptDecision",
    "LockedAccount",
    "LockoutConfig",
    "LockoutStatus",
]
