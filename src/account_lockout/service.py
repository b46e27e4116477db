"""Account lockout guard.

Tracks failed logins per identity (email) and locks the account once
``max_failed_attempts`` failures fall inside ``attempt_window_minutes``.
The authentication flow calls ``can_attempt`` before verifying credentials,
then ``record_failure`` or ``record_success`` afterwards.

State machine:
    Clean -> CaptchaRequired (failures >= captcha_threshold)
          -> Locked (failures >= max_failed_attempts)
    Locked -> Clean when unlock_at elapses, on admin unlock, or on a
    successful login.

Storage layout (namespaced, never flushed):
    auth:failed:{email}  sorted ledger of JSON attempt entries scored by time
    auth:locked:{email}  JSON lock record {locked_at, unlock_at, failed_attempts}

Failure policy:
    Fail-closed with local fallback. The guard is given the failover store,
    so a Redis outage moves ledger and lock writes to the in-process store
    and thresholds keep locking. If storage still raises, ``can_attempt``
    denies and ``record_failure`` reports that a CAPTCHA is required.

Usage:
    ```python
    guard = AccountLockoutGuard(store, LockoutConfig(), notifier)

    decision = await guard.can_attempt(email)
    if not decision.allowed:
        raise HTTPException(status_code=423, detail=decision.reason)
    if verify(email, password):
        await guard.record_success(email)
    else:
        status = await guard.record_failure(email, ip_address=ip)
    ```
"""

import json
import math
import time
import uuid
from typing import Any, Optional

import structlog

from src.account_lockout.config import LockoutConfig
from src.account_lockout.models import AttemptDecision, LockedAccount, LockoutStatus
from src.core.storage.base import CounterStore, StorageError
from src.notifications.base import Notifier
from src.notifications.models import Notification, NotificationSeverity

logger = structlog.get_logger(__name__)

FAILED_PREFIX = "auth:failed:"
LOCKED_PREFIX = "auth:locked:"

UNAVAILABLE_REASON = "Unable to verify account status. Try again later."


def normalize_identity(identity: str) -> str:
    """Lowercase and strip an email identity.

    Raises:
        ValueError: If the identity is empty.
    """
    email = (identity or "").strip().lower()
    if not email:
        raise ValueError("identity must be a non-empty string")
    return email


def lockout_reason(unlock_at: int, now_ms: int) -> str:
    """User-facing lockout message with whole minutes remaining."""
    minutes = max(1, math.ceil((unlock_at - now_ms) / 60000))
    return f"Account is temporarily locked. Try again in {minutes} minutes."


def _now_ms() -> int:
    return int(time.time() * 1000)


class AccountLockoutGuard:
    """Failed-login ledger and lock records over a CounterStore.

    The lock record is created with set-if-absent, so concurrent failures
    that cross the threshold together produce one lock and one notification.
    The record is kept for ``lockout_duration + attempt_window`` so that the
    first interaction after ``unlock_at`` observes the expiry, clears the
    ledger and announces the unlock.
    """

    def __init__(
        self,
        store: CounterStore,
        config: Optional[LockoutConfig] = None,
        notifier: Optional[Notifier] = None,
    ):
        """Initialize the guard.

        Args:
            store: Counter store (normally the Redis/memory failover store).
            config: Thresholds (defaults: 5 failures / 15 min, 30 min lock).
            notifier: Optional notifier for lock and unlock notices.
        """
        self.store = store
        self.config = config or LockoutConfig()
        self.notifier = notifier

    @staticmethod
    def failed_key(email: str) -> str:
        return f"{FAILED_PREFIX}{email}"

    @staticmethod
    def locked_key(email: str) -> str:
        return f"{LOCKED_PREFIX}{email}"

    @property
    def _record_ttl_seconds(self) -> int:
        return (self.config.lockout_duration_minutes + self.config.attempt_window_minutes) * 60

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def can_attempt(self, identity: str) -> AttemptDecision:
        """Decide whether a login attempt may proceed.

        Raises:
            ValueError: If identity is empty.
        """
        email = normalize_identity(identity)
        try:
            status = await self._status(email)
        except StorageError as e:
            logger.error(
                "lockout_check_failed",
                identity=email,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return AttemptDecision(allowed=False, reason=UNAVAILABLE_REASON)

        if status.locked and status.unlock_at is not None:
            return AttemptDecision(
                allowed=False, reason=lockout_reason(status.unlock_at, _now_ms())
            )
        return AttemptDecision(allowed=True)

    async def is_locked(self, identity: str) -> LockoutStatus:
        """Current lockout status.

        Raises:
            ValueError: If identity is empty.
            StorageError: If the store is unavailable.
        """
        return await self._status(normalize_identity(identity))

    async def get_locked_accounts(self) -> list[LockedAccount]:
        """All currently locked accounts, oldest lock first.

        Raises:
            StorageError: If the store is unavailable.
        """
        now_ms = _now_ms()
        accounts: list[LockedAccount] = []
        for key in await self.store.scan_keys(f"{LOCKED_PREFIX}*"):
            email = key[len(LOCKED_PREFIX):]
            record = await self._active_record(email, now_ms)
            if record is None:
                continue
            accounts.append(
                LockedAccount(
                    email=email,
                    locked_at=record["locked_at"],
                    unlock_at=record["unlock_at"],
                    failed_attempts=record["failed_attempts"],
                )
            )
        return sorted(accounts, key=lambda account: account.locked_at)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def record_failure(
        self,
        identity: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> LockoutStatus:
        """Record a failed login and lock the account at the threshold.

        A failure recorded while already locked is kept in the ledger but
        neither extends the lock nor notifies again.

        Raises:
            ValueError: If identity is empty.
        """
        email = normalize_identity(identity)
        now_ms = _now_ms()
        try:
            return await self._record_failure(email, now_ms, ip_address, user_agent)
        except StorageError as e:
            logger.error(
                "lockout_record_failure_failed",
                identity=email,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return LockoutStatus(locked=False, requires_captcha=True)

    async def record_success(self, identity: str) -> None:
        """Unconditionally clear the ledger and any lock after a successful login.

        Raises:
            ValueError: If identity is empty.
            StorageError: If the store is unavailable.
        """
        email = normalize_identity(identity)
        removed = await self.store.delete(self.failed_key(email), self.locked_key(email))
        if removed:
            logger.info("failed_attempts_cleared", identity=email)

    async def unlock(self, identity: str, actor_id: Optional[str] = None) -> bool:
        """Administrative unlock.

        Args:
            identity: Account email.
            actor_id: Administrator performing the unlock.

        Returns:
            True if a lock record existed.

        Raises:
            ValueError: If identity is empty.
            StorageError: If the store is unavailable.
        """
        email = normalize_identity(identity)
        was_locked = await self.store.get_value(self.locked_key(email)) is not None
        await self.store.delete(self.locked_key(email), self.failed_key(email))
        logger.warning(
            "account_unlocked",
            identity=email,
            unlocked_by=actor_id or "system",
            was_locked=was_locked,
        )
        if was_locked:
            self._notify(
                "account_unlocked",
                email,
                NotificationSeverity.INFO,
                {"reason": "admin", "unlocked_by": actor_id or "system"},
            )
        return was_locked

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _record_failure(
        self,
        email: str,
        now_ms: int,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> LockoutStatus:
        record = await self._active_record(email, now_ms)

        entry = json.dumps(
            {
                "timestamp": now_ms,
                "ip_address": ip_address,
                "user_agent": user_agent,
                "attempt_id": uuid.uuid4().hex,
            }
        )
        count = await self.store.record_event(
            self.failed_key(email), entry, now_ms, self.config.attempt_window_ms
        )

        if record is not None:
            logger.info("failed_attempt_while_locked", identity=email, failed_attempts=count)
            return self._locked_status(record)

        if count < self.config.max_failed_attempts:
            logger.info(
                "failed_attempt_recorded",
                identity=email,
                failed_attempts=count,
                max_failed_attempts=self.config.max_failed_attempts,
            )
            return LockoutStatus(
                locked=False,
                failed_attempts=count,
                requires_captcha=count >= self.config.captcha_threshold,
            )

        record = {
            "locked_at": now_ms,
            "unlock_at": now_ms + self.config.lockout_duration_ms,
            "failed_attempts": count,
        }
        created = await self.store.set_if_absent(
            self.locked_key(email), json.dumps(record), self._record_ttl_seconds
        )
        if not created:
            existing = await self._active_record(email, now_ms)
            return self._locked_status(existing or record)

        logger.warning(
            "account_locked",
            identity=email,
            failed_attempts=count,
            unlock_at=record["unlock_at"],
            ip_address=ip_address,
        )
        self._notify(
            "account_locked",
            email,
            NotificationSeverity.HIGH,
            {
                "failed_attempts": count,
                "locked_at": record["locked_at"],
                "unlock_at": record["unlock_at"],
                "lockout_duration_minutes": self.config.lockout_duration_minutes,
            },
        )
        return self._locked_status(record)

    async def _status(self, email: str) -> LockoutStatus:
        now_ms = _now_ms()
        record = await self._active_record(email, now_ms)
        if record is not None:
            return self._locked_status(record)

        count = await self.store.count_events(
            self.failed_key(email), now_ms - self.config.attempt_window_ms
        )
        return LockoutStatus(
            locked=False,
            failed_attempts=count,
            requires_captcha=count >= self.config.captcha_threshold,
        )

    async def _active_record(self, email: str, now_ms: int) -> Optional[dict[str, Any]]:
        """Load the lock record, retiring it if unlock_at has passed."""
        raw = await self.store.get_value(self.locked_key(email))
        if raw is None:
            return None
        record = json.loads(raw)
        if record["unlock_at"] > now_ms:
            return record

        await self.store.delete(self.locked_key(email), self.failed_key(email))
        logger.info("lockout_expired", identity=email)
        self._notify(
            "account_unlocked", email, NotificationSeverity.INFO, {"reason": "expired"}
        )
        return None

    @staticmethod
    def _locked_status(record: dict[str, Any]) -> LockoutStatus:
        return LockoutStatus(
            locked=True,
            locked_at=record["locked_at"],
            unlock_at=record["unlock_at"],
            failed_attempts=record["failed_attempts"],
            requires_captcha=True,
        )

    def _notify(
        self,
        event: str,
        email: str,
        severity: NotificationSeverity,
        metadata: dict[str, Any],
    ) -> None:
        if self.notifier is None:
            return
        self.notifier.notify(
            Notification(event=event, severity=severity, recipient=email, metadata=metadata)
        )
