"""Rate Limiter service orchestrator.

This module provides the RateLimiterService class that combines the route
table and a CounterStore into a sliding-window rate limiter. It follows the
Facade pattern, providing a simple interface to the rate limiting subsystem.

SOLID Principles:
    - S: Single responsibility (rate decisions only, no HTTP concerns)
    - O: Open for extension (new stores via the CounterStore abstraction)
    - I: Minimal interface (check, plus admin/debug helpers)
    - D: Depends on abstractions (CounterStore, Notifier)

Key Design Decisions:
    1. Sliding-window log
       - Each check prunes entries older than ``now - window``, inserts the
         current request, counts, and allows when ``count <= requests``
       - The check is also the increment (no reserve/commit step)
       - No boundary burst doubling, unlike fixed windows

    2. Fail-open strategy
       - If storage fails (after the failover store's own fallback), allow
         the request and log the error
       - Rate limiting must never become an availability outage vector

    3. No HTTP/FastAPI dependencies
       - Takes generic parameters (identifier, path)
       - Middleware layer handles HTTP-specific logic

Usage:
    ```python
    from src.rate_limiter.service import RateLimiterService
    from src.config.rate_limits import RATE_LIMIT_CONFIG

    rate_limiter = RateLimiterService(store, RATE_LIMIT_CONFIG, notifier)
    result = await rate_limiter.check("203.0.113.9", "/api/auth/login")
    if not result.allowed:
        ...  # 429
    ```
"""

import time
import uuid
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from src.core.storage.base import CounterStore
from src.notifications.base import Notifier
from src.notifications.models import Notification, NotificationSeverity
from src.rate_limiter.config import RateLimitConfig, RateLimitRule

logger = structlog.get_logger(__name__)

KEY_PREFIX = "ratelimit"


class RateLimitResult(BaseModel):
    """Outcome of one rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window.
        reset_at: Epoch milliseconds when the current window ends.
        limit: Configured requests per window.
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool
    remaining: int
    reset_at: int
    limit: int


class RateLimitInfo(BaseModel):
    """Debug view of one rate window."""

    model_config = ConfigDict(frozen=True)

    key: str
    route: str
    count: int
    limit: int
    window_ms: int


class RateLimiterService:
    """Sliding-window rate limiter facade.

    Thread Safety:
        No shared mutable state besides the injected store, which guarantees
        atomic per-key window updates. Safe for concurrent use across requests.

    Examples:
        Using an explicit rule instead of the route table:
        ```python
        result = await rate_limiter.check(
            "203.0.113.9",
            "/api/auth/login",
            rule=RateLimitRule(requests=5, window_ms=900_000),
        )
        ```
    """

    def __init__(
        self,
        store: CounterStore,
        config: RateLimitConfig,
        notifier: Optional[Notifier] = None,
        dos_alert_threshold: int = 1000,
        alert_recipient: str = "security-team",
    ):
        """Initialize Rate Limiter service.

        Args:
            store: Counter store holding the sliding windows.
            config: Route table resolving paths to rules.
            notifier: Optional notifier for possible-DoS alerts.
            dos_alert_threshold: Window count above which an alert is raised.
            alert_recipient: Recipient of possible-DoS alerts.

        Raises:
            ValueError: If dos_alert_threshold is not positive.
        """
        if dos_alert_threshold < 1:
            raise ValueError("dos_alert_threshold must be at least 1")
        self.store = store
        self.config = config
        self.notifier = notifier
        self.dos_alert_threshold = dos_alert_threshold
        self.alert_recipient = alert_recipient

    @staticmethod
    def build_key(identifier: str, path: str) -> str:
        """Build the storage key for an (identity, route) pair."""
        return f"{KEY_PREFIX}:{identifier}:{path}"

    async def check(
        self,
        identifier: str,
        path: str,
        rule: Optional[RateLimitRule] = None,
    ) -> RateLimitResult:
        """Record this request and decide whether it is allowed.

        Args:
            identifier: Client identity (IP address, user id, ...).
            path: Request path.
            rule: Explicit rule; resolved from the route table when omitted.

        Returns:
            RateLimitResult with the decision and header values.

        Raises:
            ValueError: If identifier or path is empty (caller defect).
                Storage errors are never raised (fail-open).
        """
        if not identifier or not identifier.strip():
            raise ValueError("identifier must be a non-empty string")
        if not path:
            raise ValueError("path must be a non-empty string")

        route = "explicit"
        if rule is None:
            route, rule = self.config.resolve(path)

        now_ms = int(time.time() * 1000)
        reset_at = now_ms + rule.window_ms
        key = self.build_key(identifier, path)
        member = f"{now_ms}-{uuid.uuid4().hex}"

        try:
            count = await self.store.record_event(key, member, now_ms, rule.window_ms)
        except Exception as e:
            # Fail-open: allow request if storage fails
            logger.error(
                "rate_limit_check_failed",
                key=key,
                route=route,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return RateLimitResult(
                allowed=True, remaining=rule.requests, reset_at=reset_at, limit=rule.requests
            )

        allowed = count <= rule.requests
        result = RateLimitResult(
            allowed=allowed,
            remaining=max(0, rule.requests - count),
            reset_at=reset_at,
            limit=rule.requests,
        )

        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                identifier=identifier,
                path=path,
                route=route,
                count=count,
                limit=rule.requests,
            )
        if count == self.dos_alert_threshold + 1:
            self._alert_possible_dos(identifier, path, count)

        return result

    def _alert_possible_dos(self, identifier: str, path: str, count: int) -> None:
        """Raise a possible-DoS alert once per threshold crossing."""
        logger.critical(
            "rate_limit_possible_dos", identifier=identifier, path=path, count=count
        )
        if self.notifier is None:
            return
        self.notifier.notify(
            Notification(
                event="possible_dos",
                severity=NotificationSeverity.HIGH,
                recipient=self.alert_recipient,
                metadata={"identifier": identifier, "path": path, "count": count},
            )
        )

    async def get_info(self, identifier: str, path: str) -> RateLimitInfo:
        """Debug view of the current window for an (identity, path) pair.

        Raises:
            StorageError: If the store is unavailable (admin-facing, not fail-open).
        """
        route, rule = self.config.resolve(path)
        key = self.build_key(identifier, path)
        since_ms = int(time.time() * 1000) - rule.window_ms
        count = await self.store.count_events(key, since_ms)
        return RateLimitInfo(
            key=key, route=route, count=count, limit=rule.requests, window_ms=rule.window_ms
        )

    async def reset(self, identifier: str, path: str) -> None:
        """Forget the window for one (identity, path) pair."""
        await self.store.delete(self.build_key(identifier, path))

    async def clear_all(self) -> int:
        """Delete every rate window (administrative, namespaced to ``ratelimit:``).

        Returns:
            Number of windows removed.
        """
        removed = await self.store.delete_matching(f"{KEY_PREFIX}:*")
        logger.warning("rate_limits_cleared", removed=removed)
        return removed

    async def test_connection(self) -> bool:
        """Check that the backing store is reachable."""
        return await self.store.ping()
