"""Factory function for Rate Limiter service dependency injection.

This module creates the Rate Limiter service with all its dependencies. It
implements the Dependency Inversion Principle by taking the concrete store
and notifier and injecting them into the service.

**IMPORTANT**: This is a GENERIC factory that requires the application route
table to be passed as a parameter. It does NOT import application configuration.

Usage:
    ```python
    from src.rate_limiter.factory import create_rate_limiter_service
    from src.config.rate_limits import RATE_LIMIT_CONFIG

    rate_limiter = create_rate_limiter_service(
        settings, store=store, config=RATE_LIMIT_CONFIG, notifier=notifier
    )
    app.add_middleware(RateLimitMiddleware, rate_limiter=rate_limiter)
    ```
"""

from typing import Optional

from src.core.config import Settings
from src.core.storage.base import CounterStore
from src.notifications.base import Notifier
from src.rate_limiter.config import RateLimitConfig
from src.rate_limiter.service import RateLimiterService


def create_rate_limiter_service(
    settings: Settings,
    store: CounterStore,
    config: RateLimitConfig,
    notifier: Optional[Notifier] = None,
) -> RateLimiterService:
    """Create Rate Limiter service with dependencies.

    Args:
        settings: Provides the DoS alert threshold and recipient.
        store: Counter store (usually the shared failover store).
        config: Application route table. This MUST be provided by the caller.
        notifier: Optional notifier for possible-DoS alerts.

    Returns:
        Configured RateLimiterService instance ready to use.
    """
    return RateLimiterService(
        store=store,
        config=config,
        notifier=notifier,
        dos_alert_threshold=settings.rate_limit_dos_alert_threshold,
        alert_recipient=settings.security_team_recipient,
    )
