"""Security core composition root.

Builds every security component exactly once and wires them together. The
resulting SecurityCore is held by the application (``app.state``) and passed
by reference; no module-level singleton holds security state.

Wiring:
    - One failover counter store shared by the rate limiter and the lockout
      guard (disjoint key namespaces)
    - One background notifier shared by every component that alerts
    - SessionTracker security events flow to SecurityMonitor.record_event
    - The force_logout response calls SessionTracker.remove_all
    - One RetentionSweeper clears old events and stale sessions periodically

Usage:
    ```python
    from src.core.config import get_settings
    from src.core.container import build_security_core

    core = build_security_core(get_settings())
    await core.notifier.start()
    ```
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from src.account_lockout.config import LockoutConfig
from src.account_lockout.service import AccountLockoutGuard
from src.anomaly_detection.audit import AuditLogReader, InMemoryAuditLog
from src.anomaly_detection.breach import BreachDetector
from src.anomaly_detection.event_store import SecurityEventStore
from src.anomaly_detection.monitor import MonitorConfig, SecurityMonitor
from src.anomaly_detection.responder import AutomatedResponseExecutor
from src.config.rate_limits import RATE_LIMIT_CONFIG
from src.core.config import Settings
from src.core.retention import RetentionSweeper
from src.core.storage.base import CounterStore
from src.core.storage.factory import create_counter_store
from src.notifications.base import NotificationChannel
from src.notifications.channels import LogNotificationChannel, WebhookNotificationChannel
from src.notifications.dispatcher import BackgroundNotifier
from src.rate_limiter.factory import create_rate_limiter_service
from src.rate_limiter.service import RateLimiterService
from src.session_tracker.config import SessionTrackerConfig
from src.session_tracker.service import SessionTracker


@dataclass
class SecurityCore:
    """All security components of one application instance."""

    settings: Settings
    store: CounterStore
    notifier: BackgroundNotifier
    rate_limiter: RateLimiterService
    lockout: AccountLockoutGuard
    session_tracker: SessionTracker
    event_store: SecurityEventStore
    responder: AutomatedResponseExecutor
    monitor: SecurityMonitor
    breach_detector: BreachDetector
    sweeper: RetentionSweeper


def default_channels(settings: Settings) -> list[NotificationChannel]:
    """Console channel, plus the webhook channel when a URL is configured."""
    channels: list[NotificationChannel] = [LogNotificationChannel()]
    if settings.notification_webhook_url:
        token = settings.notification_webhook_token
        channels.append(
            WebhookNotificationChannel(
                settings.notification_webhook_url,
                token=token.get_secret_value() if token else None,
                timeout_seconds=settings.notification_timeout_seconds,
            )
        )
    return channels


def build_security_core(
    settings: Settings,
    audit_log: Optional[AuditLogReader] = None,
    channels: Optional[Sequence[NotificationChannel]] = None,
) -> SecurityCore:
    """Construct and wire the security components.

    Args:
        settings: Application settings.
        audit_log: Audit log reader for breach detection (in-memory log when omitted).
        channels: Notification channels (console and optional webhook when omitted).

    Returns:
        SecurityCore with every component constructed. The notifier is not
        started, nor is the sweeper; the application lifespan starts and stops
        both.
    """
    store = create_counter_store(settings)
    notifier = BackgroundNotifier(
        channels if channels is not None else default_channels(settings),
        queue_size=settings.notification_queue_size,
    )

    rate_limiter = create_rate_limiter_service(settings, store, RATE_LIMIT_CONFIG, notifier)
    lockout = AccountLockoutGuard(store, LockoutConfig.from_settings(settings), notifier)

    monitor_config = MonitorConfig.from_settings(settings)
    tracker = SessionTracker(SessionTrackerConfig.from_settings(settings))
    event_store = SecurityEventStore(monitor_config.max_events_per_user)
    responder = AutomatedResponseExecutor(
        notifier,
        terminate_sessions=tracker.remove_all,
        cooldown_seconds=monitor_config.response_cooldown_seconds,
    )
    monitor = SecurityMonitor(event_store, responder, monitor_config)
    tracker.subscribe(monitor.record_event)

    breach_detector = BreachDetector(
        audit_log if audit_log is not None else InMemoryAuditLog(),
        monitor,
        notifier,
        security_team_recipient=settings.security_team_recipient,
    )

    sweeper = RetentionSweeper(
        monitor, tracker, interval_seconds=settings.security_sweep_interval_seconds
    )

    return SecurityCore(
        settings=settings,
        store=store,
        notifier=notifier,
        rate_limiter=rate_limiter,
        lockout=lockout,
        session_tracker=tracker,
        event_store=event_store,
        responder=responder,
        monitor=monitor,
        breach_detector=breach_detector,
        sweeper=sweeper,
    )
