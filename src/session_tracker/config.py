"""Session tracker configuration."""

from dataclasses import dataclass
from datetime import timedelta

from src.core.config import Settings


@dataclass
class SessionTrackerConfig:
    """Session tracker thresholds and bounds.

    Attributes:
        max_concurrent_sessions: Sessions active within a minute before alerting (default: 3)
        max_ip_changes_per_hour: Distinct IPs per hour before alerting (default: 5)
        max_tracked_per_user: Sessions kept per user; least recently active dropped (default: 20)
        stale_after_hours: Inactivity after which a session is forgotten (default: 24)
    """

    max_concurrent_sessions: int = 3
    max_ip_changes_per_hour: int = 5
    max_tracked_per_user: int = 20
    stale_after_hours: int = 24

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.max_concurrent_sessions < 1:
            raise ValueError("max_concurrent_sessions must be at least 1")
        if self.max_ip_changes_per_hour < 1:
            raise ValueError("max_ip_changes_per_hour must be at least 1")
        if self.max_tracked_per_user <= self.max_concurrent_sessions:
            raise ValueError("max_tracked_per_user must exceed max_concurrent_sessions")
        if self.stale_after_hours < 1:
            raise ValueError("stale_after_hours must be at least 1")

    @property
    def stale_after(self) -> timedelta:
        return timedelta(hours=self.stale_after_hours)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionTrackerConfig":
        """Build from application settings."""
        return cls(
            max_concurrent_sessions=settings.session_max_concurrent,
            max_ip_changes_per_hour=settings.session_max_ip_changes_per_hour,
            max_tracked_per_user=settings.session_max_tracked_per_user,
            stale_after_hours=settings.session_stale_after_hours,
        )
