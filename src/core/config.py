"""
Configuration management using Pydantic Settings.

This module provides type-safe, validated configuration loading from environment
variables for the security enforcement core. Every threshold the rate limiter,
lockout guard, session tracker and anomaly layer use is declared here, with its
default, so that no component hardcodes behavior configuration should control.

Architecture:
- Flat Settings structure (no nesting)
- All config loaded from environment variables (or a local .env file)
- Type validation via Pydantic
- Component-level dataclass configs are derived from Settings via from_settings()

Usage:
    from src.core.config import get_settings

    settings = get_settings()
    if settings.redis_url is None:
        # Memory-only counter store (per-process limits)
        ...
"""

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.enums import Environment


class Settings(BaseSettings):
    """
    Security core settings (flat structure).

    Loads configuration from environment variables. Misconfiguration raises a
    pydantic ValidationError when settings are constructed, which happens once
    at process start.

    Returns:
        Settings: Application configuration loaded from environment.
    """

    # Environment detection
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development, testing, ci, production)",
    )
    app_name: str = Field(
        default="Security Core",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json: bool = Field(
        default=False,
        description="Force JSON log rendering (always on outside development)",
    )

    # Counter storage (Redis with in-process fallback)
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL (e.g., redis://host:port/db). "
        "When unset, counters live in process memory only.",
    )
    redis_timeout_seconds: float = Field(
        default=2.0,
        description="Socket and connect timeout for every Redis call",
    )
    memory_store_cleanup_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How often the in-process store sweeps expired keys",
    )
    memory_store_max_keys: int = Field(
        default=100_000,
        gt=0,
        description="Upper bound on keys held by the in-process store",
    )

    # Rate limiting
    rate_limit_dos_alert_threshold: int = Field(
        default=1000,
        gt=0,
        description="Window count above which a possible-DoS alert is raised",
    )

    # Account lockout
    lockout_max_failed_attempts: int = Field(
        default=5,
        description="Failed logins within the attempt window that lock an account",
    )
    lockout_attempt_window_minutes: int = Field(
        default=15,
        description="Rolling window for counting failed logins",
    )
    lockout_duration_minutes: int = Field(
        default=30,
        description="How long an account stays locked",
    )
    lockout_captcha_threshold: int = Field(
        default=3,
        description="Failed logins after which a CAPTCHA is required",
    )

    # Session tracking
    session_max_concurrent: int = Field(
        default=3,
        description="Sessions active within 60 seconds before concurrency alerts",
    )
    session_max_ip_changes_per_hour: int = Field(
        default=5,
        description="Distinct IP addresses per hour before origin-churn alerts",
    )
    session_max_tracked_per_user: int = Field(
        default=20,
        description="Cap on tracked sessions per user (least recently active dropped)",
    )
    session_stale_after_hours: int = Field(
        default=24,
        description="Inactivity after which a tracked session is forgotten",
    )

    # Anomaly detection
    security_max_second_factor_failures: int = Field(
        default=3,
        description="Second-factor failures that force a logout",
    )
    security_max_events_per_user: int = Field(
        default=100,
        description="Security events retained per user (oldest dropped)",
    )
    security_event_retention_days: int = Field(
        default=30,
        description="Age after which the sweep clears security events",
    )
    security_response_cooldown_seconds: int = Field(
        default=300,
        description="Suppress repeat automated responses for the same user and event type",
    )
    security_sweep_interval_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="How often expired security events and stale sessions are swept",
    )

    # Notifications
    notification_queue_size: int = Field(
        default=1000,
        gt=0,
        description="Bounded queue size for fire-and-forget notifications",
    )
    notification_webhook_url: str | None = Field(
        default=None,
        description="Webhook receiving security notifications (optional)",
    )
    notification_webhook_token: SecretStr | None = Field(
        default=None,
        description="Bearer token sent with webhook notifications",
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="HTTP timeout for webhook delivery",
    )
    security_team_recipient: str = Field(
        default="security-team",
        description="Recipient identity for breach and DoS notifications",
    )

    # Admin API
    admin_api_token: SecretStr | None = Field(
        default=None,
        description="Token required in X-Admin-Token for admin endpoints",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("redis_timeout_seconds")
    @classmethod
    def validate_redis_timeout(cls, v: float) -> float:
        """
        Keep Redis timeouts short enough to fit inside a request budget.

        Args:
            v: Timeout in seconds.

        Returns:
            float: Validated timeout.

        Raises:
            ValueError: If timeout is not within (0, 10).
        """
        if not 0 < v < 10:
            raise ValueError("redis_timeout_seconds must be between 0 and 10")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Normalize and validate the log level name.

        Args:
            v: Level name.

        Returns:
            str: Upper-cased level name.

        Raises:
            ValueError: If the level is unknown.
        """
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("notification_webhook_url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """
        Remove trailing slashes from URLs.

        Args:
            v: URL string.

        Returns:
            str | None: URL without trailing slash.
        """
        return v.rstrip("/") if v else v

    @property
    def is_development(self) -> bool:
        """
        Check if running in development environment.

        Returns:
            bool: True if environment is DEVELOPMENT, False otherwise.
        """
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """
        Check if running in testing environment.

        Returns:
            bool: True if environment is TESTING, False otherwise.
        """
        return self.environment == Environment.TESTING

    @property
    def is_production(self) -> bool:
        """
        Check if running in production environment.

        Returns:
            bool: True if environment is PRODUCTION, False otherwise.
        """
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once per process.

    Returns:
        Settings: Cached settings instance.
    """
    return Settings()
