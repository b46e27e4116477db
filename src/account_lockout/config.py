"""Account lockout configuration.

Thresholds for the failed-login state machine. Values normally come from
application settings via ``LockoutConfig.from_settings``; tests construct the
dataclass directly.
"""

from dataclasses import dataclass

from src.core.config import Settings


@dataclass
class LockoutConfig:
    """Account lockout thresholds.

    Attributes:
        max_failed_attempts: Failures inside the window that lock the account (default: 5)
        attempt_window_minutes: Window for counting failures (default: 15)
        lockout_duration_minutes: How long a lock lasts (default: 30)
        captcha_threshold: Failures after which a CAPTCHA is required (default: 3)

    Example:
        >>> config = LockoutConfig(max_failed_attempts=10, captcha_threshold=5)
        >>> config.lockout_duration_ms
        1800000
    """

    max_failed_attempts: int = 5
    attempt_window_minutes: int = 15
    lockout_duration_minutes: int = 30
    captcha_threshold: int = 3

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.max_failed_attempts < 1:
            raise ValueError("max_failed_attempts must be at least 1")
        if self.attempt_window_minutes < 1:
            raise ValueError("attempt_window_minutes must be at least 1")
        if self.lockout_duration_minutes < 1:
            raise ValueError("lockout_duration_minutes must be at least 1")
        if self.captcha_threshold < 1:
            raise ValueError("captcha_threshold must be at least 1")
        if self.captcha_threshold > self.max_failed_attempts:
            raise ValueError("captcha_threshold must not exceed max_failed_attempts")

    @property
    def attempt_window_ms(self) -> int:
        return self.attempt_window_minutes * 60 * 1000

    @property
    def lockout_duration_ms(self) -> int:
        return self.lockout_duration_minutes * 60 * 1000

    @classmethod
    def from_settings(cls, settings: Settings) -> "LockoutConfig":
        """Build from application settings."""
        return cls(
            max_failed_attempts=settings.lockout_max_failed_attempts,
            attempt_window_minutes=settings.lockout_attempt_window_minutes,
            lockout_duration_minutes=settings.lockout_duration_minutes,
            captcha_threshold=settings.lockout_captcha_threshold,
        )
