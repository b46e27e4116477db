"""Tests for LockoutConfig validation."""

import pytest

from src.account_lockout.config import LockoutConfig
from src.core.config import Settings
from src.core.enums import Environment


class TestLockoutConfig:
    def test_defaults(self):
        config = LockoutConfig()

        assert config.max_failed_attempts == 5
        assert config.attempt_window_ms == 15 * 60 * 1000
        assert config.lockout_duration_ms == 30 * 60 * 1000
        assert config.captcha_threshold == 3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_failed_attempts": 0},
            {"attempt_window_minutes": 0},
            {"lockout_duration_minutes": -1},
            {"captcha_threshold": 0},
            {"max_failed_attempts": 3, "captcha_threshold": 4},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            LockoutConfig(**kwargs)

    def test_from_settings(self):
        settings = Settings(
            environment=Environment.TESTING,
            lockout_max_failed_attempts=8,
            lockout_attempt_window_minutes=10,
            lockout_duration_minutes=60,
            lockout_captcha_threshold=4,
        )

        config = LockoutConfig.from_settings(settings)

        assert config == LockoutConfig(
            max_failed_attempts=8,
            attempt_window_minutes=10,
            lockout_duration_minutes=60,
            captcha_threshold=4,
        )
