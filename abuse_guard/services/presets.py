"""Ready-made counter configurations for common protected actions."""

from __future__ import annotations

from types import MappingProxyType

from abuse_guard.schemas.records import RateLimiterConfig, SuspiciousActivityConfig

_MINUTE_MS = 60 * 1000

# Independent of every window_ms below.
DEFAULT_BURST_INTERVAL_MS = 5000

RATE_LIMIT_PRESETS = MappingProxyType(
    {
        "registration": RateLimiterConfig(
            max_attempts=3,
            window_ms=15 * _MINUTE_MS,
            storage_key="registration_attempts",
        ),
        "login": RateLimiterConfig(
            max_attempts=5,
            window_ms=5 * _MINUTE_MS,
            storage_key="login_attempts",
        ),
        "password_reset": RateLimiterConfig(
            max_attempts=10,
            window_ms=60 * _MINUTE_MS,
            storage_key="password_reset_attempts",
        ),
    }
)

SUSPICIOUS_ACTIVITY_PRESETS = MappingProxyType(
    {
        "registration": SuspiciousActivityConfig(
            failed_attempt_threshold=3,
            window_ms=30 * _MINUTE_MS,
            storage_key="suspicious_registration_activity",
        ),
        "login": SuspiciousActivityConfig(
            failed_attempt_threshold=5,
            window_ms=15 * _MINUTE_MS,
            storage_key="suspicious_login_activity",
        ),
    }
)
