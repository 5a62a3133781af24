"""Derived counter status structures.

Status values are never persisted; they are recomputed from the raw records
and the current time on every read.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class RateLimitStatus:
    """Result of evaluating a rate limiter at a point in time.

    Attributes:
        is_rate_limited: Whether the protected action must be blocked.
        attempts_remaining: Attempts left before the cap (0 when limited).
        reset_time_ms: Milliseconds until the earliest surviving bucket expires.
        total_attempts: Sum of bucket counts inside the window.
    """

    is_rate_limited: bool
    attempts_remaining: int
    reset_time_ms: int
    total_attempts: int = 0


class ActivityLevel(str, Enum):
    """Friction ladder derived from the failure count."""

    CLEAR = "clear"
    CAPTCHA_REQUIRED = "captcha_required"
    SUSPICIOUS = "suspicious"


@dataclass(frozen=True)
class SuspiciousActivityStatus:
    """Result of evaluating a suspicious activity detector at a point in time."""

    is_suspicious: bool
    requires_captcha: bool
    failed_attempts: int

    @property
    def level(self) -> ActivityLevel:
        if self.is_suspicious:
            return ActivityLevel.SUSPICIOUS
        if self.requires_captcha:
            return ActivityLevel.CAPTCHA_REQUIRED
        return ActivityLevel.CLEAR
