"""Pydantic schemas for persisted counter records and counter configuration.

Records serialize to the storage layout shared with the browser build:

- rate limiter: ``[{"timestamp": <ms>, "count": <n>}, ...]``
- suspicious activity: ``[{"timestamp": <ms>, "type": "<kind>", "details": "<str>"?}, ...]``
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ActivityType(str, Enum):
    """Classification of a failure event."""

    FAILED_REGISTRATION = "failed_registration"
    FAILED_LOGIN = "failed_login"
    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"


class AttemptRecord(BaseModel):
    """One burst bucket of rate-limited attempts."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., description="Epoch milliseconds of the first attempt in the bucket.")
    count: int = Field(..., ge=1, description="Attempts grouped into this bucket.")


class ActivityRecord(BaseModel):
    """One classified failure event."""

    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., description="Epoch milliseconds when the failure happened.")
    type: ActivityType = Field(..., description="Failure classification.")
    details: str | None = Field(
        default=None,
        description="Optional free-form context (e.g., server error message).",
    )


class RateLimiterConfig(BaseModel):
    """Thresholds for a rate limiter instance."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(..., gt=0)
    window_ms: int = Field(..., gt=0)
    storage_key: str = Field(..., min_length=1)


class SuspiciousActivityConfig(BaseModel):
    """Thresholds for a suspicious activity detector instance."""

    model_config = ConfigDict(frozen=True)

    failed_attempt_threshold: int = Field(..., gt=0)
    window_ms: int = Field(..., gt=0)
    storage_key: str = Field(..., min_length=1)
