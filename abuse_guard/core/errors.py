"""Application-level exception types.

Storage backends raise these; the record store catches them, logs a warning
and carries on with an empty or in-memory-only record list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability."""

    code: str
    message: str
    hint: str
    storage_key: str
    backend: str
    path: str
    quota_bytes: int
    actual_bytes: int
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class StorageReadError(AppError):
    """Raised when persisted records cannot be read or parsed."""


class StorageWriteError(AppError):
    """Raised when records cannot be written or removed (quota, unavailable backend)."""
