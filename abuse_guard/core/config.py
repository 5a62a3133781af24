"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from abuse_guard.services.presets import (
    DEFAULT_BURST_INTERVAL_MS,
    RATE_LIMIT_PRESETS,
    SUSPICIOUS_ACTIVITY_PRESETS,
)


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_storage_settings() -> "StorageSettings":
    return StorageSettings()


def _build_guard_settings() -> "GuardSettings":
    return GuardSettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class StorageSettings(BaseSettings):
    """Where counter records are persisted.

    ``memory`` keeps records for the lifetime of the process only; ``file``
    emulates a browser profile's local storage with a single JSON file.
    """

    backend: str = Field(
        "memory",
        description="Storage backend: 'memory' or 'file'",
    )
    file_path: str = Field(
        ".abuse_guard/local_storage.json",
        description="JSON file used by the 'file' backend",
    )
    quota_bytes: int | None = Field(
        None,
        description="Optional byte quota for the 'memory' backend (emulates quota exceeded)",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )


_REGISTRATION_RATE_LIMIT = RATE_LIMIT_PRESETS["registration"]
_REGISTRATION_SUSPICIOUS = SUSPICIOUS_ACTIVITY_PRESETS["registration"]


class GuardSettings(BaseSettings):
    """Thresholds for the registration counters."""

    rate_limit_max_attempts: int = Field(
        _REGISTRATION_RATE_LIMIT.max_attempts,
        description="Maximum registration attempts per window",
        ge=1,
    )
    rate_limit_window_ms: int = Field(
        _REGISTRATION_RATE_LIMIT.window_ms,
        description="Rate limit sliding window in milliseconds",
        ge=1,
    )
    rate_limit_storage_key: str = Field(
        _REGISTRATION_RATE_LIMIT.storage_key,
        description="Storage key holding rate limit records",
    )
    burst_interval_ms: int = Field(
        DEFAULT_BURST_INTERVAL_MS,
        description="Attempts closer together than this are grouped into one record",
        ge=1,
    )
    suspicious_threshold: int = Field(
        _REGISTRATION_SUSPICIOUS.failed_attempt_threshold,
        description="Failed attempts per window before activity is flagged suspicious",
        ge=1,
    )
    suspicious_window_ms: int = Field(
        _REGISTRATION_SUSPICIOUS.window_ms,
        description="Suspicious activity sliding window in milliseconds",
        ge=1,
    )
    suspicious_storage_key: str = Field(
        _REGISTRATION_SUSPICIOUS.storage_key,
        description="Storage key holding suspicious activity records",
    )

    model_config = SettingsConfigDict(
        env_prefix="GUARD_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(3, description="Rotated files to keep", ge=0)

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    storage: StorageSettings = Field(default_factory=_build_storage_settings)
    guard: GuardSettings = Field(default_factory=_build_guard_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
