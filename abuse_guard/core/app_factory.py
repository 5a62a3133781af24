"""Composition root for the registration guard.

Centralizes construction (logging, storage, record stores, counters) so the
registration screen receives one configured object and tests can inject a
storage backend and a fake clock.
"""

from __future__ import annotations

from abuse_guard.adapters.storage.base import AbstractStorage
from abuse_guard.adapters.storage.factory import create_storage
from abuse_guard.core.clock import Clock, epoch_ms
from abuse_guard.core.config import Settings, settings as default_settings
from abuse_guard.core.errors import ValidationAppError
from abuse_guard.core.logging import configure_logging
from abuse_guard.schemas.records import (
    ActivityRecord,
    AttemptRecord,
    RateLimiterConfig,
    SuspiciousActivityConfig,
)
from abuse_guard.services.presets import RATE_LIMIT_PRESETS, SUSPICIOUS_ACTIVITY_PRESETS
from abuse_guard.services.rate_limiter import RateLimiter
from abuse_guard.services.record_store import RecordStore
from abuse_guard.services.registration_guard import RegistrationGuard
from abuse_guard.services.suspicious_activity import SuspiciousActivityDetector


def create_registration_guard(
    app_settings: Settings | None = None,
    *,
    storage: AbstractStorage | None = None,
    clock: Clock = epoch_ms,
    preset: str | None = None,
    setup_logging: bool = True,
) -> RegistrationGuard:
    """Create a registration guard with both counters sharing one storage.

    Args:
        app_settings: Settings to use; defaults to the global settings.
        storage: Storage backend override; built from settings when omitted.
        clock: Time source returning epoch milliseconds.
        preset: Name from RATE_LIMIT_PRESETS (e.g. ``"login"``) replacing the
            configured thresholds. A preset without a suspicious activity
            counterpart keeps the configured detector thresholds.
        setup_logging: Configure the root logger from settings first.

    Returns:
        Configured RegistrationGuard.

    Raises:
        ValidationAppError: If the storage backend or preset name is invalid.
    """
    cfg = app_settings or default_settings

    # Logging first so storage warnings during the initial load are formatted
    if setup_logging:
        configure_logging(cfg.log)

    rate_config = RateLimiterConfig(
        max_attempts=cfg.guard.rate_limit_max_attempts,
        window_ms=cfg.guard.rate_limit_window_ms,
        storage_key=cfg.guard.rate_limit_storage_key,
    )
    suspicious_config = SuspiciousActivityConfig(
        failed_attempt_threshold=cfg.guard.suspicious_threshold,
        window_ms=cfg.guard.suspicious_window_ms,
        storage_key=cfg.guard.suspicious_storage_key,
    )

    if preset is not None:
        if preset not in RATE_LIMIT_PRESETS:
            raise ValidationAppError(
                code="guard_unknown_preset",
                message=(
                    f"Unknown preset: '{preset}'. "
                    f"Supported presets: {', '.join(sorted(RATE_LIMIT_PRESETS))}"
                ),
            )
        rate_config = RATE_LIMIT_PRESETS[preset]
        suspicious_config = SUSPICIOUS_ACTIVITY_PRESETS.get(preset, suspicious_config)

    backend = storage if storage is not None else create_storage(cfg.storage)

    rate_limiter = RateLimiter(
        rate_config,
        RecordStore(backend, AttemptRecord),
        clock=clock,
        burst_interval_ms=cfg.guard.burst_interval_ms,
    )
    detector = SuspiciousActivityDetector(
        suspicious_config,
        RecordStore(backend, ActivityRecord),
        clock=clock,
    )

    return RegistrationGuard(rate_limiter, detector)
