"""Suspicious activity detector.

Counts classified failure events inside a sliding window and derives graduated
friction from the count: a CAPTCHA is required once half the threshold is
reached, and activity is flagged suspicious at the full threshold. There is no
stored state machine; the level falls back on its own as events age out.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Callable, Sequence

from abuse_guard.core.clock import Clock, epoch_ms
from abuse_guard.schemas.records import ActivityRecord, ActivityType, SuspiciousActivityConfig
from abuse_guard.schemas.status import SuspiciousActivityStatus
from abuse_guard.services.listeners import Listener, ListenerRegistry
from abuse_guard.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def prune_activities(
    records: Sequence[ActivityRecord], now: int, window_ms: int
) -> list[ActivityRecord]:
    """Return a new list holding only events younger than window_ms."""
    return [record for record in records if now - record.timestamp < window_ms]


def captcha_threshold(failed_attempt_threshold: int) -> int:
    """Failure count at which a CAPTCHA becomes mandatory."""
    return math.ceil(failed_attempt_threshold / 2)


def compute_suspicious_activity_status(
    records: Sequence[ActivityRecord], now: int, config: SuspiciousActivityConfig
) -> SuspiciousActivityStatus:
    """Derive the detector status from raw events at time ``now``."""
    failed_attempts = len(prune_activities(records, now, config.window_ms))
    return SuspiciousActivityStatus(
        is_suspicious=failed_attempts >= config.failed_attempt_threshold,
        requires_captcha=failed_attempts >= captcha_threshold(config.failed_attempt_threshold),
        failed_attempts=failed_attempts,
    )


class SuspiciousActivityDetector:
    """Tracks failed attempts of a protected action.

    Each failure is stored individually; unlike the rate limiter there is no
    burst grouping.
    """

    def __init__(
        self,
        config: SuspiciousActivityConfig,
        store: RecordStore[ActivityRecord],
        *,
        clock: Clock = epoch_ms,
    ) -> None:
        self._config = config
        self._store = store
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: ListenerRegistry[SuspiciousActivityStatus] = ListenerRegistry(
            "suspicious_activity"
        )
        self._records: list[ActivityRecord] = store.load(config.storage_key)

    @property
    def config(self) -> SuspiciousActivityConfig:
        return self._config

    @property
    def records(self) -> list[ActivityRecord]:
        with self._lock:
            return list(self._records)

    @property
    def status(self) -> SuspiciousActivityStatus:
        """Current status; prunes expired events as a side effect."""
        with self._lock:
            now = self._clock()
            self._prune_locked(now)
            return compute_suspicious_activity_status(self._records, now, self._config)

    @property
    def is_suspicious(self) -> bool:
        return self.status.is_suspicious

    @property
    def requires_captcha(self) -> bool:
        return self.status.requires_captcha

    @property
    def failed_attempts(self) -> int:
        return self.status.failed_attempts

    def record_failed_attempt(
        self, kind: ActivityType | str, details: str | None = None
    ) -> SuspiciousActivityStatus:
        """Record one classified failure.

        Args:
            kind: Failure classification.
            details: Optional context, e.g. the server's error message.

        Returns:
            Status immediately after recording.

        Raises:
            ValueError: If kind is not a known ActivityType.
        """
        activity_type = ActivityType(kind)

        with self._lock:
            now = self._clock()
            recent = prune_activities(self._records, now, self._config.window_ms)
            recent.append(ActivityRecord(timestamp=now, type=activity_type, details=details))

            self._records = recent
            self._store.save(self._config.storage_key, self._records)
            status = compute_suspicious_activity_status(self._records, now, self._config)

        logger.info(
            "suspicious_activity.failure_recorded",
            extra={
                "storage_key": self._config.storage_key,
                "activity_type": activity_type.value,
                "details": details,
                "failed_attempts": status.failed_attempts,
                "level": status.level.value,
            },
        )
        if status.is_suspicious:
            logger.warning(
                "suspicious_activity.flagged",
                extra={
                    "storage_key": self._config.storage_key,
                    "failed_attempts": status.failed_attempts,
                    "threshold": self._config.failed_attempt_threshold,
                },
            )

        self._listeners.notify(status)
        return status

    def record_successful_attempt(self) -> SuspiciousActivityStatus:
        """Clear tracking after the protected action succeeded."""
        return self._clear("suspicious_activity.success")

    def reset(self) -> SuspiciousActivityStatus:
        """Clear tracking on manual override."""
        return self._clear("suspicious_activity.reset")

    def ms_until_next_change(self) -> int:
        """Milliseconds until the oldest surviving event ages out (0 when empty)."""
        with self._lock:
            now = self._clock()
            self._prune_locked(now)
            if not self._records:
                return 0
            oldest = min(record.timestamp for record in self._records)
            return max(0, self._config.window_ms - (now - oldest))

    def subscribe(self, listener: Listener[SuspiciousActivityStatus]) -> Callable[[], None]:
        """Call listener with the new status after every mutation."""
        return self._listeners.subscribe(listener)

    def _clear(self, event: str) -> SuspiciousActivityStatus:
        with self._lock:
            self._records = []
            self._store.clear(self._config.storage_key)
            status = compute_suspicious_activity_status(self._records, self._clock(), self._config)

        logger.info(event, extra={"storage_key": self._config.storage_key})
        self._listeners.notify(status)
        return status

    def _prune_locked(self, now: int) -> None:
        recent = prune_activities(self._records, now, self._config.window_ms)
        if len(recent) != len(self._records):
            self._records = recent
            self._store.save(self._config.storage_key, self._records)
