"""Sliding-window rate limiter with burst grouping.

Attempts are stored as buckets: an attempt made less than ``burst_interval_ms``
after a surviving bucket was opened is added to that bucket's count instead of
opening a new one. Rapid double-submits still count toward the cap, but the
window relaxes bucket by bucket as each one ages out.

Notes:
- Expired buckets are pruned lazily when the limiter is used; nothing runs on
  a timer.
- Status is recomputed from the raw buckets and the clock on every read and is
  never persisted.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Sequence

from abuse_guard.core.clock import Clock, epoch_ms
from abuse_guard.schemas.records import AttemptRecord, RateLimiterConfig
from abuse_guard.schemas.status import RateLimitStatus
from abuse_guard.services.listeners import Listener, ListenerRegistry
from abuse_guard.services.presets import DEFAULT_BURST_INTERVAL_MS
from abuse_guard.services.record_store import RecordStore

logger = logging.getLogger(__name__)


def prune_attempts(
    records: Sequence[AttemptRecord], now: int, window_ms: int
) -> list[AttemptRecord]:
    """Return a new list holding only records younger than window_ms."""
    return [record for record in records if now - record.timestamp < window_ms]


def compute_rate_limit_status(
    records: Sequence[AttemptRecord], now: int, config: RateLimiterConfig
) -> RateLimitStatus:
    """Derive the limiter status from raw buckets at time ``now``.

    Args:
        records: Attempt buckets, possibly including expired ones.
        now: Current epoch milliseconds.
        config: Limiter thresholds.

    Returns:
        RateLimitStatus for this instant.
    """
    recent = prune_attempts(records, now, config.window_ms)
    total_attempts = sum(record.count for record in recent)

    reset_time_ms = 0
    if recent:
        oldest = min(record.timestamp for record in recent)
        reset_time_ms = max(0, config.window_ms - (now - oldest))

    return RateLimitStatus(
        is_rate_limited=total_attempts >= config.max_attempts,
        attempts_remaining=max(0, config.max_attempts - total_attempts),
        reset_time_ms=reset_time_ms,
        total_attempts=total_attempts,
    )


class RateLimiter:
    """Counts attempts of a protected action within a sliding window.

    Records are loaded once from the store at construction. Every mutation
    re-persists the full list; ``reset()`` deletes the storage key.
    """

    def __init__(
        self,
        config: RateLimiterConfig,
        store: RecordStore[AttemptRecord],
        *,
        clock: Clock = epoch_ms,
        burst_interval_ms: int = DEFAULT_BURST_INTERVAL_MS,
    ) -> None:
        """Initialize the limiter.

        Args:
            config: Thresholds and storage key.
            store: Record store used for persistence.
            clock: Time source returning epoch milliseconds.
            burst_interval_ms: Attempts this close to an open bucket join it.

        Raises:
            ValueError: If burst_interval_ms is invalid.
        """
        if burst_interval_ms < 1:
            raise ValueError("burst_interval_ms must be >= 1")

        self._config = config
        self._store = store
        self._clock = clock
        self._burst_interval_ms = burst_interval_ms
        self._lock = threading.RLock()
        self._listeners: ListenerRegistry[RateLimitStatus] = ListenerRegistry("rate_limiter")
        self._records: list[AttemptRecord] = store.load(config.storage_key)

    @property
    def config(self) -> RateLimiterConfig:
        return self._config

    @property
    def records(self) -> list[AttemptRecord]:
        """Copy of the in-memory buckets (unpruned)."""
        with self._lock:
            return list(self._records)

    @property
    def status(self) -> RateLimitStatus:
        """Current status; prunes expired buckets as a side effect."""
        with self._lock:
            now = self._clock()
            self._prune_locked(now)
            return compute_rate_limit_status(self._records, now, self._config)

    @property
    def is_rate_limited(self) -> bool:
        return self.status.is_rate_limited

    @property
    def attempts_remaining(self) -> int:
        return self.status.attempts_remaining

    @property
    def reset_time_ms(self) -> int:
        return self.status.reset_time_ms

    def record_attempt(self) -> RateLimitStatus:
        """Record one attempt, grouping it into a recent bucket when possible.

        Returns:
            Status immediately after recording.
        """
        with self._lock:
            now = self._clock()
            recent = prune_attempts(self._records, now, self._config.window_ms)

            bucket_index = self._find_burst_bucket(recent, now)
            if bucket_index is None:
                recent.append(AttemptRecord(timestamp=now, count=1))
            else:
                bucket = recent[bucket_index]
                recent[bucket_index] = bucket.model_copy(update={"count": bucket.count + 1})

            self._records = recent
            self._store.save(self._config.storage_key, self._records)
            status = compute_rate_limit_status(self._records, now, self._config)

        logger.info(
            "rate_limit.attempt_recorded",
            extra={
                "storage_key": self._config.storage_key,
                "grouped": bucket_index is not None,
                "total_attempts": status.total_attempts,
                "limit": self._config.max_attempts,
                "remaining": status.attempts_remaining,
            },
        )
        if status.is_rate_limited:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "storage_key": self._config.storage_key,
                    "limit": self._config.max_attempts,
                    "reset_time_ms": status.reset_time_ms,
                },
            )

        self._listeners.notify(status)
        return status

    def reset(self) -> RateLimitStatus:
        """Forget every attempt and delete the storage key."""
        with self._lock:
            self._records = []
            self._store.clear(self._config.storage_key)
            status = compute_rate_limit_status(self._records, self._clock(), self._config)

        logger.info("rate_limit.reset", extra={"storage_key": self._config.storage_key})
        self._listeners.notify(status)
        return status

    def ms_until_next_change(self) -> int:
        """Milliseconds until the oldest surviving bucket expires (0 when empty)."""
        return self.status.reset_time_ms

    def subscribe(self, listener: Listener[RateLimitStatus]) -> Callable[[], None]:
        """Call listener with the new status after every mutation."""
        return self._listeners.subscribe(listener)

    def _find_burst_bucket(self, records: Sequence[AttemptRecord], now: int) -> int | None:
        for index, record in enumerate(records):
            if now - record.timestamp < self._burst_interval_ms:
                return index
        return None

    def _prune_locked(self, now: int) -> None:
        recent = prune_attempts(self._records, now, self._config.window_ms)
        if len(recent) != len(self._records):
            self._records = recent
            self._store.save(self._config.storage_key, self._records)
