"""Registration guard: one object wiring both counters around a signup form.

The registration screen calls ``begin_attempt()`` around each submission,
``record_failure()`` on a classified failure and ``record_success()`` once the
account exists. ``evaluate()`` tells it whether to enable the submit control
and whether to mount the CAPTCHA widget.

This is advisory, client-side friction. Clearing storage bypasses it; the
server remains the real enforcement point.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from abuse_guard.core.logging import session_scope
from abuse_guard.schemas.records import ActivityType
from abuse_guard.services.rate_limiter import RateLimiter
from abuse_guard.services.suspicious_activity import SuspiciousActivityDetector

logger = logging.getLogger(__name__)

REGISTRATION_FAILURE_TYPES = frozenset(
    {
        ActivityType.FAILED_REGISTRATION,
        ActivityType.VALIDATION_ERROR,
        ActivityType.NETWORK_ERROR,
    }
)


class DecisionReason(str, Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    CAPTCHA_REQUIRED = "captcha_required"


@dataclass(frozen=True)
class GuardDecision:
    """Whether the form may be submitted right now, and why not if it can't.

    Attributes:
        can_submit: Submit control should be enabled.
        reason: Why submission is blocked (``ok`` when it isn't).
        show_captcha: CAPTCHA widget should be mounted.
        is_suspicious: Failure threshold reached.
        attempts_remaining: Attempts left in the rate-limit window.
        reset_time_ms: Milliseconds until the rate limiter relaxes.
        wait_seconds: Whole seconds to show in a "try again in" message (0 unless limited).
    """

    can_submit: bool
    reason: DecisionReason
    show_captcha: bool
    is_suspicious: bool
    attempts_remaining: int
    reset_time_ms: int
    wait_seconds: int


class RegistrationGuard:
    """Facade over a rate limiter and a suspicious activity detector.

    Every call runs inside a logging session scope, so the counters' log events
    for one registration screen share a ``session_id``.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        detector: SuspiciousActivityDetector,
        *,
        session_id: str | None = None,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._detector = detector
        self._session_id = session_id or uuid4().hex

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    @property
    def detector(self) -> SuspiciousActivityDetector:
        return self._detector

    @property
    def session_id(self) -> str:
        return self._session_id

    def begin_attempt(self) -> GuardDecision:
        """Count a submission against the rate limit."""
        with session_scope(self._session_id):
            self._rate_limiter.record_attempt()
            return self._evaluate(None)

    def record_failure(
        self, kind: ActivityType | str, details: str | None = None
    ) -> GuardDecision:
        """Record a classified registration failure.

        Raises:
            ValueError: If kind is not a registration failure type.
        """
        activity_type = ActivityType(kind)
        if activity_type not in REGISTRATION_FAILURE_TYPES:
            raise ValueError(f"'{activity_type.value}' is not a registration failure type")

        with session_scope(self._session_id):
            self._detector.record_failed_attempt(activity_type, details)
            return self._evaluate(None)

    def record_success(self) -> GuardDecision:
        """Clear failure tracking after the account was created.

        The rate limiter is left untouched: successful attempts still count.
        """
        with session_scope(self._session_id):
            self._detector.record_successful_attempt()
            return self._evaluate(None)

    def reset(self) -> GuardDecision:
        """Clear both counters."""
        with session_scope(self._session_id):
            self._rate_limiter.reset()
            self._detector.reset()
            return self._evaluate(None)

    def evaluate(self, captcha_token: str | None = None) -> GuardDecision:
        """Decide whether the form may be submitted now.

        Args:
            captcha_token: Verified token from the CAPTCHA widget, if any.

        Returns:
            GuardDecision. Rate limiting takes precedence over the CAPTCHA gate.
        """
        with session_scope(self._session_id):
            return self._evaluate(captcha_token)

    def _evaluate(self, captcha_token: str | None) -> GuardDecision:
        limit = self._rate_limiter.status
        activity = self._detector.status

        if limit.is_rate_limited:
            reason = DecisionReason.RATE_LIMITED
        elif activity.requires_captcha and not captcha_token:
            reason = DecisionReason.CAPTCHA_REQUIRED
        else:
            reason = DecisionReason.OK

        decision = GuardDecision(
            can_submit=reason is DecisionReason.OK,
            reason=reason,
            show_captcha=activity.requires_captcha,
            is_suspicious=activity.is_suspicious,
            attempts_remaining=limit.attempts_remaining,
            reset_time_ms=limit.reset_time_ms,
            wait_seconds=math.ceil(limit.reset_time_ms / 1000) if limit.is_rate_limited else 0,
        )

        logger.debug(
            "registration_guard.evaluated",
            extra={
                "reason": decision.reason.value,
                "show_captcha": decision.show_captcha,
                "has_captcha_token": bool(captcha_token),
                "attempts_remaining": decision.attempts_remaining,
            },
        )
        return decision
