"""Unit tests for the suspicious activity detector."""

import json

import pytest

from abuse_guard.schemas.records import ActivityRecord, ActivityType, SuspiciousActivityConfig
from abuse_guard.schemas.status import ActivityLevel
from abuse_guard.services.record_store import RecordStore
from abuse_guard.services.suspicious_activity import (
    SuspiciousActivityDetector,
    captcha_threshold,
    compute_suspicious_activity_status,
)

CONFIG = SuspiciousActivityConfig(
    failed_attempt_threshold=3,
    window_ms=10_000,
    storage_key="test_suspicious_activity",
)


def _detector(storage, clock, config: SuspiciousActivityConfig = CONFIG) -> SuspiciousActivityDetector:
    return SuspiciousActivityDetector(config, RecordStore(storage, ActivityRecord), clock=clock)


def test_fresh_detector_is_clear(storage, clock) -> None:
    status = _detector(storage, clock).status

    assert status.is_suspicious is False
    assert status.requires_captcha is False
    assert status.failed_attempts == 0
    assert status.level is ActivityLevel.CLEAR


def test_captcha_then_suspicious(storage, clock) -> None:
    detector = _detector(storage, clock)

    detector.record_failed_attempt(ActivityType.FAILED_REGISTRATION)
    assert detector.requires_captcha is False

    detector.record_failed_attempt(ActivityType.VALIDATION_ERROR, "email taken")
    status = detector.status
    assert status.requires_captcha is True
    assert status.is_suspicious is False
    assert status.failed_attempts == 2
    assert status.level is ActivityLevel.CAPTCHA_REQUIRED

    detector.record_failed_attempt(ActivityType.NETWORK_ERROR)
    assert detector.is_suspicious is True
    assert detector.status.level is ActivityLevel.SUSPICIOUS


def test_failures_are_not_grouped(storage, clock) -> None:
    detector = _detector(storage, clock)

    detector.record_failed_attempt("failed_registration")
    detector.record_failed_attempt("failed_registration")

    assert detector.failed_attempts == 2
    assert len(json.loads(storage.get_item("test_suspicious_activity"))) == 2


def test_persisted_layout_omits_missing_details(storage, clock) -> None:
    detector = _detector(storage, clock)

    detector.record_failed_attempt(ActivityType.FAILED_REGISTRATION)
    detector.record_failed_attempt(ActivityType.NETWORK_ERROR, "timeout")

    assert json.loads(storage.get_item("test_suspicious_activity")) == [
        {"timestamp": clock.current, "type": "failed_registration"},
        {"timestamp": clock.current, "type": "network_error", "details": "timeout"},
    ]


def test_success_clears_everything(storage, clock) -> None:
    detector = _detector(storage, clock)
    for _ in range(5):
        detector.record_failed_attempt(ActivityType.FAILED_REGISTRATION)

    status = detector.record_successful_attempt()

    assert status.failed_attempts == 0
    assert status.is_suspicious is False
    assert status.requires_captcha is False
    assert "test_suspicious_activity" not in storage


def test_reset_clears_everything(storage, clock) -> None:
    detector = _detector(storage, clock)
    detector.record_failed_attempt(ActivityType.FAILED_LOGIN)

    detector.reset()

    assert detector.failed_attempts == 0
    assert "test_suspicious_activity" not in storage


def test_level_falls_back_as_events_age_out(storage, clock) -> None:
    detector = _detector(storage, clock)
    detector.record_failed_attempt(ActivityType.FAILED_REGISTRATION)
    clock.advance(4000)
    detector.record_failed_attempt(ActivityType.FAILED_REGISTRATION)
    detector.record_failed_attempt(ActivityType.FAILED_REGISTRATION)
    assert detector.is_suspicious is True

    clock.advance(6000)
    status = detector.status
    assert status.is_suspicious is False
    assert status.requires_captcha is True
    assert status.failed_attempts == 2

    clock.advance(4000)
    assert detector.status.level is ActivityLevel.CLEAR


def test_loads_persisted_activity(storage, clock) -> None:
    storage.set_item(
        "test_suspicious_activity",
        json.dumps(
            [
                {"timestamp": clock.current - 1000, "type": "failed_registration"},
                {"timestamp": clock.current - 500, "type": "validation_error", "details": "x"},
            ]
        ),
    )

    assert _detector(storage, clock).requires_captcha is True


def test_unknown_type_in_storage_starts_empty(storage, clock) -> None:
    storage.set_item(
        "test_suspicious_activity",
        json.dumps([{"timestamp": clock.current, "type": "bogus"}]),
    )

    assert _detector(storage, clock).failed_attempts == 0


def test_storage_throwing_on_read_does_not_raise(broken_storage, clock) -> None:
    detector = _detector(broken_storage, clock)

    assert detector.failed_attempts == 0
    assert detector.is_suspicious is False


def test_storage_throwing_on_write_keeps_in_memory_state(broken_storage, clock) -> None:
    detector = _detector(broken_storage, clock)

    detector.record_failed_attempt(ActivityType.NETWORK_ERROR)
    detector.record_failed_attempt(ActivityType.NETWORK_ERROR)

    assert detector.requires_captcha is True
    detector.record_successful_attempt()
    assert detector.failed_attempts == 0


def test_invalid_type_raises(storage, clock) -> None:
    with pytest.raises(ValueError):
        _detector(storage, clock).record_failed_attempt("brute_force")


def test_ms_until_next_change(storage, clock) -> None:
    detector = _detector(storage, clock)
    assert detector.ms_until_next_change() == 0

    detector.record_failed_attempt(ActivityType.FAILED_REGISTRATION)
    clock.advance(3000)

    assert detector.ms_until_next_change() == 7000


def test_subscribe_notifies_on_success(storage, clock) -> None:
    detector = _detector(storage, clock)
    seen = []
    detector.subscribe(seen.append)

    detector.record_failed_attempt(ActivityType.FAILED_REGISTRATION)
    detector.record_successful_attempt()

    assert [s.failed_attempts for s in seen] == [1, 0]


@pytest.mark.parametrize(
    ("threshold", "expected"),
    [(1, 1), (2, 1), (3, 2), (5, 3), (6, 3)],
)
def test_captcha_threshold_is_half_rounded_up(threshold: int, expected: int) -> None:
    assert captcha_threshold(threshold) == expected


def test_threshold_of_one_flags_on_first_failure() -> None:
    config = SuspiciousActivityConfig(failed_attempt_threshold=1, window_ms=1000, storage_key="k")
    records = [ActivityRecord(timestamp=0, type=ActivityType.FAILED_LOGIN)]

    status = compute_suspicious_activity_status(records, 10, config)

    assert status.is_suspicious is True
    assert status.requires_captcha is True
