"""Tests for sensitive data filtering and session correlation in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

from abuse_guard.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    SessionIdFilter,
    clear_session_id,
    set_session_id,
)


def _capture(name: str) -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SessionIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_sensitive_filter_redacts_captcha_token():
    logger, stream = _capture("test_captcha_redaction")

    logger.info(
        "registration_guard.evaluated",
        extra={"captcha_token": "P1_eyJ0eXAiOiJKV1Qi", "reason": "ok"},
    )

    output = stream.getvalue()
    assert "P1_eyJ0eXAiOiJKV1Qi" not in output
    assert "[REDACTED]" in output
    assert '"reason": "ok"' in output


def test_sensitive_filter_redacts_failure_details():
    logger, stream = _capture("test_details_redaction")

    logger.info(
        "suspicious_activity.failure_recorded",
        extra={
            "details": "jane@example.com already registered",
            "activity_type": "failed_registration",
            "failed_attempts": 2,
        },
    )

    output = stream.getvalue()
    assert "jane@example.com" not in output
    assert "failed_registration" in output
    assert "failed_attempts" in output


def test_sensitive_filter_redacts_nested_dicts():
    logger, stream = _capture("test_nested")

    logger.info(
        "nested_event",
        extra={
            "form": {"email": "jane@example.com", "username": "jane"},
        },
    )

    output = stream.getvalue()
    assert "jane@example.com" not in output
    assert "jane" in output


def test_safe_fields_pass_through():
    logger, stream = _capture("test_safe_fields")

    logger.info(
        "rate_limit.attempt_recorded",
        extra={"storage_key": "registration_attempts", "remaining": 2, "grouped": True},
    )

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "rate_limit.attempt_recorded"
    assert payload["storage_key"] == "registration_attempts"
    assert payload["remaining"] == 2
    assert "[REDACTED]" not in stream.getvalue()


def test_session_id_is_attached_from_context():
    logger, stream = _capture("test_session")

    set_session_id("sess-42")
    try:
        logger.info("rate_limit.reset")
    finally:
        clear_session_id()

    assert json.loads(stream.getvalue())["session_id"] == "sess-42"
