"""Tests for settings parsing and logging configuration."""

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from abuse_guard.core.config import GuardSettings, LogSettings, StorageSettings
from abuse_guard.core.logging import JsonFormatter, configure_logging


def test_guard_defaults_match_registration_preset() -> None:
    from abuse_guard.services.presets import RATE_LIMIT_PRESETS, SUSPICIOUS_ACTIVITY_PRESETS

    guard = GuardSettings()
    rate = RATE_LIMIT_PRESETS["registration"]
    suspicious = SUSPICIOUS_ACTIVITY_PRESETS["registration"]

    assert guard.rate_limit_max_attempts == rate.max_attempts
    assert guard.rate_limit_window_ms == rate.window_ms
    assert guard.rate_limit_storage_key == rate.storage_key
    assert guard.suspicious_threshold == suspicious.failed_attempt_threshold
    assert guard.suspicious_window_ms == suspicious.window_ms
    assert guard.burst_interval_ms == 5000


def test_guard_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GUARD_RATE_LIMIT_MAX_ATTEMPTS", "7")
    monkeypatch.setenv("GUARD_BURST_INTERVAL_MS", "2500")

    guard = GuardSettings()

    assert guard.rate_limit_max_attempts == 7
    assert guard.burst_interval_ms == 2500


def test_guard_settings_reject_non_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GUARD_SUSPICIOUS_THRESHOLD", "0")

    with pytest.raises(ValidationError):
        GuardSettings()


def test_storage_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_BACKEND", "file")
    monkeypatch.setenv("STORAGE_FILE_PATH", "/tmp/profile.json")

    cfg = StorageSettings()

    assert cfg.backend == "file"
    assert cfg.file_path == "/tmp/profile.json"


def test_configure_logging_json_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    log_file = tmp_path / "logs" / "guard.log"

    try:
        configure_logging(
            LogSettings(level="debug", format="json", output="file", file_path=str(log_file))
        )
        handler = root.handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)
        assert root.level == logging.DEBUG

        logging.getLogger("abuse_guard.test").info("hello", extra={"captcha_token": "secret"})
        handler.flush()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    payload = json.loads(log_file.read_text(encoding="utf-8").strip())
    assert payload["message"] == "hello"
    assert payload["captcha_token"] == "[REDACTED]"
