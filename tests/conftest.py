"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the TESTING environment variable so no .env file is loaded.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest

from abuse_guard.adapters.storage.base import AbstractStorage
from abuse_guard.adapters.storage.in_memory import InMemoryStorage
from abuse_guard.core.errors import StorageReadError, StorageWriteError


class FakeClock:
    """Deterministic millisecond clock used to test window expiry."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms


class BrokenStorage(AbstractStorage):
    """Storage that raises on every call, like a browser with storage disabled."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def get_item(self, key: str) -> str | None:
        self.calls.append("get")
        raise StorageReadError(code="storage_unavailable", message="storage disabled")

    def set_item(self, key: str, value: str) -> None:
        self.calls.append("set")
        raise StorageWriteError(code="storage_unavailable", message="storage disabled")

    def remove_item(self, key: str) -> None:
        self.calls.append("remove")
        raise StorageWriteError(code="storage_unavailable", message="storage disabled")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def broken_storage() -> BrokenStorage:
    return BrokenStorage()
