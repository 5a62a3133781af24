"""In-memory storage backend.

Notes:
- Per-process only: records do not survive a restart.
- Thread-safe: uses a lock around shared state.
- Optional quota emulates the browser's quota-exceeded failure.
"""

from __future__ import annotations

import threading

from abuse_guard.adapters.storage.base import AbstractStorage
from abuse_guard.core.errors import StorageWriteError


class InMemoryStorage(AbstractStorage):
    """Dictionary-backed storage.

    The quota, when set, is measured as the sum of UTF-8 encoded key and value
    sizes across all entries, similar to how browsers account local storage.
    """

    def __init__(self, *, quota_bytes: int | None = None) -> None:
        """Initialize the storage.

        Args:
            quota_bytes: Maximum total size in bytes (None for unlimited).

        Raises:
            ValueError: If quota_bytes is invalid.
        """
        if quota_bytes is not None and quota_bytes < 1:
            raise ValueError("quota_bytes must be >= 1")

        self._quota_bytes = quota_bytes
        self._lock = threading.RLock()
        self._items: dict[str, str] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            if self._quota_bytes is not None:
                projected = self._size_without(key) + _entry_size(key, value)
                if projected > self._quota_bytes:
                    raise StorageWriteError(
                        code="storage_quota_exceeded",
                        message="Storage quota exceeded",
                        details={
                            "storage_key": key,
                            "backend": "memory",
                            "quota_bytes": self._quota_bytes,
                            "actual_bytes": projected,
                        },
                    )
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._items.clear()

    def _size_without(self, key: str) -> int:
        return sum(_entry_size(k, v) for k, v in self._items.items() if k != key)


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))
