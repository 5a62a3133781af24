"""Storage interface.

Mirrors the browser ``localStorage`` contract: string keys, string values,
missing keys read as ``None``. Implementations may raise on any call; the
record store is responsible for tolerating that.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractStorage(ABC):
    """Interface for string key/value storage backends."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the raw value stored under key, or None when missing.

        Raises:
            StorageReadError: If the backend cannot be read.
        """
        raise NotImplementedError

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value.

        Raises:
            StorageWriteError: If the value cannot be written (quota, unavailable).
        """
        raise NotImplementedError

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete key. Removing a missing key is a no-op.

        Raises:
            StorageWriteError: If the backend cannot be written.
        """
        raise NotImplementedError
