"""Status change notification for counters.

Counters have no timer of their own; listeners are told about mutations
(record, reset) and can use ``ms_until_next_change()`` to schedule the next
status read for expiry.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

StatusT = TypeVar("StatusT")

Listener = Callable[[StatusT], None]


class ListenerRegistry(Generic[StatusT]):
    """Thread-safe list of status callbacks."""

    def __init__(self, owner: str) -> None:
        self._owner = owner
        self._lock = threading.Lock()
        self._listeners: list[Listener[StatusT]] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: Listener[StatusT]) -> Callable[[], None]:
        """Register listener and return a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def notify(self, status: StatusT) -> None:
        """Call every listener with status. Listener errors are logged, not raised."""
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(status)
            except Exception:  # noqa: BLE001
                logger.warning(
                    "listener.failed",
                    extra={"owner": self._owner},
                    exc_info=True,
                )
