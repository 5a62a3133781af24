"""Failure-tolerant persistence of timestamped record lists.

Each storage key holds one JSON array of records. Every failure mode (missing
key, malformed JSON, records of the wrong shape, a backend that raises) is
logged as a warning and absorbed: reads fall back to an empty list and writes
are best effort, so the counters built on top fail open.
"""

from __future__ import annotations

import json
import logging
from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from abuse_guard.adapters.storage.base import AbstractStorage
from abuse_guard.core.errors import StorageReadError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class RecordStore(Generic[RecordT]):
    """Load, save and clear lists of ``model`` records under string keys."""

    def __init__(self, storage: AbstractStorage, model: type[RecordT]) -> None:
        self._storage = storage
        self._model = model
        self._adapter: TypeAdapter[list[RecordT]] = TypeAdapter(list[model])  # type: ignore[valid-type]

    @property
    def storage(self) -> AbstractStorage:
        return self._storage

    def load(self, key: str) -> list[RecordT]:
        """Return the records stored under key, or an empty list.

        Never raises.
        """
        try:
            return self._read(key)
        except Exception as exc:  # noqa: BLE001 - storage must never break the caller
            logger.warning(
                "record_store.load_failed",
                extra={
                    "storage_key": key,
                    "record_type": self._model.__name__,
                    "error_type": type(exc).__name__,
                    "error_code": getattr(exc, "code", None),
                },
            )
            return []

    def save(self, key: str, records: Sequence[RecordT]) -> None:
        """Persist the full record list under key. Best effort; never raises."""
        try:
            payload = self._adapter.dump_json(list(records), exclude_none=True).decode("utf-8")
            self._storage.set_item(key, payload)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "record_store.save_failed",
                extra={
                    "storage_key": key,
                    "record_type": self._model.__name__,
                    "record_count": len(records),
                    "error_type": type(exc).__name__,
                    "error_code": getattr(exc, "code", None),
                },
            )

    def clear(self, key: str) -> None:
        """Delete key from storage. Best effort; never raises."""
        try:
            self._storage.remove_item(key)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "record_store.clear_failed",
                extra={
                    "storage_key": key,
                    "error_type": type(exc).__name__,
                    "error_code": getattr(exc, "code", None),
                },
            )

    def _read(self, key: str) -> list[RecordT]:
        raw = self._storage.get_item(key)
        if raw is None:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageReadError(
                code="records_malformed_json",
                message=f"Stored value under '{key}' is not valid JSON",
                details={"storage_key": key},
            ) from exc

        if not isinstance(parsed, list):
            raise StorageReadError(
                code="records_not_a_list",
                message=f"Stored value under '{key}' is not a JSON array",
                details={"storage_key": key},
            )

        try:
            return self._adapter.validate_python(parsed)
        except ValidationError as exc:
            raise StorageReadError(
                code="records_invalid",
                message=f"Stored records under '{key}' failed validation",
                details={"storage_key": key, "context": {"errors": exc.error_count()}},
            ) from exc
