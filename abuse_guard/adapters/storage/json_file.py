"""JSON file storage backend.

A single JSON object file stands in for one browser profile's local storage:
``{"<key>": "<raw string value>", ...}``. Writes go to a temporary sibling file
that then replaces the original, so a crash never leaves a half-written file.

Concurrent processes sharing the same file race under last-write-wins; there
is no cross-process lock.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any

from abuse_guard.adapters.storage.base import AbstractStorage
from abuse_guard.core.errors import StorageReadError, StorageWriteError

logger = logging.getLogger(__name__)


class JsonFileStorage(AbstractStorage):
    """Storage persisted as one JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._read_for_update()
            items[key] = value
            self._write(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read_for_update()
            if key not in items:
                return
            del items[key]
            self._write(items)

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}

        try:
            raw: Any = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StorageReadError(
                code="storage_unreadable",
                message=f"Could not read storage file: {exc}",
                details={"backend": "file", "path": str(self._path)},
            ) from exc

        if not isinstance(raw, dict):
            raise StorageReadError(
                code="storage_malformed",
                message="Storage file does not contain a JSON object",
                details={"backend": "file", "path": str(self._path)},
            )

        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _read_for_update(self) -> dict[str, str]:
        # A corrupt profile file is replaced rather than blocking every write.
        try:
            return self._read()
        except StorageReadError as exc:
            logger.warning(
                "storage.file_reset",
                extra={"path": str(self._path), "error_code": exc.code},
            )
            return {}

    def _write(self, items: dict[str, str]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                json.dumps(items, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            tmp.replace(self._path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise StorageWriteError(
                code="storage_write_failed",
                message=f"Could not write storage file: {exc}",
                details={"backend": "file", "path": str(self._path)},
            ) from exc
