"""Factory for creating storage backends from configuration."""

from abuse_guard.adapters.storage.base import AbstractStorage
from abuse_guard.adapters.storage.in_memory import InMemoryStorage
from abuse_guard.adapters.storage.json_file import JsonFileStorage
from abuse_guard.core.config import StorageSettings, settings
from abuse_guard.core.errors import ValidationAppError


def create_storage(storage_settings: StorageSettings | None = None) -> AbstractStorage:
    """Instantiate the storage backend selected by configuration.

    Args:
        storage_settings: Optional settings; defaults to the global settings.

    Returns:
        AbstractStorage: Configured storage backend.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    cfg = storage_settings or settings.storage
    backend = cfg.backend.lower()

    if backend == "memory":
        return InMemoryStorage(quota_bytes=cfg.quota_bytes)

    if backend == "file":
        if not cfg.file_path:
            raise ValidationAppError(
                code="storage_missing_file_path",
                message="File storage backend requires STORAGE_FILE_PATH",
            )
        return JsonFileStorage(cfg.file_path)

    raise ValidationAppError(
        code="storage_unknown_backend",
        message=f"Unknown storage backend: '{backend}'. Supported backends: memory, file",
    )
