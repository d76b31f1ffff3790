"""Pluggable persistence for learning data."""

import structlog

from shared_types import StorageBackend

from ..config import StorageConfig
from ..errors import UnknownBackendError
from .base import LearningStorage
from .memory import InMemoryStorage
from .sqlite import SQLiteStorage

logger = structlog.get_logger()


def create_storage(config: StorageConfig | None = None) -> LearningStorage:
    """Build the backend named by ``config.backend`` (default: SQLite)."""
    config = config or StorageConfig()
    try:
        backend = StorageBackend(config.backend)
    except ValueError as e:
        raise UnknownBackendError(f"Unknown storage backend: {config.backend}") from e

    if backend == StorageBackend.MEMORY:
        logger.debug("storage_created", backend=backend.value)
        return InMemoryStorage()
    logger.debug("storage_created", backend=backend.value, db_path=str(config.db_path))
    return SQLiteStorage(config.db_path)


__all__ = [
    "LearningStorage",
    "InMemoryStorage",
    "SQLiteStorage",
    "create_storage",
]
