"""Persistence layer for flux_engine runs."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FluxConfig, load_config
from .base import StorageBackend
from .inmemory import InMemoryStorage
from .models import (
    ALLOWED_TRANSITIONS,
    CompletedStep,
    RunRecord,
    RunStatus,
    StepFailure,
)
from .sqlite import SQLiteStorage

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresStorage
except ImportError:  # pragma: no cover - optional dependency
    PostgresStorage = None  # type: ignore

_storage_instance: StorageBackend | None = None


def get_storage(
    database_url: Optional[str] = None, config: Optional[FluxConfig] = None
) -> StorageBackend:
    """Factory function to obtain a storage backend.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``FLUX_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, a process-wide in-memory backend is returned.
    """

    global _storage_instance
    if _storage_instance is not None and database_url is None and config is None:
        return _storage_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("FLUX_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )

    if not database_url:
        _storage_instance = InMemoryStorage()
        return _storage_instance

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _storage_instance = SQLiteStorage(path or ":memory:")
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        if PostgresStorage is None:
            raise RuntimeError("Postgres support not available; install asyncpg")
        _storage_instance = PostgresStorage(database_url)
    else:
        raise ValueError(f"Unsupported database backend: {database_url}")

    return _storage_instance


__all__ = [
    "ALLOWED_TRANSITIONS",
    "CompletedStep",
    "InMemoryStorage",
    "PostgresStorage",
    "RunRecord",
    "RunStatus",
    "SQLiteStorage",
    "StepFailure",
    "StorageBackend",
    "get_storage",
]
