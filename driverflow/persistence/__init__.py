"""Workflow run stores and the process-wide store used by the CLI."""

from __future__ import annotations

from typing import Optional

from ..config import DriverflowConfig, load_config
from ..constants import MEMORY_URL
from .inmemory import InMemoryWorkflowRepository
from .postgres import PostgresWorkflowRepository
from .repository import WorkflowRepository
from .sqlite import SQLiteWorkflowRepository

SQLITE_PREFIX = "sqlite://"
POSTGRES_PREFIXES = ("postgres://", "postgresql://")

_repository_instance: WorkflowRepository | None = None


def open_repository(database_url: str) -> WorkflowRepository:
    """Open the run store named by ``database_url``.

    ``memory://`` keeps runs in this process only, ``sqlite://PATH`` stores
    them in a local file and ``postgres://`` / ``postgresql://`` DSNs use
    PostgreSQL.
    """
    if database_url == MEMORY_URL:
        return InMemoryWorkflowRepository()
    if database_url.startswith(SQLITE_PREFIX):
        path = database_url[len(SQLITE_PREFIX):]
        if not path:
            raise ValueError("SQLite database URL needs a file path, e.g. sqlite://runs.db")
        return SQLiteWorkflowRepository(path)
    if database_url.startswith(POSTGRES_PREFIXES):
        return PostgresWorkflowRepository(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


def get_repository(config: Optional[DriverflowConfig] = None) -> WorkflowRepository:
    """Return the run store for this process.

    The first call opens the store named by ``config.database_url`` (loaded
    with ``load_config`` when not given, so the usual file and environment
    overrides apply) and later calls reuse it. Passing ``config`` always
    opens a fresh store.
    """
    global _repository_instance
    if config is None and _repository_instance is not None:
        return _repository_instance

    config = config or load_config()
    _repository_instance = open_repository(config.database_url)
    return _repository_instance


__all__ = [
    "WorkflowRepository",
    "InMemoryWorkflowRepository",
    "SQLiteWorkflowRepository",
    "PostgresWorkflowRepository",
    "get_repository",
    "open_repository",
]
