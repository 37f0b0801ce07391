"""Persistence layer for workflow runs."""

from __future__ import annotations

from typing import Optional

from ..config import AntechamberConfig, load_config
from .inmemory import InMemoryRunRepository
from .repository import WorkflowRunRepository
from .sqlite import SQLiteRunRepository

_repository_instance: WorkflowRunRepository | None = None


def open_repository(database_url: Optional[str]) -> WorkflowRunRepository:
    """Open the run repository addressed by ``database_url``.

    ``sqlite://<path>`` and ``postgres(ql)://...`` select a database backend;
    an empty URL keeps runs in memory.
    """
    if not database_url:
        return InMemoryRunRepository()

    scheme, _, rest = database_url.partition("://")
    if scheme == "sqlite" and rest:
        return SQLiteRunRepository(rest)
    if scheme in ("postgres", "postgresql"):
        from .postgres import PostgresRunRepository

        return PostgresRunRepository(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


def get_repository(config: Optional[AntechamberConfig] = None) -> WorkflowRunRepository:
    """Return the run repository for ``config``.

    Without an explicit config the repository is built once from
    :func:`load_config`, which already folds in ``ANTECHAMBER_DATABASE_URL``
    and ``DATABASE_URL``, and shared by later callers.
    """
    global _repository_instance
    if config is not None:
        return open_repository(config.database_url)
    if _repository_instance is None:
        _repository_instance = open_repository(load_config().database_url)
    return _repository_instance


def reset_repository() -> None:
    """Forget the cached repository instance."""
    global _repository_instance
    _repository_instance = None


__all__ = [
    "WorkflowRunRepository",
    "InMemoryRunRepository",
    "SQLiteRunRepository",
    "get_repository",
    "open_repository",
    "reset_repository",
]
