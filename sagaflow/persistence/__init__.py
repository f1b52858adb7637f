"""Persistence layer for workflow run history."""

from __future__ import annotations

import os
from typing import Optional

from ..config import SagaflowConfig, load_config
from ..errors import ConfigurationError
from .inmemory import InMemoryRunRepository
from .models import ActivityRecord, RunContext, RunResult, RunStatus
from .repository import RunRepository
from .sqlite import SQLiteRunRepository

_repository_instance: RunRepository | None = None


def get_repository(
    database_url: Optional[str] = None, config: Optional[SagaflowConfig] = None
) -> RunRepository:
    """Factory function to obtain a run repository.

    The repository backend is selected based on ``database_url`` which can be
    provided explicitly, via environment variable ``SAGAFLOW_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, a bounded in-memory repository is returned.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("SAGAFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )

    if not database_url:
        _repository_instance = InMemoryRunRepository(max_runs=config.history.max_runs)
        return _repository_instance

    if database_url.startswith("sqlite://"):
        path = database_url.replace("sqlite://", "", 1)
        _repository_instance = SQLiteRunRepository(path)
    elif database_url.startswith("postgres://") or database_url.startswith(
        "postgresql://"
    ):
        from .postgres import PostgresRunRepository

        _repository_instance = PostgresRunRepository(database_url)
    else:
        raise ConfigurationError(f"Unsupported database backend: {database_url}")

    return _repository_instance


__all__ = [
    "ActivityRecord",
    "RunContext",
    "RunResult",
    "RunStatus",
    "RunRepository",
    "InMemoryRunRepository",
    "SQLiteRunRepository",
    "get_repository",
]
