"""Repository abstraction for workflow run history."""

from __future__ import annotations

from typing import Protocol

from .models import RunContext


class RunRepository(Protocol):
    """Protocol for run history backends."""

    async def save_run(self, run: RunContext) -> None:
        """Insert or replace the stored state of ``run``."""

    async def get_run(self, run_id: str) -> RunContext | None:
        """Retrieve a run by id."""

    async def list_runs(self) -> list[RunContext]:
        """Return all retained runs, oldest first."""
