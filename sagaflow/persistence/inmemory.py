"""In-memory implementation of the run repository."""

from __future__ import annotations

from collections import OrderedDict

from ..constants import DEFAULT_MAX_RUNS
from .models import RunContext
from .repository import RunRepository


class InMemoryRunRepository(RunRepository):
    """Store run history in local memory.

    Bounded: once ``max_runs`` runs are held, the least recently written or
    read run is evicted. Data is not persisted across process restarts.
    """

    def __init__(self, max_runs: int = DEFAULT_MAX_RUNS) -> None:
        if max_runs < 1:
            raise ValueError("max_runs must be at least 1")
        self.max_runs = max_runs
        self._runs: OrderedDict[str, RunContext] = OrderedDict()

    async def save_run(self, run: RunContext) -> None:
        self._runs[run.id] = run.model_copy(deep=True)
        self._runs.move_to_end(run.id)
        while len(self._runs) > self.max_runs:
            self._runs.popitem(last=False)

    async def get_run(self, run_id: str) -> RunContext | None:
        run = self._runs.get(run_id)
        if run is None:
            return None
        self._runs.move_to_end(run_id)
        return run.model_copy(deep=True)

    async def list_runs(self) -> list[RunContext]:
        return sorted(
            (run.model_copy(deep=True) for run in self._runs.values()),
            key=lambda run: run.start_time,
        )
