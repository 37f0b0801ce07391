"""In-memory implementation of the run repository."""

from __future__ import annotations

from typing import Dict

from ..errors import NotFoundError
from ..workflow.models import WorkflowRun
from .repository import WorkflowRunRepository


class InMemoryRunRepository(WorkflowRunRepository):
    """Store workflow runs in local memory.

    Useful for tests or when no database is configured. Documents are copied
    on every save and load so callers never share state with the store, the
    same as with a real database. Data is not persisted across process
    restarts.
    """

    def __init__(self) -> None:
        self._runs: Dict[str, WorkflowRun] = {}
        self.save_count = 0

    async def create_run(self, run: WorkflowRun) -> None:
        if run.id in self._runs:
            raise ValueError(f"Run {run.id} already exists")
        self._runs[run.id] = run.model_copy(deep=True)

    async def load_run(self, run_id: str) -> WorkflowRun | None:
        run = self._runs.get(run_id)
        return run.model_copy(deep=True) if run else None

    async def save_run(self, run: WorkflowRun) -> None:
        if run.id not in self._runs:
            raise NotFoundError(f"Workflow run {run.id} not found")
        self._runs[run.id] = run.model_copy(deep=True)
        self.save_count += 1

    async def list_runs(self) -> list[WorkflowRun]:
        return [run.model_copy(deep=True) for run in self._runs.values()]
