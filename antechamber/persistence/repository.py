"""Repository abstraction for workflow run persistence."""

from __future__ import annotations

from typing import Protocol

from ..workflow.models import WorkflowRun


class WorkflowRunRepository(Protocol):
    """Protocol for workflow run persistence backends.

    ``save_run`` must be atomic per call. The runner never relies on
    transactions spanning more than one load/modify/save cycle.
    """

    async def create_run(self, run: WorkflowRun) -> None:
        """Persist a new run document."""

    async def load_run(self, run_id: str) -> WorkflowRun | None:
        """Retrieve the run by id."""

    async def save_run(self, run: WorkflowRun) -> None:
        """Overwrite the stored run document.

        Raises ``NotFoundError`` when no run with ``run.id`` was created.
        """

    async def list_runs(self) -> list[WorkflowRun]:
        """Return all persisted runs."""
