"""Persisted workflow run state.

A ``WorkflowRun`` document is the wire format between runner invocations:
it is read back verbatim when a crashed or failed run is executed again, so
its shape is validated strictly on load.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RunStatus = Literal["pending", "running", "completed", "failed"]
StepStatus = Literal["pending", "running", "completed", "failed"]

RUN_RECORD_VERSION = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepRecord(BaseModel):
    """Record of one step's execution within a run.

    A ``completed`` record's ``output`` is the idempotency cache for the step.
    """

    name: str
    status: StepStatus = "pending"
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    output: Any = None
    error: Optional[str] = None
    attempts: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="forbid")


class WorkflowRun(BaseModel):
    """One execution attempt of a workflow for a single submission."""

    id: str
    submission_id: str
    workflow_name: str
    status: RunStatus = "pending"
    steps: list[StepRecord] = Field(default_factory=list)
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    record_version: Literal[1] = RUN_RECORD_VERSION

    model_config = ConfigDict(extra="forbid")

    def find_step(self, name: str) -> Optional[StepRecord]:
        return next((s for s in self.steps if s.name == name), None)

    def touch(self) -> None:
        self.updated_at = utcnow()
