"""Execution of a single step with per-attempt timeout and retry."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from ..errors import StepTimeoutError, is_retryable
from ..utils import retry
from .contracts import StepDefinition, WorkflowContext
from .models import StepRecord, WorkflowRun, utcnow
from .policy import RetryPolicy

if TYPE_CHECKING:
    from ..persistence.repository import WorkflowRunRepository

logger = logging.getLogger(__name__)


def serialize_output(output: Any) -> Any:
    """JSON-compatible form of a step output for the step record."""
    if isinstance(output, BaseModel):
        return output.model_dump(mode="json")
    return output


class StepRunner:
    """Runs one step up to ``max_attempts`` times, persisting each transition.

    Each attempt runs as a task bounded by ``asyncio.wait``. When the deadline
    fires the task is cancelled and awaited, so its async work stops at the next
    await point. Blocking synchronous code inside a step cannot be
    interrupted and still delays the timeout.
    """

    def __init__(self, repository: WorkflowRunRepository) -> None:
        self._repository = repository

    async def _persist(self, run: WorkflowRun) -> None:
        run.touch()
        await self._repository.save_run(run)

    def _record_for(self, run: WorkflowRun, step_name: str) -> StepRecord:
        record = run.find_step(step_name)
        if record is None:
            record = StepRecord(name=step_name)
            run.steps.append(record)
        return record

    async def _attempt(self, step: StepDefinition, policy: RetryPolicy, ctx: WorkflowContext) -> Any:
        task = asyncio.ensure_future(step.run(ctx))
        try:
            done, _ = await asyncio.wait({task}, timeout=policy.timeout_seconds)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task not in done:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise StepTimeoutError(step.name, policy.timeout_ms)
        # errors raised by the step itself, TimeoutError included, pass through as-is
        return task.result()

    async def run(
        self,
        run: WorkflowRun,
        step: StepDefinition,
        policy: RetryPolicy,
        ctx: WorkflowContext,
    ) -> Any:
        record = self._record_for(run, step.name)
        if record.status == "completed":
            raise ValueError(f'Step "{step.name}" already completed for run {run.id}')

        record.status = "running"
        record.started_at = utcnow()
        record.completed_at = None
        record.error = None
        await self._persist(run)

        for attempt in range(1, policy.max_attempts + 1):
            record.attempts += 1
            await self._persist(run)
            ctx.log(
                f'Step "{step.name}" starting (attempt {attempt}/{policy.max_attempts}, '
                f"timeout: {policy.timeout_ms}ms)"
            )
            started = time.monotonic()
            try:
                output = await self._attempt(step, policy, ctx)
            except Exception as exc:
                if not is_retryable(exc) or attempt >= policy.max_attempts:
                    record.status = "failed"
                    record.error = str(exc)
                    await self._persist(run)
                    ctx.log(
                        f'Step "{step.name}" failed after {attempt} attempt(s): {exc}',
                        logging.ERROR,
                    )
                    raise

                ctx.log(
                    f'Step "{step.name}" attempt {attempt} failed: {exc}. Retrying...',
                    logging.WARNING,
                )
                await retry.schedule_retry(attempt, policy)
                continue

            elapsed_ms = int((time.monotonic() - started) * 1000)
            record.status = "completed"
            record.completed_at = utcnow()
            record.output = serialize_output(output)
            record.error = None
            await self._persist(run)
            ctx.log(f'Step "{step.name}" completed in {elapsed_ms}ms')
            return output

        raise RuntimeError(f'Step "{step.name}" exhausted attempts without a result')
