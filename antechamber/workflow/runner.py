"""Sequential workflow execution with idempotent resume."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from ..errors import NotFoundError, ValidationError
from .contracts import StepDefinition, WorkflowContext, WorkflowDefinition, WorkflowDeps
from .models import StepRecord, WorkflowRun, utcnow
from .policy import DEFAULT_RETRY_POLICY, RetryPolicy
from .step_runner import StepRunner

if TYPE_CHECKING:
    from ..persistence.repository import WorkflowRunRepository

logger = logging.getLogger(__name__)


class WorkflowRunner:
    """Executes the steps of a workflow in order for one submission.

    Steps already recorded as ``completed`` are not executed again; their
    stored output is handed to later steps instead. This makes it safe to
    call :meth:`execute` again with the same ``run_id`` after a crash or a
    failure: execution resumes at the first step without a completed record.

    A run is expected to be owned by a single runner at a time. Concurrent
    runners on the same run are not coordinated.
    """

    def __init__(
        self,
        deps: WorkflowDeps,
        repository: WorkflowRunRepository,
        default_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.deps = deps
        self._repository = repository
        self._default_policy = default_policy or DEFAULT_RETRY_POLICY
        self._step_runner = StepRunner(repository)

    async def _persist(self, run: WorkflowRun) -> None:
        run.touch()
        await self._repository.save_run(run)

    async def _load(self, run_id: str, submission_id: str) -> WorkflowRun:
        run = await self._repository.load_run(run_id)
        if run is None:
            raise NotFoundError(f"Workflow run {run_id} not found")
        if run.submission_id != submission_id:
            raise ValidationError(
                f"Workflow run {run_id} belongs to submission {run.submission_id}, "
                f"not {submission_id}"
            )
        return run

    def policy_for(self, step: StepDefinition) -> RetryPolicy:
        return self._default_policy.merged(step.retry_policy)

    @staticmethod
    def _cached_output(step: StepDefinition, record: StepRecord) -> Any:
        if step.output_model is not None and record.output is not None:
            return step.output_model.model_validate(record.output)
        return record.output

    async def execute(
        self, workflow: WorkflowDefinition, submission_id: str, run_id: str
    ) -> None:
        run = await self._load(run_id, submission_id)

        logger.info(
            f"[workflow:{workflow.name}] Starting execution for submission {submission_id}"
        )
        logger.info(f"[workflow:{workflow.name}] Steps: {' -> '.join(workflow.step_names)}")

        run.status = "running"
        run.error = None
        run.completed_at = None
        if run.started_at is None:
            run.started_at = utcnow()
        await self._persist(run)

        ctx = WorkflowContext(
            deps=self.deps,
            workflow_name=workflow.name,
            run_id=run_id,
            submission_id=submission_id,
        )

        try:
            for step in workflow.steps:
                record = run.find_step(step.name)
                if record is not None and record.status == "completed":
                    ctx.log(f'Skipping already-completed step "{step.name}"')
                    ctx.outputs.record(step.name, self._cached_output(step, record))
                    continue

                output = await self._step_runner.run(run, step, self.policy_for(step), ctx)
                ctx.outputs.record(step.name, output)
        except Exception as exc:
            logger.error(
                f"[workflow:{workflow.name}] Failed for submission {submission_id}: {exc}"
            )
            run.status = "failed"
            run.error = str(exc)
            await self._persist(run)
            raise

        run.status = "completed"
        run.completed_at = utcnow()
        await self._persist(run)
        logger.info(
            f"[workflow:{workflow.name}] All steps completed successfully for submission {submission_id}"
        )
