import asyncio

import pytest
from pydantic import BaseModel

from antechamber.errors import (
    NotFoundError,
    StepOutputUnavailable,
    StepTimeoutError,
    ValidationError,
)
from antechamber.persistence import InMemoryRunRepository
from antechamber.utils import retry
from antechamber.workflow import (
    RetryPolicy,
    StepDefinition,
    WorkflowDefinition,
    WorkflowDeps,
    WorkflowRunner,
)
from antechamber.workflow.models import StepRecord, WorkflowRun


class Counted(BaseModel):
    value: str


class CallLog:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def count(self, name: str) -> int:
        return self.calls.count(name)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    async def fake_schedule_retry(attempt, policy):
        return None

    monkeypatch.setattr(retry, "schedule_retry", fake_schedule_retry)


async def _new_run(repo, run_id="run-1", submission_id="sub-1", steps=None):
    run = WorkflowRun(
        id=run_id, submission_id=submission_id, workflow_name="wf", steps=steps or []
    )
    await repo.create_run(run)
    return run


def _runner(repo, policy=None):
    return WorkflowRunner(WorkflowDeps(), repo, default_policy=policy)


@pytest.mark.asyncio
async def test_end_to_end_four_steps():
    repo = InMemoryRunRepository()
    await _new_run(repo)
    log = CallLog()

    def make(name, previous=None):
        async def run(ctx):
            log.calls.append(name)
            upstream = ctx.get_step_output(previous) if previous else ""
            return f"{upstream}{name}"

        return StepDefinition(name=name, run=run)

    workflow = WorkflowDefinition(
        name="wf",
        steps=[make("a"), make("b", "a"), make("c", "b"), make("d", "c")],
    )

    await _runner(repo).execute(workflow, "sub-1", "run-1")

    run = await repo.load_run("run-1")
    assert run.status == "completed"
    assert run.completed_at is not None
    assert run.error is None
    assert [s.name for s in run.steps] == ["a", "b", "c", "d"]
    assert all(s.status == "completed" and s.attempts == 1 for s in run.steps)
    assert run.find_step("d").output == "abcd"
    assert log.calls == ["a", "b", "c", "d"]


@pytest.mark.asyncio
async def test_completed_steps_are_skipped_and_outputs_reused():
    repo = InMemoryRunRepository()
    await _new_run(
        repo,
        steps=[StepRecord(name="a", status="completed", output={"value": "O"}, attempts=1)],
    )
    seen = []

    async def never(ctx):
        raise AssertionError("completed step must not run again")

    async def consume(ctx):
        upstream = ctx.get_step_output("a", Counted)
        seen.append(upstream)
        return upstream.value + "!"

    workflow = WorkflowDefinition(
        name="wf",
        steps=[
            StepDefinition(name="a", run=never, output_model=Counted),
            StepDefinition(name="b", run=consume),
        ],
    )
    await _runner(repo).execute(workflow, "sub-1", "run-1")

    assert seen == [Counted(value="O")]
    run = await repo.load_run("run-1")
    assert run.status == "completed"
    assert run.find_step("a").attempts == 1
    assert run.find_step("a").output == {"value": "O"}
    assert run.find_step("b").output == "O!"


@pytest.mark.asyncio
async def test_retry_bound_then_failure():
    repo = InMemoryRunRepository()
    await _new_run(repo)
    log = CallLog()

    async def always_fails(ctx):
        log.calls.append("flaky")
        raise ConnectionError("upstream unavailable")

    async def after(ctx):
        log.calls.append("after")

    workflow = WorkflowDefinition(
        name="wf",
        steps=[
            StepDefinition(name="flaky", run=always_fails, retry_policy={"max_attempts": 4}),
            StepDefinition(name="after", run=after),
        ],
    )

    with pytest.raises(ConnectionError):
        await _runner(repo).execute(workflow, "sub-1", "run-1")

    assert log.count("flaky") == 4
    assert log.count("after") == 0
    run = await repo.load_run("run-1")
    assert run.status == "failed"
    assert run.error == "upstream unavailable"
    assert run.find_step("flaky").attempts == 4
    assert run.find_step("flaky").status == "failed"
    assert run.find_step("after") is None


@pytest.mark.asyncio
async def test_terminal_error_fails_immediately():
    repo = InMemoryRunRepository()
    await _new_run(repo)
    log = CallLog()

    async def bad_input(ctx):
        log.calls.append("validate")
        raise ValidationError("Invalid URL: nope")

    workflow = WorkflowDefinition(
        name="wf", steps=[StepDefinition(name="validate", run=bad_input)]
    )

    with pytest.raises(ValidationError):
        await _runner(repo).execute(workflow, "sub-1", "run-1")

    assert log.count("validate") == 1
    run = await repo.load_run("run-1")
    assert run.status == "failed"
    assert run.find_step("validate").attempts == 1


@pytest.mark.asyncio
async def test_timeout_consumes_attempts():
    repo = InMemoryRunRepository()
    await _new_run(repo)
    log = CallLog()

    async def hangs(ctx):
        log.calls.append("slow")
        await asyncio.sleep(10)

    workflow = WorkflowDefinition(
        name="wf",
        steps=[
            StepDefinition(
                name="slow", run=hangs, retry_policy={"max_attempts": 2, "timeout_ms": 20}
            )
        ],
    )

    with pytest.raises(StepTimeoutError):
        await _runner(repo).execute(workflow, "sub-1", "run-1")

    assert log.count("slow") == 2
    run = await repo.load_run("run-1")
    assert run.find_step("slow").attempts == 2
    assert run.find_step("slow").error == 'Step "slow" timed out after 20ms'


@pytest.mark.asyncio
async def test_resume_after_failure_keeps_completed_work():
    repo = InMemoryRunRepository()
    await _new_run(repo)
    log = CallLog()
    healthy = {"value": False}

    async def first(ctx):
        log.calls.append("first")
        return {"value": "one"}

    async def second(ctx):
        log.calls.append("second")
        if not healthy["value"]:
            raise RuntimeError("crawler down")
        return ctx.get_step_output("first", Counted).value + "-two"

    workflow = WorkflowDefinition(
        name="wf",
        steps=[
            StepDefinition(name="first", run=first, output_model=Counted),
            StepDefinition(name="second", run=second),
        ],
    )
    runner = _runner(repo, RetryPolicy(max_attempts=2))

    with pytest.raises(RuntimeError):
        await runner.execute(workflow, "sub-1", "run-1")
    failed = await repo.load_run("run-1")
    assert failed.status == "failed"
    started_at = failed.started_at

    healthy["value"] = True
    await runner.execute(workflow, "sub-1", "run-1")

    run = await repo.load_run("run-1")
    assert run.status == "completed"
    assert run.error is None
    assert run.started_at == started_at
    assert log.count("first") == 1
    assert log.count("second") == 3
    assert run.find_step("second").attempts == 3
    assert run.find_step("second").output == "one-two"


@pytest.mark.asyncio
async def test_resume_after_crash_mid_step():
    repo = InMemoryRunRepository()
    # state left behind by a process that died while "second" was running
    await _new_run(
        repo,
        steps=[
            StepRecord(name="first", status="completed", output="cached", attempts=1),
            StepRecord(name="second", status="running", attempts=1),
        ],
    )
    log = CallLog()

    async def first(ctx):
        log.calls.append("first")
        return "fresh"

    async def second(ctx):
        log.calls.append("second")
        return ctx.get_step_output("first")

    workflow = WorkflowDefinition(
        name="wf",
        steps=[StepDefinition(name="first", run=first), StepDefinition(name="second", run=second)],
    )
    await _runner(repo).execute(workflow, "sub-1", "run-1")

    run = await repo.load_run("run-1")
    assert log.calls == ["second"]
    assert run.find_step("second").output == "cached"
    assert run.find_step("second").attempts == 2


@pytest.mark.asyncio
async def test_reading_output_of_later_step_is_not_retried():
    repo = InMemoryRunRepository()
    await _new_run(repo)
    log = CallLog()

    async def early(ctx):
        log.calls.append("early")
        return ctx.get_step_output("late")

    async def late(ctx):
        return 1

    workflow = WorkflowDefinition(
        name="wf",
        steps=[StepDefinition(name="early", run=early), StepDefinition(name="late", run=late)],
    )

    with pytest.raises(StepOutputUnavailable):
        await _runner(repo).execute(workflow, "sub-1", "run-1")
    assert log.calls == ["early"]


@pytest.mark.asyncio
async def test_missing_run_and_submission_mismatch():
    repo = InMemoryRunRepository()
    await _new_run(repo)
    workflow = WorkflowDefinition(name="wf", steps=[])

    with pytest.raises(NotFoundError):
        await _runner(repo).execute(workflow, "sub-1", "missing")
    with pytest.raises(ValidationError):
        await _runner(repo).execute(workflow, "other-sub", "run-1")

    run = await repo.load_run("run-1")
    assert run.status == "pending"
