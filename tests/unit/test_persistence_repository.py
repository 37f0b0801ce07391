import json
import sqlite3
import uuid

import pytest
from pydantic import ValidationError

from antechamber.config import AntechamberConfig
from antechamber.errors import NotFoundError
from antechamber.persistence import (
    InMemoryRunRepository,
    SQLiteRunRepository,
    get_repository,
    open_repository,
)
from antechamber.workflow.models import StepRecord, WorkflowRun, utcnow


def _run() -> WorkflowRun:
    return WorkflowRun(
        id=str(uuid.uuid4()),
        submission_id="sub-1",
        workflow_name="generate_onboarding_draft",
    )


async def _exercise(repo):
    run = _run()
    await repo.create_run(run)

    run.status = "running"
    run.started_at = utcnow()
    run.steps.append(
        StepRecord(
            name="validate",
            status="completed",
            started_at=utcnow(),
            completed_at=utcnow(),
            output={"fields": [{"key": "name"}], "website_url": "https://acme.test"},
            attempts=1,
        )
    )
    run.steps.append(StepRecord(name="crawl", status="failed", error="boom", attempts=3))
    run.touch()
    await repo.save_run(run)

    stored = await repo.load_run(run.id)
    assert stored is not None
    assert stored == run
    assert stored is not run
    assert [s.name for s in stored.steps] == ["validate", "crawl"]
    assert stored.find_step("validate").output["website_url"] == "https://acme.test"
    assert stored.find_step("crawl").attempts == 3

    assert any(r.id == run.id for r in await repo.list_runs())
    assert await repo.load_run("missing") is None
    return run


@pytest.mark.asyncio
async def test_in_memory_repository_round_trip():
    repo = InMemoryRunRepository()
    run = await _exercise(repo)

    # callers never share state with the store
    run.status = "failed"
    assert (await repo.load_run(run.id)).status == "running"

    with pytest.raises(ValueError):
        await repo.create_run(run)


@pytest.mark.asyncio
async def test_sqlite_repository_round_trip(tmp_path):
    await _exercise(SQLiteRunRepository(tmp_path / "runs.db"))


@pytest.mark.asyncio
async def test_sqlite_repository_survives_reopen(tmp_path):
    db_path = tmp_path / "runs.db"
    run = await _exercise(SQLiteRunRepository(db_path))

    reopened = SQLiteRunRepository(db_path)
    stored = await reopened.load_run(run.id)
    assert stored == run


@pytest.mark.asyncio
async def test_sqlite_repository_rejects_malformed_steps(tmp_path):
    db_path = tmp_path / "runs.db"
    repo = SQLiteRunRepository(db_path)
    run = _run()
    await repo.create_run(run)

    conn = sqlite3.connect(db_path)
    conn.execute(
        "UPDATE workflow_runs SET steps = ? WHERE id = ?",
        (json.dumps([{"name": "validate", "status": "done", "unexpected": 1}]), run.id),
    )
    conn.commit()
    conn.close()

    with pytest.raises(ValidationError):
        await repo.load_run(run.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", ["memory", "sqlite"])
async def test_save_of_unknown_run_raises(kind, tmp_path):
    repo = InMemoryRunRepository() if kind == "memory" else SQLiteRunRepository(tmp_path / "runs.db")
    run = _run()

    with pytest.raises(NotFoundError):
        await repo.save_run(run)
    assert await repo.load_run(run.id) is None
    assert await repo.list_runs() == []


def test_open_repository_selects_backend_by_scheme(tmp_path):
    assert isinstance(open_repository(None), InMemoryRunRepository)
    assert isinstance(open_repository(""), InMemoryRunRepository)

    repo = open_repository(f"sqlite://{tmp_path / 'runs.db'}")
    assert isinstance(repo, SQLiteRunRepository)
    assert repo.db_path == str(tmp_path / "runs.db")

    with pytest.raises(ValueError, match="Unsupported database backend"):
        open_repository("mysql://localhost/runs")
    with pytest.raises(ValueError):
        open_repository("sqlite://")


def test_get_repository_with_explicit_config_is_not_cached(tmp_path):
    config = AntechamberConfig(database_url=f"sqlite://{tmp_path / 'a.db'}")

    first = get_repository(config)
    second = get_repository(config)
    assert isinstance(first, SQLiteRunRepository)
    assert first is not second
    assert isinstance(get_repository(AntechamberConfig()), InMemoryRunRepository)
