"""PostgreSQL implementation of the run repository."""

from __future__ import annotations

import json
from typing import Any

import asyncpg

from ..errors import NotFoundError
from ..workflow.models import WorkflowRun
from .repository import WorkflowRunRepository

_COLUMNS = (
    "id, submission_id, workflow_name, status, steps, error, "
    "started_at, completed_at, updated_at, record_version"
)


class PostgresRunRepository(WorkflowRunRepository):
    """Persist workflow runs using PostgreSQL, step records in a JSONB column."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_runs (
                id TEXT PRIMARY KEY,
                submission_id TEXT NOT NULL,
                workflow_name TEXT NOT NULL,
                status TEXT NOT NULL,
                steps JSONB NOT NULL DEFAULT '[]'::jsonb,
                error TEXT,
                started_at TIMESTAMPTZ,
                completed_at TIMESTAMPTZ,
                updated_at TIMESTAMPTZ,
                record_version INTEGER NOT NULL
            )
            """
        )

    @staticmethod
    def _to_params(run: WorkflowRun) -> tuple[Any, ...]:
        steps = [step.model_dump(mode="json") for step in run.steps]
        return (
            run.id,
            run.submission_id,
            run.workflow_name,
            run.status,
            json.dumps(steps),
            run.error,
            run.started_at,
            run.completed_at,
            run.updated_at,
            run.record_version,
        )

    @staticmethod
    def _from_row(row: asyncpg.Record) -> WorkflowRun:
        data = dict(row)
        if isinstance(data["steps"], str):
            data["steps"] = json.loads(data["steps"])
        return WorkflowRun.model_validate(data)

    # ------------------------------------------------------------------
    async def create_run(self, run: WorkflowRun) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                f"INSERT INTO workflow_runs ({_COLUMNS}) "
                "VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7, $8, $9, $10)",
                *self._to_params(run),
            )
        finally:
            await conn.close()

    async def load_run(self, run_id: str) -> WorkflowRun | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM workflow_runs WHERE id = $1", run_id
            )
        finally:
            await conn.close()
        if not row:
            return None
        return self._from_row(row)

    async def save_run(self, run: WorkflowRun) -> None:
        conn = await self._connect()
        try:
            status = await conn.execute(
                """
                UPDATE workflow_runs
                SET submission_id = $2, workflow_name = $3, status = $4,
                    steps = $5::jsonb, error = $6, started_at = $7,
                    completed_at = $8, updated_at = $9, record_version = $10
                WHERE id = $1
                """,
                *self._to_params(run),
            )
        finally:
            await conn.close()
        if status == "UPDATE 0":
            raise NotFoundError(f"Workflow run {run.id} not found")

    async def list_runs(self) -> list[WorkflowRun]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM workflow_runs ORDER BY started_at NULLS FIRST, id"
            )
        finally:
            await conn.close()
        return [self._from_row(r) for r in rows]
