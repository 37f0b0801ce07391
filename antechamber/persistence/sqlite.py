"""SQLite implementation of the run repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any

from ..errors import NotFoundError
from ..workflow.models import WorkflowRun
from .repository import WorkflowRunRepository


class SQLiteRunRepository(WorkflowRunRepository):
    """Persist workflow runs using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_runs (
                id TEXT PRIMARY KEY,
                submission_id TEXT NOT NULL,
                workflow_name TEXT NOT NULL,
                status TEXT NOT NULL,
                steps TEXT NOT NULL,
                error TEXT,
                started_at TEXT,
                completed_at TEXT,
                updated_at TEXT,
                record_version INTEGER NOT NULL
            )
            """
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()
        return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    @staticmethod
    def _to_params(run: WorkflowRun) -> tuple[Any, ...]:
        data = run.model_dump(mode="json")
        return (
            data["id"],
            data["submission_id"],
            data["workflow_name"],
            data["status"],
            json.dumps(data["steps"]),
            data["error"],
            data["started_at"],
            data["completed_at"],
            data["updated_at"],
            data["record_version"],
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> WorkflowRun:
        data = dict(row)
        data["steps"] = json.loads(data["steps"])
        return WorkflowRun.model_validate(data)

    # ------------------------------------------------------------------
    # Repository API
    async def create_run(self, run: WorkflowRun) -> None:
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO workflow_runs (
                id, submission_id, workflow_name, status, steps, error,
                started_at, completed_at, updated_at, record_version
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            *self._to_params(run),
        )

    async def load_run(self, run_id: str) -> WorkflowRun | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT * FROM workflow_runs WHERE id = ?", run_id
        )
        if not row:
            return None
        return self._from_row(row)

    async def save_run(self, run: WorkflowRun) -> None:
        params = self._to_params(run)
        updated = await asyncio.to_thread(
            self._execute,
            """
            UPDATE workflow_runs
            SET submission_id = ?, workflow_name = ?, status = ?, steps = ?,
                error = ?, started_at = ?, completed_at = ?, updated_at = ?,
                record_version = ?
            WHERE id = ?
            """,
            *params[1:],
            params[0],
        )
        if updated == 0:
            raise NotFoundError(f"Workflow run {run.id} not found")

    async def list_runs(self) -> list[WorkflowRun]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT * FROM workflow_runs ORDER BY started_at, id"
        )
        return [self._from_row(row) for row in rows]
