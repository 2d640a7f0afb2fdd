"""SQLite implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..contracts import OverallStatus, RunSummary, StepOutcome, WorkflowRun, utcnow
from ..exceptions import NotFound
from .repository import WorkflowRepository

_RUN_COLUMNS = (
    "run_id, workflow, subject_id, started_at, completed_at, "
    "overall_status, summary, recommendations"
)


class SQLiteWorkflowRepository(WorkflowRepository):
    """Persist workflow runs using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflow_runs (
                run_id TEXT PRIMARY KEY,
                workflow TEXT NOT NULL,
                subject_id TEXT NOT NULL,
                started_at TEXT NOT NULL,
                completed_at TEXT,
                overall_status TEXT NOT NULL,
                summary TEXT,
                recommendations TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS step_outcomes (
                run_id TEXT NOT NULL REFERENCES workflow_runs (run_id),
                step_name TEXT NOT NULL,
                status TEXT NOT NULL,
                result TEXT,
                error TEXT,
                recorded_at TEXT NOT NULL,
                PRIMARY KEY (run_id, step_name)
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_runs_subject ON workflow_runs (subject_id, workflow)"
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            self._conn.commit()
            return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    async def _load(self, row: sqlite3.Row) -> WorkflowRun:
        step_rows = await asyncio.to_thread(
            self._fetchall,
            "SELECT step_name, status, result, error FROM step_outcomes WHERE run_id = ? ORDER BY rowid",
            row["run_id"],
        )
        return WorkflowRun(
            run_id=row["run_id"],
            workflow=row["workflow"],
            subject_id=row["subject_id"],
            started_at=datetime.fromisoformat(row["started_at"]),
            completed_at=datetime.fromisoformat(row["completed_at"])
            if row["completed_at"]
            else None,
            overall_status=row["overall_status"],
            summary=RunSummary.model_validate_json(row["summary"])
            if row["summary"]
            else None,
            recommendations=json.loads(row["recommendations"])
            if row["recommendations"]
            else [],
            steps={
                r["step_name"]: StepOutcome(
                    status=r["status"],
                    result=json.loads(r["result"]) if r["result"] else None,
                    error=r["error"],
                )
                for r in step_rows
            },
        )

    # ------------------------------------------------------------------
    # Repository API
    async def create_run(
        self, subject_id: str, workflow: str, run_id: Optional[str] = None
    ) -> str:
        run_id = run_id or str(uuid.uuid4())
        await asyncio.to_thread(
            self._execute,
            "INSERT INTO workflow_runs (run_id, workflow, subject_id, started_at, overall_status) VALUES (?, ?, ?, ?, ?)",
            run_id,
            workflow,
            subject_id,
            utcnow().isoformat(),
            "pending",
        )
        return run_id

    async def record_step(
        self, run_id: str, step_name: str, outcome: StepOutcome
    ) -> None:
        payload = outcome.model_dump(mode="json")
        exists = await asyncio.to_thread(
            self._fetchone, "SELECT 1 FROM workflow_runs WHERE run_id = ?", run_id
        )
        if not exists:
            raise NotFound(f"Workflow run {run_id} not found")
        await asyncio.to_thread(
            self._execute,
            """
            INSERT INTO step_outcomes (run_id, step_name, status, result, error, recorded_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (run_id, step_name) DO UPDATE SET
                status = excluded.status,
                result = excluded.result,
                error = excluded.error,
                recorded_at = excluded.recorded_at
            """,
            run_id,
            step_name,
            payload["status"],
            json.dumps(payload["result"]) if payload["result"] is not None else None,
            payload["error"],
            utcnow().isoformat(),
        )

    async def finalize(
        self,
        run_id: str,
        overall_status: OverallStatus,
        summary: RunSummary,
        recommendations: list[str],
    ) -> None:
        updated = await asyncio.to_thread(
            self._execute,
            """
            UPDATE workflow_runs
            SET overall_status = ?, summary = ?, recommendations = ?,
                completed_at = COALESCE(completed_at, ?)
            WHERE run_id = ?
            """,
            overall_status,
            summary.model_dump_json(),
            json.dumps(recommendations),
            utcnow().isoformat(),
            run_id,
        )
        if not updated:
            raise NotFound(f"Workflow run {run_id} not found")

    async def get_run(self, run_id: str) -> WorkflowRun:
        row = await asyncio.to_thread(
            self._fetchone,
            f"SELECT {_RUN_COLUMNS} FROM workflow_runs WHERE run_id = ?",
            run_id,
        )
        if not row:
            raise NotFound(f"Workflow run {run_id} not found")
        return await self._load(row)

    async def latest_run(self, subject_id: str, workflow: str) -> WorkflowRun:
        row = await asyncio.to_thread(
            self._fetchone,
            f"""
            SELECT {_RUN_COLUMNS} FROM workflow_runs
            WHERE subject_id = ? AND workflow = ?
            ORDER BY started_at DESC, rowid DESC
            LIMIT 1
            """,
            subject_id,
            workflow,
        )
        if not row:
            raise NotFound(f"No {workflow} run found for driver {subject_id}")
        return await self._load(row)

    async def list_runs(self, subject_id: Optional[str] = None) -> list[WorkflowRun]:
        if subject_id is None:
            rows = await asyncio.to_thread(
                self._fetchall,
                f"SELECT {_RUN_COLUMNS} FROM workflow_runs ORDER BY started_at, rowid",
            )
        else:
            rows = await asyncio.to_thread(
                self._fetchall,
                f"SELECT {_RUN_COLUMNS} FROM workflow_runs WHERE subject_id = ? ORDER BY started_at, rowid",
                subject_id,
            )
        return [await self._load(row) for row in rows]
