"""PostgreSQL implementation of the workflow repository."""

from __future__ import annotations

import json
import uuid
from typing import Any, Optional

import asyncpg

from ..contracts import OverallStatus, RunSummary, StepOutcome, WorkflowRun, utcnow
from ..exceptions import NotFound
from .repository import WorkflowRepository

_RUN_COLUMNS = (
    "run_id, workflow, subject_id, started_at, completed_at, "
    "overall_status, summary, recommendations"
)


def _json(value: Any) -> Any:
    # asyncpg hands JSONB back as text unless a codec is registered
    if isinstance(value, str):
        return json.loads(value)
    return value


class PostgresWorkflowRepository(WorkflowRepository):
    """Persist workflow runs using PostgreSQL."""

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
                run_id TEXT PRIMARY KEY,
                workflow TEXT NOT NULL,
                subject_id TEXT NOT NULL,
                started_at TIMESTAMPTZ NOT NULL,
                completed_at TIMESTAMPTZ,
                overall_status TEXT NOT NULL,
                summary JSONB,
                recommendations JSONB
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS step_outcomes (
                id SERIAL,
                run_id TEXT NOT NULL REFERENCES workflow_runs (run_id),
                step_name TEXT NOT NULL,
                status TEXT NOT NULL,
                result JSONB,
                error TEXT,
                recorded_at TIMESTAMPTZ NOT NULL,
                PRIMARY KEY (run_id, step_name)
            )
            """
        )

    async def _load(self, conn: asyncpg.Connection, row: asyncpg.Record) -> WorkflowRun:
        step_rows = await conn.fetch(
            "SELECT step_name, status, result, error FROM step_outcomes WHERE run_id = $1 ORDER BY id",
            row["run_id"],
        )
        summary = _json(row["summary"])
        return WorkflowRun(
            run_id=row["run_id"],
            workflow=row["workflow"],
            subject_id=row["subject_id"],
            started_at=row["started_at"],
            completed_at=row["completed_at"],
            overall_status=row["overall_status"],
            summary=RunSummary.model_validate(summary) if summary else None,
            recommendations=_json(row["recommendations"]) or [],
            steps={
                r["step_name"]: StepOutcome(
                    status=r["status"], result=_json(r["result"]), error=r["error"]
                )
                for r in step_rows
            },
        )

    # ------------------------------------------------------------------
    async def create_run(
        self, subject_id: str, workflow: str, run_id: Optional[str] = None
    ) -> str:
        run_id = run_id or str(uuid.uuid4())
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO workflow_runs (run_id, workflow, subject_id, started_at, overall_status) VALUES ($1, $2, $3, $4, $5)",
                run_id,
                workflow,
                subject_id,
                utcnow(),
                "pending",
            )
        finally:
            await conn.close()
        return run_id

    async def record_step(
        self, run_id: str, step_name: str, outcome: StepOutcome
    ) -> None:
        payload = outcome.model_dump(mode="json")
        conn = await self._connect()
        try:
            exists = await conn.fetchval(
                "SELECT 1 FROM workflow_runs WHERE run_id = $1", run_id
            )
            if not exists:
                raise NotFound(f"Workflow run {run_id} not found")
            await conn.execute(
                """
                INSERT INTO step_outcomes (run_id, step_name, status, result, error, recorded_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT (run_id, step_name) DO UPDATE SET
                    status = EXCLUDED.status,
                    result = EXCLUDED.result,
                    error = EXCLUDED.error,
                    recorded_at = EXCLUDED.recorded_at
                """,
                run_id,
                step_name,
                payload["status"],
                json.dumps(payload["result"]) if payload["result"] is not None else None,
                payload["error"],
                utcnow(),
            )
        finally:
            await conn.close()

    async def finalize(
        self,
        run_id: str,
        overall_status: OverallStatus,
        summary: RunSummary,
        recommendations: list[str],
    ) -> None:
        conn = await self._connect()
        try:
            status = await conn.execute(
                """
                UPDATE workflow_runs
                SET overall_status = $1, summary = $2, recommendations = $3,
                    completed_at = COALESCE(completed_at, $4)
                WHERE run_id = $5
                """,
                overall_status,
                summary.model_dump_json(),
                json.dumps(recommendations),
                utcnow(),
                run_id,
            )
        finally:
            await conn.close()
        if status.endswith(" 0"):
            raise NotFound(f"Workflow run {run_id} not found")

    async def get_run(self, run_id: str) -> WorkflowRun:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                f"SELECT {_RUN_COLUMNS} FROM workflow_runs WHERE run_id = $1",
                run_id,
            )
            if not row:
                raise NotFound(f"Workflow run {run_id} not found")
            return await self._load(conn, row)
        finally:
            await conn.close()

    async def latest_run(self, subject_id: str, workflow: str) -> WorkflowRun:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                f"""
                SELECT {_RUN_COLUMNS} FROM workflow_runs
                WHERE subject_id = $1 AND workflow = $2
                ORDER BY started_at DESC
                LIMIT 1
                """,
                subject_id,
                workflow,
            )
            if not row:
                raise NotFound(f"No {workflow} run found for driver {subject_id}")
            return await self._load(conn, row)
        finally:
            await conn.close()

    async def list_runs(self, subject_id: Optional[str] = None) -> list[WorkflowRun]:
        conn = await self._connect()
        try:
            if subject_id is None:
                rows = await conn.fetch(
                    f"SELECT {_RUN_COLUMNS} FROM workflow_runs ORDER BY started_at"
                )
            else:
                rows = await conn.fetch(
                    f"SELECT {_RUN_COLUMNS} FROM workflow_runs WHERE subject_id = $1 ORDER BY started_at",
                    subject_id,
                )
            return [await self._load(conn, row) for row in rows]
        finally:
            await conn.close()
