"""In-memory implementation of the workflow repository."""

from __future__ import annotations

import uuid
from typing import Dict, Optional

from ..contracts import OverallStatus, RunSummary, StepOutcome, WorkflowRun, utcnow
from ..exceptions import NotFound
from .repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflow runs in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._runs: Dict[str, WorkflowRun] = {}

    def _run(self, run_id: str) -> WorkflowRun:
        run = self._runs.get(run_id)
        if run is None:
            raise NotFound(f"Workflow run {run_id} not found")
        return run

    # ------------------------------------------------------------------
    async def create_run(
        self, subject_id: str, workflow: str, run_id: Optional[str] = None
    ) -> str:
        run_id = run_id or str(uuid.uuid4())
        self._runs[run_id] = WorkflowRun(
            run_id=run_id, workflow=workflow, subject_id=subject_id
        )
        return run_id

    async def record_step(
        self, run_id: str, step_name: str, outcome: StepOutcome
    ) -> None:
        self._run(run_id).steps[step_name] = outcome

    async def finalize(
        self,
        run_id: str,
        overall_status: OverallStatus,
        summary: RunSummary,
        recommendations: list[str],
    ) -> None:
        run = self._run(run_id)
        run.overall_status = overall_status
        run.summary = summary.model_copy(deep=True)
        run.recommendations = list(recommendations)
        if run.completed_at is None:
            run.completed_at = utcnow()

    async def get_run(self, run_id: str) -> WorkflowRun:
        return self._run(run_id).model_copy(deep=True)

    async def latest_run(self, subject_id: str, workflow: str) -> WorkflowRun:
        # dicts keep insertion order, so the last match is the newest run
        matches = [
            run
            for run in self._runs.values()
            if run.subject_id == subject_id and run.workflow == workflow
        ]
        if not matches:
            raise NotFound(f"No {workflow} run found for driver {subject_id}")
        return matches[-1].model_copy(deep=True)

    async def list_runs(self, subject_id: Optional[str] = None) -> list[WorkflowRun]:
        return [
            run.model_copy(deep=True)
            for run in self._runs.values()
            if subject_id is None or run.subject_id == subject_id
        ]
