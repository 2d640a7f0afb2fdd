"""Repository abstraction for workflow run persistence."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import OverallStatus, RunSummary, StepOutcome, WorkflowRun


class WorkflowRepository(Protocol):
    """Protocol for workflow state persistence backends.

    Step outcomes are stored per ``(run_id, step_name)`` so writes to
    different steps of the same run never interfere.
    """

    async def create_run(
        self, subject_id: str, workflow: str, run_id: Optional[str] = None
    ) -> str:
        """Persist a new pending run and return its id."""

    async def record_step(
        self, run_id: str, step_name: str, outcome: StepOutcome
    ) -> None:
        """Insert or replace the outcome of one step."""

    async def finalize(
        self,
        run_id: str,
        overall_status: OverallStatus,
        summary: RunSummary,
        recommendations: list[str],
    ) -> None:
        """Store the derived status; ``completed_at`` is only set once."""

    async def get_run(self, run_id: str) -> WorkflowRun:
        """Retrieve a run by id or raise ``NotFound``."""

    async def latest_run(self, subject_id: str, workflow: str) -> WorkflowRun:
        """Most recently started run of ``workflow`` for ``subject_id``."""

    async def list_runs(self, subject_id: Optional[str] = None) -> list[WorkflowRun]:
        """Return persisted runs, optionally for one subject."""
