"""Provider that runs a whole verification workflow as a single step."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..aggregate import aggregate
from ..contracts import Subject, utcnow
from ..execute import FanOutExecutor

if TYPE_CHECKING:
    from ..registry import WorkflowRegistry


class SubWorkflowProvider:
    """Fan out over a nested registry and return its aggregated view.

    The parent step completes even when nested checks fail; the nested
    summary carries the detail.
    """

    def __init__(
        self,
        registry: "WorkflowRegistry",
        executor: Optional[FanOutExecutor] = None,
        result_key: str = "steps",
    ) -> None:
        self.registry = registry
        self.result_key = result_key
        self.name = registry.name
        self._executor = executor or FanOutExecutor()

    async def invoke(self, subject: Subject) -> dict:
        started_at = utcnow()
        steps = await self._executor.run(subject, self.registry)
        result = aggregate(self.registry.name, steps)
        return {
            "workflow": self.registry.name,
            "subjectId": subject.id,
            "startedAt": started_at.isoformat(),
            "completedAt": utcnow().isoformat(),
            self.result_key: {
                name: outcome.model_dump(mode="json", exclude_none=True)
                for name, outcome in steps.items()
            },
            "overallStatus": result.overall_status,
            "summary": result.summary.model_dump(
                mode="json", by_alias=True, exclude_none=True
            ),
        }
