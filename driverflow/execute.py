"""Concurrent step execution for driverflow workflows."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional, Tuple

from .contracts import StepOutcome, Subject

if TYPE_CHECKING:
    from .registry import StepDefinition, WorkflowRegistry

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[str, StepOutcome], Awaitable[None]]


class FanOutExecutor:
    """Runs every applicable step of a registry concurrently.

    Each step is isolated: an exception raised by one adapter becomes a
    ``failed`` outcome for that step only. The executor waits for all steps to
    settle and imposes no timeout of its own; adapters bound their calls.
    """

    async def run_step(
        self, step: StepDefinition, subject: Subject
    ) -> Tuple[str, StepOutcome]:
        """Invoke ``step`` and capture its outcome together with its name."""
        try:
            result = await step.invoke(subject)
        except Exception as e:
            reason = str(e) or e.__class__.__name__
            logger.warning(f"Step {step.name} failed for subject={subject.id}: {reason}")
            return step.name, StepOutcome.failure(reason)
        logger.info(f"Step {step.name} completed for subject={subject.id}")
        return step.name, StepOutcome.success(result)

    async def run(
        self,
        subject: Subject,
        registry: WorkflowRegistry,
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> Dict[str, StepOutcome]:
        """Fan out over ``registry`` for ``subject`` and join all steps.

        Args:
            subject: Driver record the steps read from.
            registry: Workflow whose applicable steps are scheduled.
            on_outcome: Optional coroutine awaited as each step settles,
                typically used to persist the outcome.

        Returns:
            Mapping of every scheduled step name to its outcome.
        """
        scheduled = registry.applicable(subject)
        logger.info(
            f"Scheduling {len(scheduled)} {registry.name} steps for subject={subject.id}: "
            f"{[step.name for step in scheduled]}"
        )

        async def _settle(step: StepDefinition) -> Tuple[str, StepOutcome]:
            name, outcome = await self.run_step(step, subject)
            if on_outcome is not None:
                await on_outcome(name, outcome)
            return name, outcome

        settled = await asyncio.gather(*(_settle(step) for step in scheduled))
        return dict(settled)
