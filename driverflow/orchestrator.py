"""Workflow orchestration: start runs, report status and retry single steps."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from .aggregate import aggregate
from .config import DriverflowConfig, load_config
from .constants import ONBOARDING_WORKFLOW
from .contracts import StepOutcome, WorkflowRun
from .exceptions import NotFound, UnknownStep
from .execute import FanOutExecutor
from .persistence import WorkflowRepository, get_repository
from .registry import WorkflowRegistry, build_registries
from .subjects import SubjectSource, get_subject_source

logger = logging.getLogger(__name__)


class OnboardingOrchestrator:
    """Coordinates fan-out, aggregation, persistence and per-step retry."""

    def __init__(
        self,
        subjects: SubjectSource,
        repository: WorkflowRepository,
        config: Optional[DriverflowConfig] = None,
        registries: Optional[Dict[str, WorkflowRegistry]] = None,
        executor: Optional[FanOutExecutor] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._subjects = subjects
        self._repository = repository
        self.config = config or load_config()
        self.registries = registries or build_registries(
            self.config, subjects, transport
        )
        self._executor = executor or FanOutExecutor()

    def registry(self, workflow: str) -> WorkflowRegistry:
        try:
            return self.registries[workflow]
        except KeyError:
            raise ValueError(f"Unsupported workflow: {workflow}") from None

    async def start(
        self, subject_id: str, workflow: str = ONBOARDING_WORKFLOW
    ) -> WorkflowRun:
        """Run every applicable step of ``workflow`` for a driver.

        Step failures are recorded, never raised; only setup errors (unknown
        driver, unavailable store) propagate.
        """
        registry = self.registry(workflow)
        try:
            subject = await self._subjects.get_subject(subject_id)
        except NotFound:
            logger.error(f"Cannot start {workflow} run: driver {subject_id} not found")
            raise
        run_id = await self._repository.create_run(subject.id, workflow)
        logger.info(f"Started {workflow} run {run_id} for subject={subject.id}")

        async def _record(step_name: str, outcome: StepOutcome) -> None:
            await self._repository.record_step(run_id, step_name, outcome)

        steps = await self._executor.run(subject, registry, on_outcome=_record)
        result = aggregate(workflow, steps)
        await self._repository.finalize(
            run_id, result.overall_status, result.summary, result.recommendations
        )
        logger.info(
            f"Finished {workflow} run {run_id} for subject={subject.id}: {result.overall_status}"
        )
        return await self._repository.get_run(run_id)

    async def status(
        self, subject_id: str, workflow: str = ONBOARDING_WORKFLOW
    ) -> WorkflowRun:
        """Latest run of ``workflow`` for a driver."""
        self.registry(workflow)
        return await self._repository.latest_run(subject_id, workflow)

    async def retry_step(
        self, subject_id: str, step_name: str, workflow: str = ONBOARDING_WORKFLOW
    ) -> StepOutcome:
        """Re-run one step of the driver's latest run against fresh data.

        Only that step's stored outcome is replaced; the summary is recomputed
        while ``started_at`` and ``completed_at`` stay untouched. Adapter
        failures come back as a ``failed`` outcome.
        """
        registry = self.registry(workflow)
        step = registry.get(step_name)
        run = await self._repository.latest_run(subject_id, workflow)
        if step_name not in run.steps:
            raise UnknownStep(step_name, workflow, run.steps)

        subject = await self._subjects.get_subject(subject_id)
        logger.info(f"Retrying {step_name} of run {run.run_id} for subject={subject_id}")
        _, outcome = await self._executor.run_step(step, subject)
        await self._repository.record_step(run.run_id, step_name, outcome)

        refreshed = await self._repository.get_run(run.run_id)
        result = aggregate(workflow, refreshed.steps)
        await self._repository.finalize(
            run.run_id, result.overall_status, result.summary, result.recommendations
        )
        return outcome


def build_orchestrator(config: Optional[DriverflowConfig] = None) -> OnboardingOrchestrator:
    """Wire an orchestrator from configuration."""
    config = config or load_config()
    subjects = get_subject_source()
    repository = get_repository()
    return OnboardingOrchestrator(subjects, repository, config=config)
