"""Driverflow: concurrent driver onboarding workflows with durable step state."""

from .aggregate import aggregate
from .config import load_config
from .contracts import RunSummary, StepOutcome, Subject, WorkflowRun
from .execute import FanOutExecutor
from .orchestrator import OnboardingOrchestrator, build_orchestrator
from .persistence import get_repository
from .registry import StepDefinition, WorkflowRegistry, build_registries
from .subjects import get_subject_source

__version__ = "0.1.0"
__all__ = [
    "FanOutExecutor",
    "OnboardingOrchestrator",
    "RunSummary",
    "StepDefinition",
    "StepOutcome",
    "Subject",
    "WorkflowRegistry",
    "WorkflowRun",
    "aggregate",
    "build_orchestrator",
    "build_registries",
    "get_repository",
    "get_subject_source",
    "load_config",
]
