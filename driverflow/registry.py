"""Step registries binding workflow step names to provider adapters."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

import httpx

from .config import DriverflowConfig
from .constants import (
    BACKGROUND_CHECK_WORKFLOW,
    INSURANCE_WORKFLOW,
    ONBOARDING_WORKFLOW,
)
from .contracts import Subject
from .exceptions import UnknownStep
from .providers import (
    CommercialInsuranceProvider,
    CreditCheckProvider,
    CriminalCheckProvider,
    DocumentStorageProvider,
    DriverInsuranceSearchProvider,
    DrivingRecordProvider,
    EmploymentVerificationProvider,
    PaymentProvider,
    PolicyVerificationProvider,
    ProfileSyncProvider,
    StepProvider,
    SubWorkflowProvider,
    VehicleInsuranceProvider,
)
from .subjects import SubjectSource

Applicability = Callable[[Subject], bool]


def always(subject: Subject) -> bool:
    return True


def has_policy_number(subject: Subject) -> bool:
    return bool(subject.insurance_info and subject.insurance_info.policy_number)


def has_vin(subject: Subject) -> bool:
    return bool(subject.vehicle_info and subject.vehicle_info.vin)


def has_business(subject: Subject) -> bool:
    return bool(subject.business_info and subject.business_info.business_name)


@dataclass(frozen=True)
class StepDefinition:
    """One named step bound to exactly one provider."""

    name: str
    provider: StepProvider
    is_applicable: Applicability = always

    async def invoke(self, subject: Subject) -> Any:
        result = self.provider.invoke(subject)
        if inspect.isawaitable(result):
            result = await result
        return result


class WorkflowRegistry:
    """Read-only mapping of step name to definition for one workflow."""

    def __init__(self, name: str, steps: Iterable[StepDefinition]) -> None:
        table: Dict[str, StepDefinition] = {}
        for step in steps:
            if step.name in table:
                raise ValueError(f"Duplicate step {step.name} in workflow {name}")
            table[step.name] = step
        self.name = name
        self._steps = MappingProxyType(table)

    @property
    def steps(self) -> Mapping[str, StepDefinition]:
        return self._steps

    def __contains__(self, step_name: object) -> bool:
        return step_name in self._steps

    def __iter__(self) -> Iterator[str]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def get(self, step_name: str) -> StepDefinition:
        try:
            return self._steps[step_name]
        except KeyError:
            raise UnknownStep(step_name, self.name, self._steps) from None

    def applicable(self, subject: Subject) -> List[StepDefinition]:
        """Steps scheduled for ``subject``, in registration order."""
        return [step for step in self._steps.values() if step.is_applicable(subject)]


def background_check_registry(
    config: DriverflowConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> WorkflowRegistry:
    checks = config.background_check
    credit_enabled = checks.enable_credit_check
    return WorkflowRegistry(
        BACKGROUND_CHECK_WORKFLOW,
        [
            StepDefinition("criminal", CriminalCheckProvider(checks.criminal, transport)),
            StepDefinition("driving", DrivingRecordProvider(checks.driving, transport)),
            StepDefinition(
                "employment",
                EmploymentVerificationProvider(checks.employment, transport),
            ),
            StepDefinition(
                "credit",
                CreditCheckProvider(checks.credit, transport),
                lambda subject: credit_enabled,
            ),
        ],
    )


def insurance_registry(
    config: DriverflowConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> WorkflowRegistry:
    insurance = config.insurance
    return WorkflowRegistry(
        INSURANCE_WORKFLOW,
        [
            StepDefinition(
                "policy",
                PolicyVerificationProvider(insurance.carriers, transport),
                has_policy_number,
            ),
            StepDefinition(
                "driver", DriverInsuranceSearchProvider(insurance.verisk, transport)
            ),
            StepDefinition(
                "vehicle",
                VehicleInsuranceProvider(insurance.lexisnexis, transport),
                has_vin,
            ),
            StepDefinition(
                "commercial",
                CommercialInsuranceProvider(insurance.verisk, transport),
                has_business,
            ),
        ],
    )


def onboarding_registry(
    config: DriverflowConfig,
    subjects: SubjectSource,
    background: WorkflowRegistry,
    insurance: WorkflowRegistry,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> WorkflowRegistry:
    return WorkflowRegistry(
        ONBOARDING_WORKFLOW,
        [
            StepDefinition(
                "backgroundCheck", SubWorkflowProvider(background, result_key="checks")
            ),
            StepDefinition(
                "insuranceVerification",
                SubWorkflowProvider(insurance, result_key="verifications"),
            ),
            StepDefinition("payment", PaymentProvider(config.payment, transport)),
            StepDefinition(
                "documentStorage", DocumentStorageProvider(config.storage, transport)
            ),
            StepDefinition("databaseUpdate", ProfileSyncProvider(subjects)),
        ],
    )


def build_registries(
    config: DriverflowConfig,
    subjects: SubjectSource,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, WorkflowRegistry]:
    """Create every workflow registry, keyed by workflow name."""
    background = background_check_registry(config, transport)
    insurance = insurance_registry(config, transport)
    onboarding = onboarding_registry(config, subjects, background, insurance, transport)
    return {
        ONBOARDING_WORKFLOW: onboarding,
        BACKGROUND_CHECK_WORKFLOW: background,
        INSURANCE_WORKFLOW: insurance,
    }
