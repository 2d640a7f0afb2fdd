import pytest

from driverflow.config import DriverflowConfig
from driverflow.exceptions import UnknownStep
from driverflow.registry import (
    StepDefinition,
    WorkflowRegistry,
    build_registries,
    has_business,
    has_policy_number,
    has_vin,
)


def test_insurance_schedule_follows_subject_data(subject, subjects):
    registries = build_registries(DriverflowConfig(), subjects)
    insurance = registries["insurance"]

    scheduled = [step.name for step in insurance.applicable(subject)]

    assert scheduled == ["policy", "driver", "vehicle"]
    assert "commercial" in insurance


def test_insurance_schedule_with_business_and_no_policy(subject_factory, subjects):
    from driverflow.contracts import BusinessInfo

    subject = subject_factory(
        insurance_info=None,
        vehicle_info=None,
        business_info=BusinessInfo(business_name="Doe Logistics"),
    )
    insurance = build_registries(DriverflowConfig(), subjects)["insurance"]
    assert [step.name for step in insurance.applicable(subject)] == ["driver", "commercial"]


def test_credit_check_gated_by_config(subject, subjects):
    config = DriverflowConfig()
    background = build_registries(config, subjects)["background_check"]
    assert [s.name for s in background.applicable(subject)] == [
        "criminal",
        "driving",
        "employment",
    ]

    config.background_check.enable_credit_check = True
    background = build_registries(config, subjects)["background_check"]
    assert "credit" in [s.name for s in background.applicable(subject)]


def test_onboarding_steps(subject, subjects):
    onboarding = build_registries(DriverflowConfig(), subjects)["onboarding"]
    assert list(onboarding) == [
        "backgroundCheck",
        "insuranceVerification",
        "payment",
        "documentStorage",
        "databaseUpdate",
    ]
    assert len(onboarding.applicable(subject)) == 5


def test_registry_is_read_only(fake_provider):
    registry = WorkflowRegistry("demo", [StepDefinition("a", fake_provider("a"))])
    with pytest.raises(TypeError):
        registry.steps["b"] = StepDefinition("b", fake_provider("b"))
    assert len(registry) == 1


def test_registry_rejects_duplicates(fake_provider):
    with pytest.raises(ValueError, match="Duplicate step a"):
        WorkflowRegistry(
            "demo",
            [StepDefinition("a", fake_provider("a")), StepDefinition("a", fake_provider("a"))],
        )


def test_unknown_step_lists_known_names(fake_provider):
    registry = WorkflowRegistry(
        "demo", [StepDefinition("a", fake_provider("a")), StepDefinition("b", fake_provider("b"))]
    )
    with pytest.raises(UnknownStep) as exc_info:
        registry.get("zzz")
    assert exc_info.value.step_name == "zzz"
    assert "expected one of: a, b" in str(exc_info.value)


def test_applicability_predicates(subject, business_subject, subject_factory):
    assert has_policy_number(subject)
    assert has_vin(subject)
    assert not has_business(subject)
    assert has_business(business_subject)
    bare = subject_factory(insurance_info=None, vehicle_info=None)
    assert not has_policy_number(bare)
    assert not has_vin(bare)


@pytest.mark.asyncio
async def test_step_definition_accepts_sync_providers(subject):
    class SyncProvider:
        name = "sync"

        def invoke(self, subject):
            return {"id": subject.id}

    step = StepDefinition("sync", SyncProvider())
    assert await step.invoke(subject) == {"id": subject.id}
