import asyncio
from typing import Any, Optional

import pytest

from driverflow.contracts import (
    Address,
    BusinessInfo,
    DriverInfo,
    EmploymentInfo,
    InsuranceInfo,
    PersonalInfo,
    Subject,
    VehicleInfo,
)
import driverflow.persistence as persistence
import driverflow.subjects as subjects_module
from driverflow.persistence import InMemoryWorkflowRepository
from driverflow.subjects import InMemorySubjectSource


class FakeProvider:
    """Step provider returning a canned result or raising a canned error."""

    def __init__(
        self,
        name: str,
        result: Any = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.name = name
        self.result = result if result is not None else {"ok": True}
        self.error = error
        self.delay = delay
        self.calls = 0
        self.seen: list[Subject] = []

    async def invoke(self, subject: Subject) -> Any:
        self.calls += 1
        self.seen.append(subject)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def make_subject(subject_id: str = "driver-1", **overrides: Any) -> Subject:
    data = dict(
        id=subject_id,
        email="jane@example.com",
        phone_number="+15551234567",
        personal_info=PersonalInfo(
            first_name="Jane",
            last_name="Doe",
            date_of_birth="1990-04-01",
            ssn="123-45-6789",
            state="CA",
            addresses=[
                Address(street="1 Main St", city="Fresno", state="CA", zip_code="93701")
            ],
        ),
        driver_info=DriverInfo(driver_license_number="D1234567", state="CA"),
        employment_info=EmploymentInfo(employer_name="Acme Freight", position="Driver"),
        vehicle_info=VehicleInfo(vin="1HGCM82633A004352", make="Honda", model="Accord", year=2020),
        insurance_info=InsuranceInfo(policy_number="POL-1", insurance_company="GEICO"),
    )
    data.update(overrides)
    return Subject(**data)


@pytest.fixture
def subject() -> Subject:
    return make_subject()


@pytest.fixture
def business_subject() -> Subject:
    return make_subject(
        "driver-2",
        business_info=BusinessInfo(
            business_name="Doe Logistics", business_type="LLC", ein="12-3456789"
        ),
    )


@pytest.fixture
def subjects(subject) -> InMemorySubjectSource:
    return InMemorySubjectSource({subject.id: subject})


@pytest.fixture
def repo() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep host credentials, config files and store files out of tests."""
    for var in (
        "DRIVERFLOW_CONFIG",
        "DRIVERFLOW_DATABASE_URL",
        "DATABASE_URL",
        "DRIVERFLOW_SUBJECTS_URL",
        "STRIPE_SECRET_KEY",
        "FIREBASE_STORAGE_BUCKET",
        "GCS_ACCESS_TOKEN",
        "ENABLE_CREDIT_CHECK",
        "CRIMINAL_CHECK_API_KEY",
        "DRIVING_RECORD_API_KEY",
        "EMPLOYMENT_VERIFICATION_API_KEY",
        "CREDIT_CHECK_API_KEY",
        "VERISK_API_KEY",
        "LEXISNEXIS_API_KEY",
        "PROGRESSIVE_API_KEY",
        "GEICO_API_KEY",
        "STATEFARM_API_KEY",
        "ALLSTATE_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DRIVERFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    # default sqlite files land in the per-test directory
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(persistence, "_repository_instance", None)
    monkeypatch.setattr(subjects_module, "_source_instance", None)


@pytest.fixture
def subject_factory():
    return make_subject


@pytest.fixture
def fake_provider():
    return FakeProvider
