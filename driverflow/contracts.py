"""Core data contracts for driverflow onboarding workflows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


StepStatus = Literal["completed", "failed"]
OverallStatus = Literal["pending", "completed", "partial", "failed"]
DocumentKind = Literal[
    "profile_photo", "driver_license", "insurance_certificate", "additional_document"
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "US"
    from_date: Optional[str] = None
    to_date: Optional[str] = None


class PersonalInfo(BaseModel):
    """Identity details used by the background and insurance checks."""

    first_name: str
    last_name: str
    date_of_birth: Optional[str] = None
    ssn: Optional[str] = None
    state: Optional[str] = None
    addresses: List[Address] = Field(default_factory=list)


class DriverInfo(BaseModel):
    driver_license_number: Optional[str] = None
    state: Optional[str] = None
    license_class: Optional[str] = None


class EmploymentInfo(BaseModel):
    employer_name: Optional[str] = None
    employer_phone: Optional[str] = None
    position: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class VehicleInfo(BaseModel):
    vin: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    license_plate: Optional[str] = None
    state: Optional[str] = None
    vehicle_type: Optional[str] = None


class BusinessInfo(BaseModel):
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    ein: Optional[str] = None
    address: Optional[Address] = None


class InsuranceInfo(BaseModel):
    policy_number: Optional[str] = None
    insurance_company: Optional[str] = None
    effective_date: Optional[str] = None
    expiration_date: Optional[str] = None


class DocumentFile(BaseModel):
    """A driver document waiting on local disk to be pushed to storage."""

    kind: DocumentKind
    file_name: str
    content_type: str = "application/octet-stream"
    path: str


class Subject(BaseModel):
    """The driver being onboarded.

    Supplied by the subject source; workflows only read it.
    """

    id: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    role: str = "driver"
    status: Optional[str] = None
    personal_info: PersonalInfo
    driver_info: DriverInfo = Field(default_factory=DriverInfo)
    employment_info: EmploymentInfo = Field(default_factory=EmploymentInfo)
    vehicle_info: Optional[VehicleInfo] = None
    business_info: Optional[BusinessInfo] = None
    insurance_info: Optional[InsuranceInfo] = None
    subscription_plan: str = "BASIC"
    payment_customer_id: Optional[str] = None
    documents: List[DocumentFile] = Field(default_factory=list)


class StepOutcome(BaseModel):
    """Result of one step. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    status: StepStatus
    result: Optional[Any] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_payload(self) -> "StepOutcome":
        if self.status == "completed" and self.error is not None:
            raise ValueError("completed outcomes cannot carry an error")
        if self.status == "failed" and (self.error is None or self.result is not None):
            raise ValueError("failed outcomes carry an error and no result")
        return self

    @classmethod
    def success(cls, result: Any) -> "StepOutcome":
        return cls(status="completed", result=result)

    @classmethod
    def failure(cls, error: str) -> "StepOutcome":
        return cls(status="failed", error=error or "Unknown error")

    @property
    def completed(self) -> bool:
        return self.status == "completed"


class RunSummary(BaseModel):
    """Derived view of a run's step outcomes.

    Only the fields relevant to the run's workflow are populated.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_steps: int = 0
    completed_steps: int = 0
    failed_steps: int = 0
    pending_steps: int = 0
    risk_level: Optional[Literal["low", "medium", "high"]] = None
    coverage_status: Optional[
        Literal["adequate", "insufficient", "expired", "unknown"]
    ] = None
    estimated_completion: Optional[str] = None
    flags: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class Aggregate(BaseModel):
    overall_status: OverallStatus
    summary: RunSummary
    recommendations: List[str] = Field(default_factory=list)


class WorkflowRun(BaseModel):
    """One execution of a workflow for a subject."""

    run_id: str
    workflow: str
    subject_id: str
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    steps: Dict[str, StepOutcome] = Field(default_factory=dict)
    overall_status: OverallStatus = "pending"
    summary: Optional[RunSummary] = None
    recommendations: List[str] = Field(default_factory=list)
