"""Provider adapters for external verification, payment and storage APIs."""

from .background import (
    CreditCheckProvider,
    CriminalCheckProvider,
    DrivingRecordProvider,
    EmploymentVerificationProvider,
)
from .base import BaseProvider, StepProvider
from .insurance import (
    CommercialInsuranceProvider,
    DriverInsuranceSearchProvider,
    PolicyVerificationProvider,
    VehicleInsuranceProvider,
)
from .payment import PaymentProvider
from .profile import ProfileSyncProvider
from .storage import DocumentStorageProvider
from .workflow import SubWorkflowProvider

__all__ = [
    "BaseProvider",
    "StepProvider",
    "CriminalCheckProvider",
    "DrivingRecordProvider",
    "EmploymentVerificationProvider",
    "CreditCheckProvider",
    "PolicyVerificationProvider",
    "DriverInsuranceSearchProvider",
    "VehicleInsuranceProvider",
    "CommercialInsuranceProvider",
    "PaymentProvider",
    "DocumentStorageProvider",
    "ProfileSyncProvider",
    "SubWorkflowProvider",
]
