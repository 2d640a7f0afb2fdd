"""Insurance verification providers."""

from __future__ import annotations

from typing import Dict, Optional

import httpx

from ..config import ProviderConfig
from ..contracts import Subject, VehicleInfo
from ..exceptions import ProviderError
from ..utils.masking import mask_ein
from .base import BaseProvider, timestamp

CARRIER_DISPLAY_NAMES = {
    "progressive": "Progressive",
    "geico": "GEICO",
    "statefarm": "State Farm",
    "allstate": "Allstate",
}


def _driver_payload(subject: Subject) -> dict:
    return {
        "firstName": subject.personal_info.first_name,
        "lastName": subject.personal_info.last_name,
        "dateOfBirth": subject.personal_info.date_of_birth,
        "driverLicenseNumber": subject.driver_info.driver_license_number,
        "state": subject.driver_info.state or subject.personal_info.state,
    }


def _vehicle_payload(vehicle: Optional[VehicleInfo]) -> Optional[dict]:
    if vehicle is None:
        return None
    return {
        "vin": vehicle.vin,
        "make": vehicle.make,
        "model": vehicle.model,
        "year": vehicle.year,
    }


class PolicyVerificationProvider(BaseProvider):
    """Verify a policy number directly with the carrier that issued it."""

    name = "policy_verification"
    label = "Insurance verification"

    def __init__(
        self,
        carriers: Dict[str, ProviderConfig],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(ProviderConfig(base_url=""), transport=transport)
        self.carriers = {key.lower(): value for key, value in carriers.items()}

    def build_request(self, subject: Subject) -> dict:
        insurance = subject.insurance_info
        return {
            "insuranceCompany": insurance.insurance_company if insurance else None,
            "policyNumber": insurance.policy_number if insurance else None,
            "driverInfo": _driver_payload(subject),
            "verificationType": "policy_verification",
        }

    async def call(self, request: dict) -> dict:
        request = dict(request)
        company = request.pop("insuranceCompany", None) or ""
        carrier = self.carriers.get(company.lower())
        if carrier is None:
            raise ProviderError(
                f"Insurance company {company or '(none)'} not supported",
                provider=self.name,
            )
        data = await self._post_json(carrier, "/v1/insurance/verify", request)
        return {
            "verificationId": data.get("verificationId"),
            "status": data.get("status"),
            "policyDetails": data.get("policyDetails"),
            "coverage": data.get("coverage"),
            "driverInfo": data.get("driverInfo"),
            "verificationDate": timestamp(),
            "provider": company,
            "apiProvider": CARRIER_DISPLAY_NAMES.get(company.lower(), "Unknown"),
        }


class DriverInsuranceSearchProvider(BaseProvider):
    """Broad aggregator search for any policy covering the driver."""

    name = "verisk"
    label = "Insurance verification"

    def build_request(self, subject: Subject) -> dict:
        return {
            "driverInfo": _driver_payload(subject),
            "vehicleInfo": _vehicle_payload(subject.vehicle_info),
            "searchType": "comprehensive",
            "includeExpired": False,
            "includeCancelled": False,
        }

    async def call(self, request: dict) -> dict:
        data = await self._post_json(self.config, "/v1/insurance/search", request)
        policies = data.get("policies") or []
        return {
            "verificationId": data.get("verificationId"),
            "status": data.get("status"),
            "policies": policies,
            "activePolicies": [p for p in policies if p.get("status") == "active"],
            "verificationDate": timestamp(),
            "provider": "verisk",
            "apiProvider": "Verisk",
        }


class VehicleInsuranceProvider(BaseProvider):
    name = "lexisnexis"
    label = "Vehicle insurance verification"

    def build_request(self, subject: Subject) -> dict:
        vehicle = subject.vehicle_info or VehicleInfo()
        return {
            "vehicleInfo": {
                "vin": vehicle.vin,
                "make": vehicle.make,
                "model": vehicle.model,
                "year": vehicle.year,
                "licensePlate": vehicle.license_plate,
                "state": vehicle.state,
            },
            "verificationType": "vehicle_coverage",
            "includeOwnerInfo": True,
            "includeLienholderInfo": True,
        }

    async def call(self, request: dict) -> dict:
        data = await self._post_json(self.config, "/v1/vehicle/insurance", request)
        return {
            "verificationId": data.get("verificationId"),
            "status": data.get("status"),
            "vehicleInfo": data.get("vehicleInfo"),
            "insuranceInfo": data.get("insuranceInfo"),
            "ownerInfo": data.get("ownerInfo"),
            "verificationDate": timestamp(),
            "provider": "lexisnexis",
            "apiProvider": "LexisNexis",
        }


class CommercialInsuranceProvider(BaseProvider):
    name = "verisk_commercial"
    label = "Commercial insurance verification"

    def build_request(self, subject: Subject) -> dict:
        business = subject.business_info
        vehicle = subject.vehicle_info
        address = business.address if business else None
        return {
            "businessInfo": {
                "businessName": business.business_name if business else None,
                "businessType": business.business_type if business else None,
                "ein": mask_ein(business.ein) if business else None,
                "address": address.model_dump() if address else None,
            },
            "driverInfo": {**_driver_payload(subject), "role": subject.role or "employee"},
            "vehicleInfo": {
                **_vehicle_payload(vehicle),
                "vehicleType": vehicle.vehicle_type or "commercial",
            }
            if vehicle
            else None,
            "verificationType": "commercial_insurance",
            "includeLiability": True,
            "includeWorkersComp": True,
        }

    async def call(self, request: dict) -> dict:
        data = await self._post_json(self.config, "/v1/commercial/insurance", request)
        return {
            "verificationId": data.get("verificationId"),
            "status": data.get("status"),
            "businessInfo": data.get("businessInfo"),
            "insuranceInfo": data.get("insuranceInfo"),
            "coverage": data.get("coverage"),
            "verificationDate": timestamp(),
            "provider": "verisk",
            "apiProvider": "Verisk",
        }
