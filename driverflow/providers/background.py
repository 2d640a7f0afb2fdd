"""Background check providers: criminal, driving record, employment, credit."""

from __future__ import annotations

from ..contracts import Subject
from ..utils.masking import mask_ssn
from .base import BaseProvider, timestamp


def _check_result(data: dict, summary: dict, provider: str) -> dict:
    return {
        "checkId": data.get("checkId"),
        "status": data.get("status"),
        "results": data.get("results"),
        "summary": summary,
        "completedAt": timestamp(),
        "provider": provider,
    }


class CriminalCheckProvider(BaseProvider):
    name = "criminal_check_api"
    label = "Criminal background check"

    def build_request(self, subject: Subject) -> dict:
        info = subject.personal_info
        return {
            "firstName": info.first_name,
            "lastName": info.last_name,
            "dateOfBirth": info.date_of_birth,
            "ssn": mask_ssn(info.ssn),
            "addresses": [
                {
                    "street": addr.street,
                    "city": addr.city,
                    "state": addr.state,
                    "zipCode": addr.zip_code,
                    "country": addr.country or "US",
                    "fromDate": addr.from_date,
                    "toDate": addr.to_date,
                }
                for addr in info.addresses
            ],
            "searchType": "comprehensive",
            "includeAliases": True,
            "includeArrests": True,
            "includeConvictions": True,
            "includeWarrants": True,
        }

    async def call(self, request: dict) -> dict:
        data = await self._post_json(self.config, "/v1/criminal-check", request)
        records = data.get("results") or []
        types = {record.get("type") for record in records if isinstance(record, dict)}
        summary = {
            "totalRecords": len(records),
            "hasCriminalHistory": "conviction" in types,
            "hasArrests": "arrest" in types,
            "hasWarrants": "warrant" in types,
        }
        return _check_result(data, summary, self.name)


class DrivingRecordProvider(BaseProvider):
    name = "driving_record_api"
    label = "Driving record check"

    def build_request(self, subject: Subject) -> dict:
        return {
            "firstName": subject.personal_info.first_name,
            "lastName": subject.personal_info.last_name,
            "dateOfBirth": subject.personal_info.date_of_birth,
            "driverLicenseNumber": subject.driver_info.driver_license_number,
            "state": subject.driver_info.state,
            "searchType": "comprehensive",
            "includeViolations": True,
            "includeAccidents": True,
            "includeSuspensions": True,
            "includeRevocations": True,
        }

    async def call(self, request: dict) -> dict:
        data = await self._post_json(self.config, "/v1/driving-record", request)
        results = data.get("results") or {}
        summary = {
            "totalViolations": len(results.get("violations") or []),
            "totalAccidents": len(results.get("accidents") or []),
            "hasSuspensions": bool(results.get("suspensions")),
            "hasRevocations": bool(results.get("revocations")),
            "points": results.get("points") or 0,
        }
        return _check_result(data, summary, self.name)


class EmploymentVerificationProvider(BaseProvider):
    name = "employment_verification_api"
    label = "Employment verification"

    def build_request(self, subject: Subject) -> dict:
        employment = subject.employment_info
        return {
            "firstName": subject.personal_info.first_name,
            "lastName": subject.personal_info.last_name,
            "ssn": mask_ssn(subject.personal_info.ssn),
            "employerName": employment.employer_name,
            "employerPhone": employment.employer_phone,
            "position": employment.position,
            "startDate": employment.start_date,
            "endDate": employment.end_date,
            "verificationType": "employment",
            "includeSalary": False,
            "includeReasonForLeaving": True,
        }

    async def call(self, request: dict) -> dict:
        data = await self._post_json(
            self.config, "/v1/employment-verification", request
        )
        results = data.get("results") or {}
        summary = {
            "verified": bool(results.get("verified")),
            "employmentConfirmed": bool(results.get("employmentConfirmed")),
            "datesConfirmed": bool(results.get("datesConfirmed")),
            "positionConfirmed": bool(results.get("positionConfirmed")),
        }
        return _check_result(data, summary, self.name)


class CreditCheckProvider(BaseProvider):
    """Soft-pull credit check used as a financial responsibility signal."""

    name = "credit_check_api"
    label = "Credit check"

    def build_request(self, subject: Subject) -> dict:
        info = subject.personal_info
        address = info.addresses[0] if info.addresses else None
        return {
            "firstName": info.first_name,
            "lastName": info.last_name,
            "dateOfBirth": info.date_of_birth,
            "ssn": mask_ssn(info.ssn),
            "address": {
                "street": address.street,
                "city": address.city,
                "state": address.state,
                "zipCode": address.zip_code,
            }
            if address
            else None,
            "reportType": "soft_pull",
            "includeScore": True,
            "includeHistory": False,
        }

    async def call(self, request: dict) -> dict:
        data = await self._post_json(self.config, "/v1/credit-check", request)
        results = data.get("results") or {}
        summary = {
            "creditScore": results.get("creditScore"),
            "hasCreditHistory": bool(results.get("hasCreditHistory")),
            "totalAccounts": results.get("totalAccounts") or 0,
            "delinquentAccounts": results.get("delinquentAccounts") or 0,
        }
        return _check_result(data, summary, self.name)
