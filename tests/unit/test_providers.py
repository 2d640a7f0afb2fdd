"""Provider adapter tests against a mocked HTTP transport."""

import json

import httpx
import pytest

from driverflow.config import ProviderConfig, StorageConfig
from driverflow.contracts import DocumentFile
from driverflow.exceptions import NotConfigured, ProviderError
from driverflow.providers import (
    CommercialInsuranceProvider,
    CriminalCheckProvider,
    DocumentStorageProvider,
    DrivingRecordProvider,
    EmploymentVerificationProvider,
    PaymentProvider,
    PolicyVerificationProvider,
    ProfileSyncProvider,
)
from driverflow.utils.masking import mask_ein, mask_ssn


def _configured(url: str = "https://api.test") -> ProviderConfig:
    return ProviderConfig(base_url=url, api_key="secret", timeout=5)


def _recording_transport(responses: dict, requests: list) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        key = (request.method, request.url.path)
        if key not in responses:
            return httpx.Response(404, json={"error": "not found"})
        status, body = responses[key]
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


def test_masking_helpers():
    assert mask_ssn("123-45-6789") == "***-**-6789"
    assert mask_ssn("123456789") == "***-**-6789"
    assert mask_ssn("12345") == "12345"
    assert mask_ssn(None) is None
    assert mask_ein("12-3456789") == "**-****6789"
    assert mask_ein("") is None


@pytest.mark.asyncio
async def test_unconfigured_provider_raises_not_configured(subject):
    provider = CriminalCheckProvider(ProviderConfig(base_url="https://api.test"))
    with pytest.raises(NotConfigured) as exc_info:
        await provider.invoke(subject)
    assert exc_info.value.provider == "criminal_check_api"
    assert "not configured" in str(exc_info.value)


@pytest.mark.asyncio
async def test_criminal_check_masks_ssn_and_normalizes(subject):
    requests: list = []
    transport = _recording_transport(
        {
            ("POST", "/v1/criminal-check"): (
                200,
                {
                    "checkId": "chk-1",
                    "status": "complete",
                    "results": [{"type": "conviction"}, {"type": "arrest"}],
                },
            )
        },
        requests,
    )
    provider = CriminalCheckProvider(_configured(), transport=transport)

    result = await provider.invoke(subject)

    sent = json.loads(requests[0].content)
    assert sent["ssn"] == "***-**-6789"
    assert sent["addresses"][0]["zipCode"] == "93701"
    assert requests[0].headers["Authorization"] == "Bearer secret"
    assert result["checkId"] == "chk-1"
    assert result["provider"] == "criminal_check_api"
    assert result["summary"] == {
        "totalRecords": 2,
        "hasCriminalHistory": True,
        "hasArrests": True,
        "hasWarrants": False,
    }


@pytest.mark.asyncio
async def test_driving_and_employment_summaries(subject):
    requests: list = []
    transport = _recording_transport(
        {
            ("POST", "/v1/driving-record"): (
                200,
                {"results": {"violations": [{}, {}, {}, {}], "points": 6}},
            ),
            ("POST", "/v1/employment-verification"): (
                200,
                {"results": {"verified": True, "employmentConfirmed": True}},
            ),
        },
        requests,
    )
    driving = await DrivingRecordProvider(_configured(), transport=transport).invoke(subject)
    employment = await EmploymentVerificationProvider(
        _configured(), transport=transport
    ).invoke(subject)

    assert driving["summary"]["totalViolations"] == 4
    assert driving["summary"]["points"] == 6
    assert driving["summary"]["hasSuspensions"] is False
    assert employment["summary"]["verified"] is True
    assert employment["summary"]["datesConfirmed"] is False


@pytest.mark.asyncio
async def test_upstream_error_becomes_provider_error(subject):
    transport = _recording_transport(
        {("POST", "/v1/criminal-check"): (503, {"error": "down"})}, []
    )
    provider = CriminalCheckProvider(_configured(), transport=transport)
    with pytest.raises(ProviderError) as exc_info:
        await provider.invoke(subject)
    assert "upstream returned 503" in exc_info.value.message


@pytest.mark.asyncio
async def test_network_error_becomes_provider_error(subject):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = CriminalCheckProvider(
        _configured(), transport=httpx.MockTransport(handler)
    )
    with pytest.raises(ProviderError, match="connection refused"):
        await provider.invoke(subject)


@pytest.mark.asyncio
async def test_policy_verification_routes_to_carrier(subject):
    requests: list = []
    transport = _recording_transport(
        {
            ("POST", "/v1/insurance/verify"): (
                200,
                {
                    "verificationId": "v-1",
                    "status": "verified",
                    "policyDetails": {"status": "active"},
                    "coverage": {"liability": 100000},
                },
            )
        },
        requests,
    )
    provider = PolicyVerificationProvider(
        {
            "geico": _configured("https://geico.test"),
            "allstate": ProviderConfig(base_url="https://allstate.test"),
        },
        transport=transport,
    )

    result = await provider.invoke(subject)

    assert requests[0].url.host == "geico.test"
    assert "insuranceCompany" not in json.loads(requests[0].content)
    assert result["policyDetails"]["status"] == "active"
    assert result["apiProvider"] == "GEICO"


@pytest.mark.asyncio
async def test_policy_verification_unknown_carrier(subject_factory):
    from driverflow.contracts import InsuranceInfo

    subject = subject_factory(
        insurance_info=InsuranceInfo(policy_number="P", insurance_company="Acme Mutual")
    )
    provider = PolicyVerificationProvider({"geico": _configured()})
    with pytest.raises(ProviderError, match="Insurance company Acme Mutual not supported"):
        await provider.invoke(subject)


def test_commercial_request_masks_ein(business_subject):
    provider = CommercialInsuranceProvider(_configured())
    request = provider.build_request(business_subject)
    assert request["businessInfo"]["ein"] == "**-****6789"
    assert request["vehicleInfo"]["vehicleType"] == "commercial"


@pytest.mark.asyncio
async def test_payment_creates_customer_and_intent(subject):
    requests: list = []
    transport = _recording_transport(
        {
            ("POST", "/v1/customers"): (200, {"id": "cus_1"}),
            ("POST", "/v1/payment_intents"): (
                200,
                {
                    "id": "pi_1",
                    "client_secret": "pi_1_secret",
                    "amount": 9999,
                    "currency": "usd",
                    "status": "requires_payment_method",
                },
            ),
        },
        requests,
    )
    provider = PaymentProvider(_configured("https://stripe.test"), transport=transport)

    result = await provider.invoke(subject)

    assert [r.url.path for r in requests] == ["/v1/customers", "/v1/payment_intents"]
    intent_form = dict(httpx.QueryParams(requests[1].content.decode()))
    assert intent_form["amount"] == "9999"
    assert intent_form["customer"] == "cus_1"
    assert result["customerId"] == "cus_1"
    assert result["paymentIntentId"] == "pi_1"
    assert result["onboardingFee"] == 99.99
    assert result["plan"] == "BASIC"


@pytest.mark.asyncio
async def test_payment_reuses_existing_customer(subject_factory):
    subject = subject_factory(payment_customer_id="cus_existing", subscription_plan="premium")
    requests: list = []
    transport = _recording_transport(
        {
            ("GET", "/v1/customers/cus_existing"): (200, {"id": "cus_existing"}),
            ("POST", "/v1/payment_intents"): (200, {"id": "pi_2", "amount": 14999}),
        },
        requests,
    )
    provider = PaymentProvider(_configured(), transport=transport)

    result = await provider.invoke(subject)

    assert [r.method for r in requests] == ["GET", "POST"]
    assert result["customerId"] == "cus_existing"
    assert result["onboardingFee"] == 149.99


@pytest.mark.asyncio
async def test_payment_not_configured_and_unknown_plan(subject_factory):
    with pytest.raises(NotConfigured, match="STRIPE_SECRET_KEY"):
        await PaymentProvider(ProviderConfig(base_url="https://stripe.test")).invoke(
            subject_factory()
        )
    with pytest.raises(ProviderError, match="Unknown subscription plan GOLD"):
        await PaymentProvider(_configured()).invoke(
            subject_factory(subscription_plan="gold")
        )


@pytest.mark.asyncio
async def test_document_storage_uploads_each_document(tmp_path, subject_factory):
    photo = tmp_path / "me.jpg"
    photo.write_bytes(b"jpeg-bytes")
    license_scan = tmp_path / "license.pdf"
    license_scan.write_bytes(b"pdf")
    subject = subject_factory(
        documents=[
            DocumentFile(kind="profile_photo", file_name="me.jpg", content_type="image/jpeg", path=str(photo)),
            DocumentFile(kind="driver_license", file_name="license.pdf", path=str(license_scan)),
        ]
    )
    requests: list = []
    transport = _recording_transport(
        {("POST", "/upload/storage/v1/b/bucket/o"): (200, {"name": "x"})}, requests
    )
    provider = DocumentStorageProvider(
        StorageConfig(base_url="https://gcs.test", bucket="bucket", access_token="tok"),
        transport=transport,
    )

    result = await provider.invoke(subject)

    assert result["totalDocuments"] == 2
    assert result["storageBucket"] == "bucket"
    first = result["documents"][0]
    assert first["type"] == "profile_photo"
    assert first["result"]["filePath"].startswith("drivers/driver-1/profile/")
    assert first["result"]["size"] == len(b"jpeg-bytes")
    assert result["documents"][1]["result"]["filePath"].startswith("drivers/driver-1/documents/")
    assert requests[0].content == b"jpeg-bytes"
    assert requests[0].headers["Authorization"] == "Bearer tok"
    assert requests[0].url.params["uploadType"] == "media"


@pytest.mark.asyncio
async def test_document_storage_missing_file(tmp_path, subject_factory):
    subject = subject_factory(
        documents=[
            DocumentFile(kind="driver_license", file_name="gone.pdf", path=str(tmp_path / "gone.pdf"))
        ]
    )
    provider = DocumentStorageProvider(
        StorageConfig(bucket="bucket", access_token="tok"),
        transport=_recording_transport({}, []),
    )
    with pytest.raises(ProviderError, match="cannot read gone.pdf"):
        await provider.invoke(subject)

    with pytest.raises(NotConfigured, match="Firebase not initialized"):
        await DocumentStorageProvider(StorageConfig()).invoke(subject)


@pytest.mark.asyncio
async def test_profile_sync_marks_subject_submitted(subject, subjects):
    result = await ProfileSyncProvider(subjects).invoke(subject)
    assert result == {"subjectId": subject.id, "onboardingStatus": "submitted", "updated": True}
    assert subjects.onboarding_status[subject.id] == "submitted"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [[{"checkId": "c"}], "ok", 42])
async def test_non_object_body_is_rejected(subject, body):
    transport = _recording_transport({("POST", "/v1/criminal-check"): (200, body)}, [])
    provider = CriminalCheckProvider(_configured(), transport=transport)
    with pytest.raises(ProviderError, match="invalid response body"):
        await provider.invoke(subject)


@pytest.mark.asyncio
async def test_nested_workflow_result_uses_camel_case_keys(subject, fake_provider):
    from driverflow.providers import SubWorkflowProvider
    from driverflow.registry import StepDefinition, WorkflowRegistry

    registry = WorkflowRegistry(
        "insurance",
        [
            StepDefinition(
                "policy",
                fake_provider(
                    "policy",
                    result={"policyDetails": {"status": "expired"}, "coverage": {}},
                ),
            )
        ],
    )

    result = await SubWorkflowProvider(registry, result_key="verifications").invoke(subject)

    assert result["overallStatus"] == "completed"
    assert result["verifications"]["policy"]["status"] == "completed"
    assert result["summary"]["coverageStatus"] == "expired"
    assert result["summary"]["totalSteps"] == 1
    assert "coverage_status" not in result["summary"]
