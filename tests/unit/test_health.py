from driverflow.config import DriverflowConfig
from driverflow.health import integration_health


def test_unconfigured_integrations_are_degraded():
    report = integration_health(DriverflowConfig())
    assert report["overall"] == "degraded"
    assert report["services"]["payment"]["status"] == "unavailable"
    assert set(report["services"]) == {
        "storage",
        "payment",
        "backgroundCheck",
        "insuranceVerification",
    }


def test_fully_configured_integrations_are_healthy():
    config = DriverflowConfig()
    config.payment.api_key = "sk_test"
    config.storage.bucket = "bucket"
    config.storage.access_token = "token"
    config.background_check.criminal.api_key = "key"
    config.insurance.carriers["geico"].api_key = "key"

    report = integration_health(config)
    assert report["overall"] == "healthy"
    assert all(s["status"] == "healthy" for s in report["services"].values())
    assert "timestamp" in report
