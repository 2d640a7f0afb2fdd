"""Integration health report over the configured providers."""

from __future__ import annotations

from typing import Any, Dict

from .config import DriverflowConfig
from .contracts import utcnow


def _service(configured: bool, healthy: str, unavailable: str) -> Dict[str, str]:
    if configured:
        return {"status": "healthy", "message": healthy}
    return {"status": "unavailable", "message": unavailable}


def integration_health(config: DriverflowConfig) -> Dict[str, Any]:
    """Report which provider integrations have credentials configured.

    Overall health is ``unhealthy`` if any service is unhealthy, ``degraded``
    if any is unavailable and ``healthy`` otherwise.
    """
    checks = config.background_check
    insurance = config.insurance
    services = {
        "storage": _service(
            config.storage.configured,
            "Document storage integration active",
            "Document storage not configured",
        ),
        "payment": _service(
            config.payment.configured,
            "Stripe payment service configured",
            "Stripe not configured",
        ),
        "backgroundCheck": _service(
            any(
                api.configured
                for api in (checks.criminal, checks.driving, checks.employment, checks.credit)
            ),
            "Background check APIs configured",
            "No background check APIs configured",
        ),
        "insuranceVerification": _service(
            insurance.verisk.configured
            or insurance.lexisnexis.configured
            or any(api.configured for api in insurance.carriers.values()),
            "Insurance verification APIs configured",
            "No insurance verification APIs configured",
        ),
    }

    statuses = {service["status"] for service in services.values()}
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "unavailable" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return {"timestamp": utcnow().isoformat(), "services": services, "overall": overall}
