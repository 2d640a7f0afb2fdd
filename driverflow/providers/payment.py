"""Onboarding fee collection through the Stripe REST API."""

from __future__ import annotations

import logging
from typing import Optional

from ..config import ProviderConfig
from ..constants import DEFAULT_CURRENCY, DEFAULT_PLAN, ONBOARDING_FEES
from ..contracts import Subject
from ..exceptions import NotConfigured, ProviderError
from .base import BaseProvider

logger = logging.getLogger(__name__)


class PaymentProvider(BaseProvider):
    """Find or create the driver's customer and open a fee payment intent."""

    name = "stripe"
    label = "Payment processing"

    def _require(self, config: ProviderConfig, message: Optional[str] = None) -> None:
        super()._require(
            config,
            message
            or "Stripe is not configured. Please set STRIPE_SECRET_KEY in environment variables.",
        )

    def build_request(self, subject: Subject) -> dict:
        info = subject.personal_info
        return {
            "subjectId": subject.id,
            "customerId": subject.payment_customer_id,
            "plan": (subject.subscription_plan or DEFAULT_PLAN).upper(),
            "customer": {
                "email": subject.email or "",
                "name": f"{info.first_name} {info.last_name}",
                "phone": subject.phone_number or "",
                "metadata[userId]": subject.id,
                "metadata[role]": subject.role or "",
                "metadata[status]": subject.status or "",
            },
        }

    async def _get_or_create_customer(self, request: dict) -> dict:
        customer_id = request.get("customerId")
        if customer_id:
            try:
                return await self._send(self.config, "GET", f"/v1/customers/{customer_id}")
            except NotConfigured:
                raise
            except ProviderError as exc:
                logger.info(
                    f"Customer {customer_id} lookup failed ({exc.message}); creating a new one"
                )
        return await self._send(
            self.config, "POST", "/v1/customers", data=request["customer"]
        )

    async def call(self, request: dict) -> dict:
        self._require(self.config)
        plan = request["plan"]
        if plan not in ONBOARDING_FEES:
            raise ProviderError(f"Unknown subscription plan {plan}", provider=self.name)
        fee = ONBOARDING_FEES[plan]

        customer = await self._get_or_create_customer(request)
        intent = await self._send(
            self.config,
            "POST",
            "/v1/payment_intents",
            data={
                "amount": round(fee * 100),
                "currency": DEFAULT_CURRENCY,
                "customer": customer.get("id"),
                "description": "Driver Onboarding Fee",
                "metadata[type]": "onboarding_fee",
                "metadata[customerId]": customer.get("id"),
                "automatic_payment_methods[enabled]": "true",
            },
        )
        return {
            "customerId": customer.get("id"),
            "paymentIntentId": intent.get("id"),
            "clientSecret": intent.get("client_secret"),
            "amount": intent.get("amount"),
            "currency": intent.get("currency"),
            "status": intent.get("status"),
            "plan": plan,
            "onboardingFee": fee,
        }
