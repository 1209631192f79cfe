import logging
import time

import requests

from .base import HostedGateway, PaymentConfig, PaymentInitParams, PaymentResult, VerificationResult
from .registry import register


logger = logging.getLogger(__name__)

API_BASE = "https://api.paystack.co"


@register
class PaystackGateway(HostedGateway):
    provider = "PAYSTACK"
    display_name = "Paystack"
    description = "Cards, Bank, Mobile Money"
    regions = "Nigeria, Ghana, South Africa, Kenya"

    def initialize(self, config: PaymentConfig, params: PaymentInitParams) -> PaymentResult:
        if not config.secret_key:
            return PaymentResult(success=False, error="Paystack secret key not configured")

        payload = {
            "email": params.customer_email,
            "amount": params.amount,  # kobo
            "currency": params.currency,
            "reference": f"{params.order_number}-{int(time.time() * 1000)}",
            "callback_url": params.callback_url,
            "metadata": {
                "orderId": params.order_id,
                "orderNumber": params.order_number,
                "customerName": params.customer_name,
                **params.metadata,
            },
        }
        try:
            data = self._post(f"{API_BASE}/transaction/initialize", secret_key=config.secret_key, json=payload)
        except (requests.RequestException, ValueError) as exc:
            return self._failed(exc)

        body = data.get("data") or {}
        if data.get("status") and body.get("authorization_url"):
            logger.info("[PROVIDER: Paystack] Transaction %s initialized", body.get("reference"))
            return PaymentResult(
                success=True,
                payment_reference=body.get("reference"),
                redirect_url=body["authorization_url"],
            )
        return PaymentResult(success=False, error=data.get("message") or "Failed to initialize Paystack payment")

    def verify(self, reference: str, secret_key: str, expected=None) -> VerificationResult:
        try:
            data = self._get(f"{API_BASE}/transaction/verify/{reference}", secret_key=secret_key)
        except (requests.RequestException, ValueError) as exc:
            return self._unverified(exc)
        status = (data.get("data") or {}).get("status")
        return VerificationResult(success=status == "success", status=status)
