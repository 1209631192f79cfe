import logging

import requests

from .base import HostedGateway, PaymentConfig, PaymentInitParams, PaymentResult, VerificationResult
from .registry import register


logger = logging.getLogger(__name__)

API_BASE = "https://api.lemonsqueezy.com/v1"
JSON_API = "application/vnd.api+json"


@register
class LemonSqueezyGateway(HostedGateway):
    provider = "LEMONSQUEEZY"
    display_name = "Lemon Squeezy"
    description = "Digital Products"
    regions = "Global"
    supports_verification = False

    def initialize(self, config: PaymentConfig, params: PaymentInitParams) -> PaymentResult:
        if not config.secret_key or not config.store_id:
            return PaymentResult(success=False, error="LemonSqueezy API key or store ID not configured")

        payload = {
            "data": {
                "type": "checkouts",
                "attributes": {
                    "custom_price": params.amount,
                    "checkout_data": {
                        "email": params.customer_email,
                        "name": params.customer_name,
                        "custom": {"orderId": params.order_id, "orderNumber": params.order_number},
                    },
                    "product_options": {
                        "name": f"Order {params.order_number}",
                        "description": params.description,
                        "redirect_url": params.callback_url,
                    },
                },
                "relationships": {"store": {"data": {"type": "stores", "id": config.store_id}}},
            }
        }
        try:
            data = self._post(
                f"{API_BASE}/checkouts",
                secret_key=config.secret_key,
                headers={"Content-Type": JSON_API, "Accept": JSON_API},
                json=payload,
            )
        except (requests.RequestException, ValueError) as exc:
            return self._failed(exc)

        body = data.get("data") or {}
        url = (body.get("attributes") or {}).get("url")
        if url:
            logger.info("[PROVIDER: Lemon Squeezy] Checkout %s created", body.get("id"))
            return PaymentResult(success=True, payment_reference=str(body.get("id") or ""), redirect_url=url)
        errors = data.get("errors") or [{}]
        return PaymentResult(success=False, error=errors[0].get("detail") or "Failed to create LemonSqueezy checkout")

    def verify(self, reference: str, secret_key: str, expected=None) -> VerificationResult:
        # No lookup endpoint is used; settlement waits for a later callback.
        return VerificationResult(success=False, status="unsupported", error="Verification is not supported")
