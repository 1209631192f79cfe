import logging

import requests

from .base import HostedGateway, PaymentConfig, PaymentInitParams, PaymentResult, VerificationResult
from .registry import register


logger = logging.getLogger(__name__)

API_BASE = "https://api.stripe.com/v1"


def _with_query(url: str, query: str) -> str:
    return f"{url}{'&' if '?' in url else '?'}{query}"


@register
class StripeGateway(HostedGateway):
    provider = "STRIPE"
    display_name = "Stripe"
    description = "Credit/Debit Cards"
    regions = "US, EU, UK, AU, CA, etc."

    def initialize(self, config: PaymentConfig, params: PaymentInitParams) -> PaymentResult:
        if not config.secret_key:
            return PaymentResult(success=False, error="Stripe secret key not configured")

        # Checkout sessions take form-encoded bodies.
        form = {
            "mode": "payment",
            "success_url": _with_query(params.callback_url, "session_id={CHECKOUT_SESSION_ID}"),
            "cancel_url": params.callback_url,
            "customer_email": params.customer_email,
            "line_items[0][price_data][currency]": params.currency.lower(),
            "line_items[0][price_data][product_data][name]": f"Order {params.order_number}",
            "line_items[0][price_data][unit_amount]": str(params.amount),
            "line_items[0][quantity]": "1",
            "metadata[orderId]": params.order_id,
            "metadata[orderNumber]": params.order_number,
        }
        try:
            data = self._post(f"{API_BASE}/checkout/sessions", secret_key=config.secret_key, data=form)
        except (requests.RequestException, ValueError) as exc:
            return self._failed(exc)

        if data.get("id") and data.get("url"):
            logger.info("[PROVIDER: Stripe] Session %s created for order %s", data["id"], params.order_number)
            return PaymentResult(success=True, payment_reference=data["id"], redirect_url=data["url"])
        error = (data.get("error") or {}).get("message") or "Failed to create Stripe session"
        return PaymentResult(success=False, error=error)

    def verify(self, reference: str, secret_key: str, expected=None) -> VerificationResult:
        try:
            data = self._get(f"{API_BASE}/checkout/sessions/{reference}", secret_key=secret_key)
        except (requests.RequestException, ValueError) as exc:
            return self._unverified(exc)
        status = data.get("payment_status")
        return VerificationResult(success=status == "paid", status=status)
