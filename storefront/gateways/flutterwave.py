import logging
import time
from decimal import Decimal

import requests

from .base import (
    HostedGateway,
    PaymentConfig,
    PaymentExpectation,
    PaymentInitParams,
    PaymentResult,
    VerificationResult,
)
from .registry import register


logger = logging.getLogger(__name__)

API_BASE = "https://api.flutterwave.com/v3"


@register
class FlutterwaveGateway(HostedGateway):
    provider = "FLUTTERWAVE"
    display_name = "Flutterwave"
    description = "Cards, Mobile Money, Bank"
    regions = "Africa, UK, EU"
    callback_reference_required = True

    def initialize(self, config: PaymentConfig, params: PaymentInitParams) -> PaymentResult:
        if not config.secret_key:
            return PaymentResult(success=False, error="Flutterwave secret key not configured")

        tx_ref = f"FLW-{params.order_number}-{int(time.time() * 1000)}"
        payload = {
            "tx_ref": tx_ref,
            # Flutterwave takes major units.
            "amount": float(Decimal(params.amount) / 100),
            "currency": params.currency,
            "redirect_url": params.callback_url,
            "customer": {"email": params.customer_email, "name": params.customer_name},
            "customizations": {
                "title": f"Order {params.order_number}",
                "description": params.description or f"Payment for order {params.order_number}",
            },
            "meta": {"orderId": params.order_id, "orderNumber": params.order_number},
        }
        try:
            data = self._post(f"{API_BASE}/payments", secret_key=config.secret_key, json=payload)
        except (requests.RequestException, ValueError) as exc:
            return self._failed(exc)

        link = (data.get("data") or {}).get("link")
        if data.get("status") == "success" and link:
            logger.info("[PROVIDER: Flutterwave] Payment %s initialized", tx_ref)
            return PaymentResult(success=True, payment_reference=tx_ref, redirect_url=link)
        return PaymentResult(success=False, error=data.get("message") or "Failed to initialize Flutterwave payment")

    def verify(
        self,
        reference: str,
        secret_key: str,
        expected: PaymentExpectation | None = None,
    ) -> VerificationResult:
        """
        `reference` is the transaction id from the callback, not the tx_ref.

        The id comes from the caller, so a successful transaction only counts
        when its tx_ref, currency and amount match `expected`.
        """
        try:
            data = self._get(f"{API_BASE}/transactions/{reference}/verify", secret_key=secret_key)
        except (requests.RequestException, ValueError) as exc:
            return self._unverified(exc)
        body = data.get("data") or {}
        status = body.get("status")
        if status != "successful":
            return VerificationResult(success=False, status=status)
        if expected is not None:
            mismatch = self._mismatch(
                expected,
                reference=body.get("tx_ref"),
                amount=body.get("amount"),
                currency=body.get("currency"),
            )
            if mismatch:
                logger.warning("[PROVIDER: Flutterwave] Transaction %s rejected: %s", reference, mismatch)
                return VerificationResult(success=False, status=status, error=mismatch)
        return VerificationResult(success=True, status=status)
