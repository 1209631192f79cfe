from .base import PaymentConfig, PaymentGateway, PaymentInitParams, PaymentResult, VerificationResult
from .registry import register


@register
class CashOnDeliveryGateway(PaymentGateway):
    provider = "COD"
    display_name = "Cash on Delivery"
    description = "Pay when you receive"
    regions = "All"
    requires_redirect = False

    def initialize(self, config: PaymentConfig, params: PaymentInitParams) -> PaymentResult:
        return PaymentResult(success=True, payment_reference=f"COD-{params.order_number}")

    def verify(self, reference: str, secret_key: str, expected=None) -> VerificationResult:
        return VerificationResult(success=True, status="cod")
