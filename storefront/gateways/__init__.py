from .base import (
    PaymentConfig,
    PaymentExpectation,
    PaymentGateway,
    PaymentInitParams,
    PaymentResult,
    VerificationResult,
    to_minor_units,
)
from .registry import get_gateway, initialize_payment, provider_display_info, register

# Provider modules register themselves on import.
from . import cod, flutterwave, lemonsqueezy, paystack, stripe  # noqa: E402,F401
