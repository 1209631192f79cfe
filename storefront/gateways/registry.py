from __future__ import annotations

import logging

from .base import PaymentConfig, PaymentGateway, PaymentInitParams, PaymentResult


logger = logging.getLogger(__name__)

_GATEWAYS: dict[str, PaymentGateway] = {}


def register(gateway_cls: type[PaymentGateway]) -> type[PaymentGateway]:
    """Class decorator: make the gateway available under its provider tag."""
    _GATEWAYS[gateway_cls.provider] = gateway_cls()
    return gateway_cls


def get_gateway(provider: str) -> PaymentGateway | None:
    return _GATEWAYS.get(provider or "")


def initialize_payment(config: PaymentConfig, params: PaymentInitParams) -> PaymentResult:
    gateway = get_gateway(config.provider)
    if gateway is None:
        logger.warning("Unknown payment provider %r for order %s", config.provider, params.order_number)
        return PaymentResult(success=False, error=f"Unknown payment provider: {config.provider}")
    return gateway.initialize(config, params)


def provider_display_info() -> dict[str, dict[str, str]]:
    return {provider: gateway.display_info() for provider, gateway in _GATEWAYS.items()}
