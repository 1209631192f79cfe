from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

import requests
from django.conf import settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentConfig:
    provider: str
    public_key: str = ""
    secret_key: str = ""
    store_id: str = ""


@dataclass(frozen=True)
class PaymentInitParams:
    order_id: str
    order_number: str
    amount: int  # minor units (cents, kobo)
    currency: str
    customer_email: str
    customer_name: str
    callback_url: str
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    payment_reference: str | None = None
    redirect_url: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class PaymentExpectation:
    """What a verified payment must match: the order's own reference, amount and currency."""

    reference: str
    amount: int  # minor units
    currency: str


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    status: str | None = None
    error: str | None = None


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentGateway(ABC):
    """
    One payment provider.

    Implementations never raise for provider or network failures; those come
    back as unsuccessful results carrying the error text.
    """

    provider = ""
    display_name = ""
    description = ""
    regions = ""
    # False for providers that settle without sending the customer elsewhere.
    requires_redirect = True
    # True when verification needs the id handed back on the callback rather
    # than the reference stored at initialization.
    callback_reference_required = False
    supports_verification = True

    @abstractmethod
    def initialize(self, config: PaymentConfig, params: PaymentInitParams) -> PaymentResult:
        raise NotImplementedError

    @abstractmethod
    def verify(
        self,
        reference: str,
        secret_key: str,
        expected: PaymentExpectation | None = None,
    ) -> VerificationResult:
        raise NotImplementedError

    def display_info(self) -> dict[str, str]:
        return {"name": self.display_name, "description": self.description, "regions": self.regions}


class HostedGateway(PaymentGateway):
    """Gateway backed by a provider HTTP API using bearer-token auth."""

    def _timeout(self) -> int:
        return int(getattr(settings, "PAYMENT_GATEWAY_TIMEOUT_SECONDS", 15))

    def _headers(self, secret_key: str, **extra: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {secret_key}", **extra}

    def _post(self, url: str, *, secret_key: str, headers: dict[str, str] | None = None, **kwargs) -> dict[str, Any]:
        response = requests.post(
            url,
            headers=self._headers(secret_key, **(headers or {})),
            timeout=self._timeout(),
            **kwargs,
        )
        return self._json(response)

    def _get(self, url: str, *, secret_key: str) -> dict[str, Any]:
        response = requests.get(url, headers=self._headers(secret_key), timeout=self._timeout())
        return self._json(response)

    @staticmethod
    def _json(response) -> dict[str, Any]:
        # Providers put the useful error text in the body of 4xx responses.
        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise
        return data if isinstance(data, dict) else {}

    def _failed(self, exc: Exception) -> PaymentResult:
        logger.warning("[PROVIDER: %s] Initialize failed: %s", self.display_name, exc)
        return PaymentResult(success=False, error=str(exc) or f"{self.display_name} error")

    def _unverified(self, exc: Exception) -> VerificationResult:
        logger.warning("[PROVIDER: %s] Verify failed: %s", self.display_name, exc)
        return VerificationResult(success=False, error=str(exc) or f"{self.display_name} error")

    def _mismatch(self, expected: PaymentExpectation, *, reference, amount, currency) -> str | None:
        """Reason a provider-reported payment does not belong to the expected order, or None."""
        if reference != expected.reference:
            return f"reference {reference!r} does not match {expected.reference!r}"
        if str(currency or "").upper() != expected.currency.upper():
            return f"currency {currency!r} does not match {expected.currency!r}"
        try:
            paid = to_minor_units(Decimal(str(amount)))
        except (ArithmeticError, TypeError, ValueError):
            return f"amount {amount!r} is not a number"
        if paid < expected.amount:
            return f"amount {paid} is less than {expected.amount}"
        return None
