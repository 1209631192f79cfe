from __future__ import annotations

import logging
from typing import Callable, TypeVar

from django.conf import settings
from django.db import IntegrityError, transaction

from core.exceptions import ConflictError
from core.models import DocumentSequence, Organization


logger = logging.getLogger(__name__)

NUMBER_WIDTH = 6

INVOICE_PREFIX = "INV"
BILL_PREFIX = "BILL"
PAYMENT_PREFIX = "PAY"
ORDER_PREFIX = "ORD"
EMPLOYEE_PREFIX = "EMP"

T = TypeVar("T")


def format_document_number(prefix: str, value: int) -> str:
    return f"{prefix}-{value:0{NUMBER_WIDTH}d}"


def parse_document_number(number: str, prefix: str) -> int:
    """Numeric suffix of `number`, or 0 when it does not belong to `prefix`."""
    head = f"{prefix}-"
    if not number or not number.startswith(head):
        return 0
    try:
        return int(number[len(head):])
    except ValueError:
        return 0


def _sequence_for_update(*, organization: Organization, prefix: str, scope: str) -> DocumentSequence:
    sequence = (
        DocumentSequence.objects.select_for_update()
        .filter(organization=organization, prefix=prefix, scope=scope)
        .first()
    )
    if sequence:
        return sequence
    try:
        with transaction.atomic():
            return DocumentSequence.objects.create(
                organization=organization,
                prefix=prefix,
                scope=scope,
                last_value=0,
            )
    except IntegrityError:
        # Another request created the row between our read and insert.
        return (
            DocumentSequence.objects.select_for_update()
            .filter(organization=organization, prefix=prefix, scope=scope)
            .get()
        )


@transaction.atomic
def next_document_number(
    *,
    organization: Organization,
    prefix: str,
    scope: str = "",
    at_least: int = 1,
) -> str:
    """
    Issue the next `{PREFIX}-NNNNNN` number for the series.

    The counter row stays locked until the caller's transaction ends, so two
    concurrent callers can never be handed the same value.
    """
    sequence = _sequence_for_update(organization=organization, prefix=prefix, scope=scope)
    sequence.last_value = max(sequence.last_value + 1, at_least)
    sequence.save(update_fields=["last_value", "updated_at"])
    return format_document_number(prefix, sequence.last_value)


def create_with_number(
    create: Callable[[str], T],
    *,
    organization: Organization,
    prefix: str,
    scope: str = "",
    max_attempts: int | None = None,
) -> T:
    """
    Allocate a number and run `create(number)` in one savepoint.

    Rows carry a unique constraint on their number; if the insert still
    collides (rows written outside the sequence), the series is advanced past
    the colliding value and the insert retried.
    """
    attempts = max_attempts or getattr(settings, "DOCUMENT_NUMBER_MAX_ATTEMPTS", 5)
    at_least = 1
    for attempt in range(1, attempts + 1):
        number = None
        try:
            with transaction.atomic():
                number = next_document_number(
                    organization=organization,
                    prefix=prefix,
                    scope=scope,
                    at_least=at_least,
                )
                return create(number)
        except IntegrityError:
            logger.warning(
                "Number collision for %s (org=%s scope=%s number=%s attempt=%s/%s)",
                prefix,
                organization.pk,
                scope or "-",
                number,
                attempt,
                attempts,
            )
            if number is None:
                raise
            at_least = parse_document_number(number, prefix) + 1
    raise ConflictError(f"Could not allocate a unique {prefix} number, please retry.")
