from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from core.audit import record_audit, snapshot
from core.exceptions import NotFoundError, ValidationError
from core.models import AuditLog
from core.numbering import PAYMENT_PREFIX, create_with_number
from core.utils import actor_or_none
from finance.models import Bill, FinancialDocument, Invoice, Payment
from finance.services.documents import get_document


logger = logging.getLogger(__name__)

PAYMENT_AUDIT_FIELDS = ("number", "payment_date", "amount", "method", "reference_number", "invoice", "bill")


@dataclass(frozen=True)
class PaymentInput:
    amount: Decimal
    method: str
    payment_date: date | None = None
    reference_number: str = ""
    notes: str = ""
    invoice_id: int | None = None
    bill_id: int | None = None


def settle(document: FinancialDocument, amount: Decimal) -> None:
    """Add a payment to the document. Overpayment is kept, never clamped."""
    document.paid_amount = document.paid_amount + amount
    if document.paid_amount >= document.total_amount:
        document.status = document.Status.PAID
    else:
        document.status = document.OPEN_STATUS


def unsettle(document: FinancialDocument, amount: Decimal) -> None:
    """Take a payment back off the document; status returns to the open status."""
    document.paid_amount = max(Decimal("0.00"), document.paid_amount - amount)
    document.status = document.OPEN_STATUS


def _validate(data: PaymentInput) -> Decimal:
    amount = Decimal(str(data.amount))
    if amount <= 0:
        raise ValidationError("Payment amount must be > 0.")
    if data.invoice_id and data.bill_id:
        raise ValidationError("A payment can target an invoice or a bill, not both.")
    if data.method not in Payment.Method.values:
        raise ValidationError(f"Invalid payment method '{data.method}'.")
    return amount


def list_payments(*, organization):
    return (
        Payment.objects.for_organization(organization)
        .alive()
        .select_related("invoice", "bill")
        .order_by("-payment_date", "-id")
    )


def apply_payment(*, organization, actor, data: PaymentInput, request=None) -> Payment:
    amount = _validate(data)

    with transaction.atomic():
        # Lock the target first: concurrent payments against one document serialize here.
        target = None
        if data.invoice_id:
            target = get_document(Invoice, organization=organization, document_id=data.invoice_id, for_update=True)
        elif data.bill_id:
            target = get_document(Bill, organization=organization, document_id=data.bill_id, for_update=True)

        def _create(number: str) -> Payment:
            return Payment.objects.create(
                organization=organization,
                number=number,
                payment_date=data.payment_date or timezone.localdate(),
                amount=amount,
                method=data.method,
                reference_number=data.reference_number or "",
                notes=data.notes or "",
                invoice=target if isinstance(target, Invoice) else None,
                bill=target if isinstance(target, Bill) else None,
                created_by=actor_or_none(actor),
            )

        payment = create_with_number(_create, organization=organization, prefix=PAYMENT_PREFIX)

        if target is not None:
            settle(target, amount)
            target.updated_by = actor_or_none(actor)
            target.save(update_fields=["paid_amount", "status", "updated_by", "updated_at"])

    logger.info(
        "Applied payment %s amount=%s to %s (org=%s)",
        payment.number,
        amount,
        target.number if target is not None else "-",
        organization.pk,
    )
    record_audit(
        organization=organization,
        actor=actor,
        action=AuditLog.Action.CREATE,
        entity=payment,
        new_values=snapshot(payment, PAYMENT_AUDIT_FIELDS),
        request=request,
    )
    return payment


def reverse_payment(*, organization, actor, payment_id, request=None) -> Payment:
    """
    Undo a payment and soft delete it.

    The target is updated even if it was soft deleted since the payment was
    made. Its status goes back to the open status whatever the remaining paid
    amount is.
    """
    with transaction.atomic():
        payment = (
            Payment.objects.select_for_update()
            .for_organization(organization)
            .alive()
            .filter(pk=payment_id)
            .first()
        )
        if payment is None:
            raise NotFoundError("Payment not found")
        old_values = snapshot(payment, PAYMENT_AUDIT_FIELDS)

        target = None
        if payment.invoice_id:
            target = get_document(
                Invoice,
                organization=organization,
                document_id=payment.invoice_id,
                for_update=True,
                include_deleted=True,
            )
        elif payment.bill_id:
            target = get_document(
                Bill,
                organization=organization,
                document_id=payment.bill_id,
                for_update=True,
                include_deleted=True,
            )

        if target is not None:
            unsettle(target, payment.amount)
            target.updated_by = actor_or_none(actor)
            target.save(update_fields=["paid_amount", "status", "updated_by", "updated_at"])

        payment.soft_delete(actor_or_none(actor))

    logger.info("Reversed payment %s amount=%s (org=%s)", payment.number, payment.amount, organization.pk)
    record_audit(
        organization=organization,
        actor=actor,
        action=AuditLog.Action.DELETE,
        entity=payment,
        old_values=old_values,
        request=request,
    )
    return payment
