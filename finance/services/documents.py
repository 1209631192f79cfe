from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence, Type

from django.db import transaction

from core.audit import record_audit, snapshot
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.models import AuditLog
from core.numbering import create_with_number
from core.utils import actor_or_none
from finance.models import Bill, FinancialDocument, Invoice


logger = logging.getLogger(__name__)

MONEY_QUANT = Decimal("0.01")
HUNDRED = Decimal("100")

DOCUMENT_AUDIT_FIELDS = (
    "number",
    "status",
    "issue_date",
    "due_date",
    "subtotal",
    "tax_amount",
    "total_amount",
    "paid_amount",
)


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineItemInput:
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal = Decimal("0")


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def validate_line_items(line_items: Sequence[LineItemInput]) -> None:
    if not line_items:
        raise ValidationError("At least one line item is required.")
    for ix, item in enumerate(line_items, start=1):
        if not (item.description or "").strip():
            raise ValidationError(f"Line {ix}: description is required.")
        if Decimal(item.quantity) <= 0:
            raise ValidationError(f"Line {ix}: quantity must be > 0.")
        if Decimal(item.unit_price) < 0:
            raise ValidationError(f"Line {ix}: unit price must be >= 0.")
        if not (0 <= Decimal(item.tax_rate) <= HUNDRED):
            raise ValidationError(f"Line {ix}: tax rate must be between 0 and 100.")


def compute_totals(line_items: Iterable[LineItemInput]) -> DocumentTotals:
    """
    subtotal = sum(q * p), tax = sum(q * p * rate / 100), total = subtotal + tax.

    Sums are taken at full precision and quantized to cents once, so the
    stored total always equals stored subtotal plus stored tax.
    """
    subtotal = Decimal("0")
    tax = Decimal("0")
    for item in line_items:
        line = Decimal(item.quantity) * Decimal(item.unit_price)
        subtotal += line
        tax += line * Decimal(item.tax_rate) / HUNDRED
    subtotal = quantize_money(subtotal)
    tax = quantize_money(tax)
    return DocumentTotals(subtotal=subtotal, tax_amount=tax, total_amount=subtotal + tax)


def _document_label(model: Type[FinancialDocument]) -> str:
    return model._meta.verbose_name.capitalize()


def get_document(
    model: Type[FinancialDocument],
    *,
    organization,
    document_id,
    for_update: bool = False,
    include_deleted: bool = False,
):
    qs = model.objects.for_organization(organization)
    if for_update:
        qs = qs.select_for_update()
    if not include_deleted:
        qs = qs.alive()
    document = qs.filter(pk=document_id).first()
    if document is None:
        raise NotFoundError(f"{_document_label(model)} not found")
    return document


def list_documents(model: Type[FinancialDocument], *, organization):
    return (
        model.objects.for_organization(organization)
        .alive()
        .select_related(model.COUNTERPARTY_FIELD)
        .order_by("-created_at", "-id")
    )


def _create_document(
    model: Type[FinancialDocument],
    *,
    organization,
    actor,
    counterparty_id,
    due_date: date,
    line_items: Sequence[LineItemInput],
    issue_date: date | None = None,
    notes: str = "",
    request=None,
):
    validate_line_items(line_items)

    counterparty_model = model.counterparty_model()
    counterparty = (
        counterparty_model.objects.for_organization(organization)
        .alive()
        .filter(pk=counterparty_id)
        .first()
    )
    if counterparty is None:
        raise NotFoundError(f"{counterparty_model._meta.verbose_name.capitalize()} not found")

    totals = compute_totals(line_items)
    created_by = actor_or_none(actor)

    def _create(number: str):
        fields = {
            "organization": organization,
            "number": number,
            model.COUNTERPARTY_FIELD: counterparty,
            "due_date": due_date,
            "notes": notes or "",
            "subtotal": totals.subtotal,
            "tax_amount": totals.tax_amount,
            "total_amount": totals.total_amount,
            "paid_amount": Decimal("0.00"),
            "status": model.Status.DRAFT,
            "created_by": created_by,
            "updated_by": created_by,
        }
        if issue_date is not None:
            fields["issue_date"] = issue_date
        document = model.objects.create(**fields)
        for position, item in enumerate(line_items):
            quantity = Decimal(item.quantity)
            unit_price = Decimal(item.unit_price)
            document.line_items.create(
                position=position,
                description=item.description.strip(),
                quantity=quantity,
                unit_price=unit_price,
                tax_rate=Decimal(item.tax_rate),
                amount=quantize_money(quantity * unit_price),
            )
        return document

    with transaction.atomic():
        document = create_with_number(_create, organization=organization, prefix=model.NUMBER_PREFIX)

    logger.info("Created %s %s (org=%s total=%s)", model.__name__, document.number, organization.pk, totals.total_amount)
    record_audit(
        organization=organization,
        actor=actor,
        action=AuditLog.Action.CREATE,
        entity=document,
        new_values=snapshot(document, DOCUMENT_AUDIT_FIELDS),
        request=request,
    )
    return document


def create_invoice(*, organization, actor, customer_id, due_date, line_items, issue_date=None, notes="", request=None):
    return _create_document(
        Invoice,
        organization=organization,
        actor=actor,
        counterparty_id=customer_id,
        due_date=due_date,
        line_items=line_items,
        issue_date=issue_date,
        notes=notes,
        request=request,
    )


def create_bill(*, organization, actor, vendor_id, due_date, line_items, issue_date=None, notes="", request=None):
    return _create_document(
        Bill,
        organization=organization,
        actor=actor,
        counterparty_id=vendor_id,
        due_date=due_date,
        line_items=line_items,
        issue_date=issue_date,
        notes=notes,
        request=request,
    )


def update_document_status(
    model: Type[FinancialDocument],
    *,
    organization,
    actor,
    document_id,
    status: str,
    request=None,
):
    """Overwrite the status. Any declared status is accepted from any other."""
    if status not in model.Status.values:
        raise ValidationError(f"Invalid status '{status}'. Expected one of: {', '.join(model.Status.values)}.")

    with transaction.atomic():
        document = get_document(model, organization=organization, document_id=document_id, for_update=True)
        old_status = document.status
        document.status = status
        document.updated_by = actor_or_none(actor)
        document.save(update_fields=["status", "updated_by", "updated_at"])

    record_audit(
        organization=organization,
        actor=actor,
        action=AuditLog.Action.UPDATE,
        entity=document,
        old_values={"status": old_status},
        new_values={"status": status},
        request=request,
    )
    return document


def delete_document(model: Type[FinancialDocument], *, organization, actor, document_id, request=None):
    with transaction.atomic():
        document = get_document(model, organization=organization, document_id=document_id, for_update=True)
        if document.status == model.Status.PAID:
            raise ConflictError(f"Cannot delete a paid {model._meta.verbose_name}.")
        old_values = snapshot(document, DOCUMENT_AUDIT_FIELDS)
        document.soft_delete(actor_or_none(actor))

    record_audit(
        organization=organization,
        actor=actor,
        action=AuditLog.Action.DELETE,
        entity=document,
        old_values=old_values,
        request=request,
    )
    return document
