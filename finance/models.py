from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from core.models import Customer, SoftDeleteModel, Vendor
from core.numbering import BILL_PREFIX, INVOICE_PREFIX


class FinancialDocument(SoftDeleteModel):
    """
    Shared shape of invoices and bills.

    Totals are derived from line items once, at creation. `paid_amount` moves
    only through payment apply/reverse and may exceed `total_amount`.
    """

    NUMBER_PREFIX = ""
    COUNTERPARTY_FIELD = ""

    number = models.CharField(max_length=20)
    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField()
    notes = models.TextField(blank=True)
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="+",
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def __str__(self):
        return self.number

    @property
    def balance_due(self) -> Decimal:
        return max(Decimal("0.00"), self.total_amount - self.paid_amount)

    @property
    def overpaid_amount(self) -> Decimal:
        return max(Decimal("0.00"), self.paid_amount - self.total_amount)

    @property
    def counterparty(self):
        return getattr(self, self.COUNTERPARTY_FIELD)

    @classmethod
    def counterparty_model(cls):
        return cls._meta.get_field(cls.COUNTERPARTY_FIELD).related_model


class Invoice(FinancialDocument):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        SENT = "SENT", "Sent"
        PAID = "PAID", "Paid"
        OVERDUE = "OVERDUE", "Overdue"
        VOID = "VOID", "Void"

    NUMBER_PREFIX = INVOICE_PREFIX
    COUNTERPARTY_FIELD = "customer"
    # Status a document falls back to while it is (partly) unpaid.
    OPEN_STATUS = Status.SENT

    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="invoices")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)

    class Meta:
        ordering = ["-issue_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "number"],
                name="uniq_invoice_number_per_org",
            )
        ]


class Bill(FinancialDocument):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        APPROVED = "APPROVED", "Approved"
        PAID = "PAID", "Paid"
        OVERDUE = "OVERDUE", "Overdue"
        VOID = "VOID", "Void"

    NUMBER_PREFIX = BILL_PREFIX
    COUNTERPARTY_FIELD = "vendor"
    OPEN_STATUS = Status.APPROVED

    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name="bills")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)

    class Meta:
        ordering = ["-issue_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "number"],
                name="uniq_bill_number_per_org",
            )
        ]


class LineItem(models.Model):
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=500)
    quantity = models.DecimalField(max_digits=12, decimal_places=4)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    amount = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        abstract = True
        ordering = ["position", "id"]

    def __str__(self):
        return f"{self.description} x {self.quantity}"


class InvoiceLineItem(LineItem):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="line_items")

    class Meta(LineItem.Meta):
        pass


class BillLineItem(LineItem):
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name="line_items")

    class Meta(LineItem.Meta):
        pass


class Payment(SoftDeleteModel):
    class Method(models.TextChoices):
        CASH = "CASH", "Cash"
        CHECK = "CHECK", "Check"
        CREDIT_CARD = "CREDIT_CARD", "Credit card"
        BANK_TRANSFER = "BANK_TRANSFER", "Bank transfer"

    number = models.CharField(max_length=20)
    payment_date = models.DateField(default=timezone.localdate)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    method = models.CharField(max_length=20, choices=Method.choices)
    reference_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="payments",
    )
    bill = models.ForeignKey(
        Bill,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="payments",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-payment_date", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "number"],
                name="uniq_payment_number_per_org",
            ),
            models.CheckConstraint(
                condition=~(Q(invoice__isnull=False) & Q(bill__isnull=False)),
                name="payment_single_target",
            ),
        ]

    def __str__(self):
        return self.number

    @property
    def target(self):
        return self.invoice or self.bill
