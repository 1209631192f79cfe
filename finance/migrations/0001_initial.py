from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def _document_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("deleted_at", models.DateTimeField(blank=True, db_index=True, null=True)),
        ("number", models.CharField(max_length=20)),
        ("issue_date", models.DateField(default=django.utils.timezone.localdate)),
        ("due_date", models.DateField()),
        ("notes", models.TextField(blank=True)),
        ("subtotal", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
        ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
        ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
        ("paid_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        (
            "created_by",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        (
            "deleted_by",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        (
            "organization",
            models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="+", to="core.organization"),
        ),
        (
            "updated_by",
            models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


def _line_item_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("position", models.PositiveIntegerField(default=0)),
        ("description", models.CharField(max_length=500)),
        ("quantity", models.DecimalField(decimal_places=4, max_digits=12)),
        ("unit_price", models.DecimalField(decimal_places=2, max_digits=14)),
        ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
        ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=_document_fields()
            + [
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("SENT", "Sent"),
                            ("PAID", "Paid"),
                            ("OVERDUE", "Overdue"),
                            ("VOID", "Void"),
                        ],
                        default="DRAFT",
                        max_length=20,
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="core.customer",
                    ),
                ),
            ],
            options={
                "ordering": ["-issue_date", "-id"],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "number"), name="uniq_invoice_number_per_org")
                ],
            },
        ),
        migrations.CreateModel(
            name="Bill",
            fields=_document_fields()
            + [
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Draft"),
                            ("APPROVED", "Approved"),
                            ("PAID", "Paid"),
                            ("OVERDUE", "Overdue"),
                            ("VOID", "Void"),
                        ],
                        default="DRAFT",
                        max_length=20,
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bills",
                        to="core.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["-issue_date", "-id"],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "number"), name="uniq_bill_number_per_org")
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLineItem",
            fields=_line_item_fields()
            + [
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="line_items",
                        to="finance.invoice",
                    ),
                ),
            ],
            options={"ordering": ["position", "id"], "abstract": False},
        ),
        migrations.CreateModel(
            name="BillLineItem",
            fields=_line_item_fields()
            + [
                (
                    "bill",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="line_items",
                        to="finance.bill",
                    ),
                ),
            ],
            options={"ordering": ["position", "id"], "abstract": False},
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("deleted_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("number", models.CharField(max_length=20)),
                ("payment_date", models.DateField(default=django.utils.timezone.localdate)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("CASH", "Cash"),
                            ("CHECK", "Check"),
                            ("CREDIT_CARD", "Credit card"),
                            ("BANK_TRANSFER", "Bank transfer"),
                        ],
                        max_length=20,
                    ),
                ),
                ("reference_number", models.CharField(blank=True, max_length=100)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "bill",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="finance.bill",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "deleted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "invoice",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="finance.invoice",
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="+", to="core.organization"
                    ),
                ),
            ],
            options={
                "ordering": ["-payment_date", "-id"],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "number"), name="uniq_payment_number_per_org"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("invoice__isnull", False), ("bill__isnull", False), _negated=True
                        ),
                        name="payment_single_target",
                    ),
                ],
            },
        ),
    ]
