from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


PROVIDER_CHOICES = [
    ("COD", "Cash on delivery"),
    ("STRIPE", "Stripe"),
    ("PAYSTACK", "Paystack"),
    ("FLUTTERWAVE", "Flutterwave"),
    ("LEMONSQUEEZY", "Lemon Squeezy"),
]


def _money_field():
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="OnlineStore",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=255, unique=True)),
                ("description", models.TextField(blank=True)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("is_active", models.BooleanField(default=True)),
                ("tax_enabled", models.BooleanField(default=True)),
                ("shipping_enabled", models.BooleanField(default=True)),
                ("payment_provider", models.CharField(choices=PROVIDER_CHOICES, default="COD", max_length=20)),
                ("stripe_public_key", models.CharField(blank=True, max_length=255)),
                ("stripe_secret_key", models.CharField(blank=True, max_length=255)),
                ("paystack_public_key", models.CharField(blank=True, max_length=255)),
                ("paystack_secret_key", models.CharField(blank=True, max_length=255)),
                ("flutterwave_public_key", models.CharField(blank=True, max_length=255)),
                ("flutterwave_secret_key", models.CharField(blank=True, max_length=255)),
                ("flutterwave_webhook_hash", models.CharField(blank=True, max_length=255)),
                ("lemonsqueezy_api_key", models.CharField(blank=True, max_length=255)),
                ("lemonsqueezy_store_id", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="online_stores",
                        to="core.organization",
                    ),
                ),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="OnlineProduct",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("slug", models.SlugField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("stock_quantity", models.IntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("is_featured", models.BooleanField(default=False)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="products",
                        to="storefront.onlinestore",
                    ),
                ),
            ],
            options={
                "ordering": ["-is_featured", "sort_order", "-created_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("store", "slug"), name="uniq_product_slug_per_store"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OnlineOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=20)),
                ("customer_name", models.CharField(max_length=255)),
                ("customer_email", models.EmailField(max_length=255)),
                ("shipping_address", models.TextField()),
                ("billing_address", models.TextField(blank=True)),
                ("notes", models.TextField(blank=True)),
                ("subtotal", _money_field()),
                ("tax_amount", _money_field()),
                ("shipping_amount", _money_field()),
                ("discount_amount", _money_field()),
                ("total_amount", _money_field()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("CONFIRMED", "Confirmed"),
                            ("PROCESSING", "Processing"),
                            ("SHIPPED", "Shipped"),
                            ("DELIVERED", "Delivered"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PAID", "Paid"),
                            ("FAILED", "Failed"),
                            ("REFUNDED", "Refunded"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("payment_provider", models.CharField(choices=PROVIDER_CHOICES, max_length=20)),
                ("payment_reference", models.CharField(blank=True, db_index=True, max_length=255)),
                ("payment_url", models.TextField(blank=True)),
                ("payment_error", models.TextField(blank=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="storefront.onlinestore",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "constraints": [
                    models.UniqueConstraint(fields=("store", "order_number"), name="uniq_order_number_per_store"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OnlineOrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, max_length=255)),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=14)),
                ("quantity", models.PositiveIntegerField()),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="storefront.onlineorder",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="order_items",
                        to="storefront.onlineproduct",
                    ),
                ),
            ],
            options={"ordering": ["id"]},
        ),
    ]
