from decimal import Decimal

from django.db import models

from core.models import Organization
from .gateways.base import PaymentConfig


class PaymentProvider(models.TextChoices):
    COD = "COD", "Cash on delivery"
    STRIPE = "STRIPE", "Stripe"
    PAYSTACK = "PAYSTACK", "Paystack"
    FLUTTERWAVE = "FLUTTERWAVE", "Flutterwave"
    LEMONSQUEEZY = "LEMONSQUEEZY", "Lemon Squeezy"


class OnlineStore(models.Model):
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="online_stores")
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    description = models.TextField(blank=True)
    currency = models.CharField(max_length=3, default="USD")
    is_active = models.BooleanField(default=True)
    tax_enabled = models.BooleanField(default=True)
    shipping_enabled = models.BooleanField(default=True)
    payment_provider = models.CharField(
        max_length=20,
        choices=PaymentProvider.choices,
        default=PaymentProvider.COD,
    )

    # Provider credentials; only the active provider's pair is ever used.
    stripe_public_key = models.CharField(max_length=255, blank=True)
    stripe_secret_key = models.CharField(max_length=255, blank=True)
    paystack_public_key = models.CharField(max_length=255, blank=True)
    paystack_secret_key = models.CharField(max_length=255, blank=True)
    flutterwave_public_key = models.CharField(max_length=255, blank=True)
    flutterwave_secret_key = models.CharField(max_length=255, blank=True)
    flutterwave_webhook_hash = models.CharField(max_length=255, blank=True)
    lemonsqueezy_api_key = models.CharField(max_length=255, blank=True)
    lemonsqueezy_store_id = models.CharField(max_length=64, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def payment_config(self, provider: str | None = None) -> PaymentConfig:
        provider = provider or self.payment_provider
        if provider == PaymentProvider.STRIPE:
            return PaymentConfig(provider, public_key=self.stripe_public_key, secret_key=self.stripe_secret_key)
        if provider == PaymentProvider.PAYSTACK:
            return PaymentConfig(provider, public_key=self.paystack_public_key, secret_key=self.paystack_secret_key)
        if provider == PaymentProvider.FLUTTERWAVE:
            return PaymentConfig(
                provider,
                public_key=self.flutterwave_public_key,
                secret_key=self.flutterwave_secret_key,
            )
        if provider == PaymentProvider.LEMONSQUEEZY:
            return PaymentConfig(provider, secret_key=self.lemonsqueezy_api_key, store_id=self.lemonsqueezy_store_id)
        return PaymentConfig(provider)

    @property
    def public_key(self) -> str:
        return self.payment_config().public_key


class OnlineCategory(models.Model):
    store = models.ForeignKey(OnlineStore, on_delete=models.CASCADE, related_name="categories")
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["sort_order", "name"]
        verbose_name_plural = "online categories"
        constraints = [
            models.UniqueConstraint(fields=["store", "slug"], name="uniq_category_slug_per_store"),
        ]

    def __str__(self):
        return self.name


class OnlineProduct(models.Model):
    store = models.ForeignKey(OnlineStore, on_delete=models.CASCADE, related_name="products")
    category = models.ForeignKey(
        OnlineCategory,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="products",
    )
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=14, decimal_places=2)
    # Decremented at checkout without a floor; may go negative.
    stock_quantity = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    is_featured = models.BooleanField(default=False)
    sort_order = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-is_featured", "sort_order", "-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["store", "slug"], name="uniq_product_slug_per_store"),
        ]

    def __str__(self):
        return self.name


class OnlineOrder(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        CONFIRMED = "CONFIRMED", "Confirmed"
        PROCESSING = "PROCESSING", "Processing"
        SHIPPED = "SHIPPED", "Shipped"
        DELIVERED = "DELIVERED", "Delivered"
        CANCELLED = "CANCELLED", "Cancelled"

    class PaymentStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        PAID = "PAID", "Paid"
        FAILED = "FAILED", "Failed"
        REFUNDED = "REFUNDED", "Refunded"

    store = models.ForeignKey(OnlineStore, on_delete=models.PROTECT, related_name="orders")
    order_number = models.CharField(max_length=20)
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField(max_length=255)
    shipping_address = models.TextField()
    billing_address = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    shipping_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_provider = models.CharField(max_length=20, choices=PaymentProvider.choices)
    payment_reference = models.CharField(max_length=255, blank=True, db_index=True)
    payment_url = models.TextField(blank=True)
    payment_error = models.TextField(blank=True)
    paid_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["store", "order_number"], name="uniq_order_number_per_store"),
        ]

    def __str__(self):
        return self.order_number

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PaymentStatus.PAID


class OnlineOrderItem(models.Model):
    """Snapshot of a product at purchase time."""

    order = models.ForeignKey(OnlineOrder, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(
        OnlineProduct,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=255)
    sku = models.CharField(max_length=255, blank=True)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    quantity = models.PositiveIntegerField()
    total_price = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"
