"""
Guest checkout and payment settlement for online stores.

An order is committed (with its stock decrement) before any provider is
contacted; the provider's answer is written back in a second, short
transaction. Settlement re-reads the order under lock so that a callback and a
webhook racing each other mark it paid exactly once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from django.conf import settings
from django.db import transaction
from django.db.models import Count, F, Q
from django.utils import timezone

from core.audit import record_audit
from core.exceptions import GatewayError, NotFoundError, ValidationError
from core.models import AuditLog
from core.numbering import ORDER_PREFIX, create_with_number
from storefront.gateways import (
    PaymentExpectation,
    PaymentInitParams,
    get_gateway,
    initialize_payment,
    to_minor_units,
)
from storefront.models import OnlineCategory, OnlineOrder, OnlineOrderItem, OnlineProduct, OnlineStore
from storefront.notifications import (
    notify_safely,
    send_new_order_notification,
    send_order_confirmation,
    send_payment_confirmation,
)


logger = logging.getLogger(__name__)

MONEY_QUANT = Decimal("0.01")
DEFAULT_PAGE_SIZE = 20


def _money(value) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CartItem:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class CheckoutInput:
    store_slug: str
    customer_name: str
    customer_email: str
    shipping_address: str
    items: Sequence[CartItem]
    billing_address: str = ""
    notes: str = ""
    base_url: str = ""


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal


@dataclass
class CheckoutResult:
    order: OnlineOrder
    payment_required: bool
    payment_url: str | None = None
    payment_reference: str | None = None


# --- Public reads ---


def get_public_store(slug: str) -> OnlineStore:
    store = OnlineStore.objects.filter(slug=slug, is_active=True).first()
    if store is None:
        raise NotFoundError("Store not found")
    return store


def list_public_products(
    slug: str,
    *,
    search: str | None = None,
    featured: bool = False,
    category: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
):
    """
    Return (products page, total count) for an active store.

    An unknown category slug does not narrow the listing.
    """
    store = get_public_store(slug)
    products = OnlineProduct.objects.select_related("category").filter(store=store, is_active=True)
    if category:
        category_id = (
            OnlineCategory.objects.filter(store=store, slug=category).values_list("id", flat=True).first()
        )
        if category_id is not None:
            products = products.filter(category_id=category_id)
    if featured:
        products = products.filter(is_featured=True)
    if search:
        products = products.filter(name__icontains=search)
    total = products.count()
    page = list(products.order_by("-is_featured", "sort_order", "-created_at")[offset : offset + limit])
    return page, total


def get_public_product(store_slug: str, product_slug: str) -> OnlineProduct:
    store = get_public_store(store_slug)
    product = (
        OnlineProduct.objects.select_related("category")
        .filter(store=store, slug=product_slug, is_active=True)
        .first()
    )
    if product is None:
        raise NotFoundError("Product not found")
    return product


def list_public_categories(slug: str):
    """Active categories in display order, each annotated with its active `product_count`."""
    store = get_public_store(slug)
    return list(
        OnlineCategory.objects.filter(store=store, is_active=True)
        .annotate(product_count=Count("products", filter=Q(products__is_active=True)))
        .order_by("sort_order", "name")
    )


def get_store_payment_info(slug: str) -> dict:
    """Provider, currency and public key only; secrets never leave the store row."""
    store = get_public_store(slug)
    gateway = get_gateway(store.payment_provider)
    return {
        "name": store.name,
        "currency": store.currency,
        "payment_provider": store.payment_provider,
        "public_key": store.public_key or None,
        "provider_info": gateway.display_info() if gateway else None,
    }


def get_order_by_number(store_slug: str, order_number: str) -> OnlineOrder:
    store = get_public_store(store_slug)
    order = (
        OnlineOrder.objects.select_related("store")
        .prefetch_related("items")
        .filter(store=store, order_number=order_number)
        .first()
    )
    if order is None:
        raise NotFoundError("Order not found")
    return order


def find_order_by_payment_reference(reference: str, *, provider: str) -> OnlineOrder | None:
    if not reference:
        return None
    return (
        OnlineOrder.objects.select_related("store")
        .filter(payment_reference=reference, payment_provider=provider)
        .first()
    )


# --- Checkout ---


def compute_order_totals(store: OnlineStore, line_totals: Sequence[Decimal]) -> OrderTotals:
    subtotal = _money(sum(line_totals, Decimal("0")))
    tax_rate = Decimal(str(getattr(settings, "STOREFRONT_TAX_RATE", "0.16")))
    flat_shipping = Decimal(str(getattr(settings, "STOREFRONT_FLAT_SHIPPING", "10.00")))
    tax = _money(subtotal * tax_rate) if store.tax_enabled else Decimal("0.00")
    shipping = _money(flat_shipping) if store.shipping_enabled else Decimal("0.00")
    discount = Decimal("0.00")
    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax,
        shipping_amount=shipping,
        discount_amount=discount,
        total_amount=subtotal + tax + shipping - discount,
    )


def _validate_checkout(data: CheckoutInput) -> None:
    if not (data.customer_name or "").strip():
        raise ValidationError("Customer name is required.")
    if not (data.customer_email or "").strip():
        raise ValidationError("Customer email is required.")
    if not (data.shipping_address or "").strip():
        raise ValidationError("Shipping address is required.")
    if not data.items:
        raise ValidationError("Cart is empty.")
    for item in data.items:
        if int(item.quantity) <= 0:
            raise ValidationError("Quantities must be positive whole numbers.")
    product_ids = [item.product_id for item in data.items]
    if len(set(product_ids)) != len(product_ids):
        raise ValidationError("Each product may appear only once in the cart.")


def _callback_url(data: CheckoutInput, store: OnlineStore, order: OnlineOrder) -> str:
    return f"{data.base_url}/store/{store.slug}/payment/callback?orderId={order.id}"


def _init_params(data: CheckoutInput, store: OnlineStore, order: OnlineOrder) -> PaymentInitParams:
    return PaymentInitParams(
        order_id=str(order.id),
        order_number=order.order_number,
        amount=to_minor_units(order.total_amount),
        currency=store.currency,
        customer_email=order.customer_email,
        customer_name=order.customer_name,
        callback_url=_callback_url(data, store, order),
        description=f"Payment for order {order.order_number}",
    )


def _create_order(data: CheckoutInput, store: OnlineStore) -> OnlineOrder:
    """Persist the order, its item snapshots and the stock decrement. Caller holds the transaction."""
    product_ids = [item.product_id for item in data.items]
    products = {
        product.id: product
        for product in OnlineProduct.objects.filter(store=store, is_active=True, id__in=product_ids)
    }
    if len(products) != len(product_ids):
        raise ValidationError("Some products are unavailable")

    lines = []
    for item in data.items:
        product = products[item.product_id]
        quantity = int(item.quantity)
        lines.append((product, quantity, _money(product.price * quantity)))
    totals = compute_order_totals(store, [line_total for _, _, line_total in lines])

    def _create(number: str) -> OnlineOrder:
        order = OnlineOrder.objects.create(
            store=store,
            order_number=number,
            customer_name=data.customer_name.strip(),
            customer_email=data.customer_email.strip(),
            shipping_address=data.shipping_address.strip(),
            billing_address=(data.billing_address or "").strip() or data.shipping_address.strip(),
            notes=data.notes or "",
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            shipping_amount=totals.shipping_amount,
            discount_amount=totals.discount_amount,
            total_amount=totals.total_amount,
            status=OnlineOrder.Status.PENDING,
            payment_status=OnlineOrder.PaymentStatus.PENDING,
            payment_provider=store.payment_provider,
        )
        OnlineOrderItem.objects.bulk_create(
            [
                OnlineOrderItem(
                    order=order,
                    product=product,
                    product_name=product.name,
                    sku=product.slug,
                    unit_price=product.price,
                    quantity=quantity,
                    total_price=line_total,
                )
                for product, quantity, line_total in lines
            ]
        )
        return order

    order = create_with_number(
        _create,
        organization=store.organization,
        prefix=ORDER_PREFIX,
        scope=f"store:{store.id}",
    )

    for product, quantity, _ in lines:
        OnlineProduct.objects.filter(pk=product.pk).update(stock_quantity=F("stock_quantity") - quantity)

    return order


def checkout(data: CheckoutInput) -> CheckoutResult:
    _validate_checkout(data)
    store = get_public_store(data.store_slug)
    gateway = get_gateway(store.payment_provider)

    with transaction.atomic():
        order = _create_order(data, store)
        if gateway is not None and not gateway.requires_redirect:
            result = gateway.initialize(store.payment_config(), _init_params(data, store, order))
            order.status = OnlineOrder.Status.CONFIRMED
            order.payment_reference = result.payment_reference or ""
            order.save(update_fields=["status", "payment_reference", "updated_at"])

    logger.info(
        "Order %s created for store %s (total=%s provider=%s)",
        order.order_number,
        store.slug,
        order.total_amount,
        store.payment_provider,
    )

    if gateway is not None and not gateway.requires_redirect:
        notify_safely(send_order_confirmation, order, base_url=data.base_url, payment_method=gateway.display_name)
        notify_safely(send_new_order_notification, order, base_url=data.base_url)
        return CheckoutResult(order=order, payment_required=False, payment_reference=order.payment_reference)

    # Order and stock are committed; the provider is contacted outside any lock.
    result = initialize_payment(store.payment_config(), _init_params(data, store, order))

    if result.success and result.payment_reference:
        with transaction.atomic():
            OnlineOrder.objects.filter(pk=order.pk).update(
                payment_reference=result.payment_reference,
                payment_url=result.redirect_url or "",
                updated_at=timezone.now(),
            )
        order.payment_reference = result.payment_reference
        order.payment_url = result.redirect_url or ""
        return CheckoutResult(
            order=order,
            payment_required=True,
            payment_url=result.redirect_url,
            payment_reference=result.payment_reference,
        )

    error = result.error or "Failed to initialize payment"
    with transaction.atomic():
        OnlineOrder.objects.filter(pk=order.pk).update(
            payment_status=OnlineOrder.PaymentStatus.FAILED,
            payment_error=error,
            updated_at=timezone.now(),
        )
    logger.warning("Payment initialization failed for order %s (%s): %s", order.order_number, store.payment_provider, error)
    raise GatewayError(error, provider=store.payment_provider)


# --- Settlement ---


def verify_and_complete(
    order_id,
    provider_reference: str | None = None,
    *,
    base_url: str = "",
    store_slug: str | None = None,
) -> OnlineOrder:
    """
    Ask the order's provider whether it was paid and, if so, mark it paid.

    Already-paid orders are returned without contacting the provider. A failed
    or unsupported verification leaves the order untouched.
    """
    orders = OnlineOrder.objects.select_related("store").filter(pk=order_id)
    if store_slug is not None:
        orders = orders.filter(store__slug=store_slug)
    order = orders.first()
    if order is None:
        raise NotFoundError("Order not found")
    if order.is_paid:
        return order

    gateway = get_gateway(order.payment_provider)
    if gateway is None:
        logger.warning("Order %s has unknown payment provider %r", order.order_number, order.payment_provider)
        return order

    if not gateway.supports_verification:
        logger.info("Order %s awaits settlement: %s has no verification", order.order_number, gateway.display_name)
        return order

    config = order.store.payment_config(order.payment_provider)
    reference = provider_reference if gateway.callback_reference_required else order.payment_reference
    if gateway.requires_redirect and (not reference or not config.secret_key):
        logger.info("Order %s cannot be verified yet (reference or key missing)", order.order_number)
        return order

    expected = PaymentExpectation(
        reference=order.payment_reference,
        amount=to_minor_units(order.total_amount),
        currency=order.store.currency,
    )
    verification = gateway.verify(reference or "", config.secret_key, expected)
    if not verification.success:
        logger.info(
            "Payment for order %s not verified (status=%s error=%s)",
            order.order_number,
            verification.status,
            verification.error,
        )
        return order

    with transaction.atomic():
        locked = OnlineOrder.objects.select_for_update().select_related("store").get(pk=order.pk)
        if locked.is_paid:
            return locked
        locked.payment_status = OnlineOrder.PaymentStatus.PAID
        locked.status = OnlineOrder.Status.CONFIRMED
        locked.paid_at = timezone.now()
        locked.payment_error = ""
        locked.save(update_fields=["payment_status", "status", "paid_at", "payment_error", "updated_at"])

    logger.info("Order %s paid via %s", locked.order_number, locked.payment_provider)
    notify_safely(send_payment_confirmation, locked, base_url=base_url)
    notify_safely(send_new_order_notification, locked, base_url=base_url)
    return locked


# --- Tenant operations ---


def update_order_status(*, organization, actor, order_id, status: str, request=None) -> OnlineOrder:
    if status not in OnlineOrder.Status.values:
        raise ValidationError(f"Invalid status '{status}'.")

    with transaction.atomic():
        order = (
            OnlineOrder.objects.select_for_update()
            .filter(pk=order_id, store__organization=organization)
            .first()
        )
        if order is None:
            raise NotFoundError("Order not found")
        old_status = order.status
        order.status = status
        order.save(update_fields=["status", "updated_at"])

    record_audit(
        organization=organization,
        actor=actor,
        action=AuditLog.Action.UPDATE,
        entity=order,
        old_values={"status": old_status},
        new_values={"status": status},
        request=request,
    )
    return order
