"""
Order emails. All senders here are best-effort: a failed send is logged and
never affects the order.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import escape

from core.api import serialize_money


logger = logging.getLogger(__name__)


def _from_email() -> str:
    return (
        (getattr(settings, "DEFAULT_FROM_EMAIL", "") or "").strip()
        or (getattr(settings, "EMAIL_HOST_USER", "") or "").strip()
        or "no-reply@localhost"
    )


def tracking_url(order, base_url: str = "") -> str:
    return f"{base_url}/store/{order.store.slug}/order/{order.order_number}"


def _send(*, subject: str, to_email: str, text_lines: list[str], html_lines: list[str]) -> None:
    msg = EmailMultiAlternatives(
        subject=subject,
        body="\n".join(text_lines),
        from_email=_from_email(),
        to=[to_email],
    )
    msg.attach_alternative("\n".join(html_lines), "text/html")
    msg.send()


def send_order_confirmation(order, *, base_url: str = "", payment_method: str = "Cash on Delivery") -> None:
    store = order.store
    currency = store.currency
    items = list(order.items.all())
    item_lines = [
        f"- {item.product_name} x {item.quantity}: {currency} {serialize_money(item.total_price)}" for item in items
    ]
    url = tracking_url(order, base_url)

    _send(
        subject=f"Order {order.order_number} confirmed - {store.name}",
        to_email=order.customer_email,
        text_lines=[
            f"Hi {order.customer_name},",
            "",
            f"Thanks for your order at {store.name}.",
            "",
            *item_lines,
            "",
            f"Subtotal: {currency} {serialize_money(order.subtotal)}",
            f"Tax: {currency} {serialize_money(order.tax_amount)}",
            f"Shipping: {currency} {serialize_money(order.shipping_amount)}",
            f"Total: {currency} {serialize_money(order.total_amount)}",
            "",
            f"Ship to: {order.shipping_address}",
            f"Payment: {payment_method}",
            f"Track your order: {url}",
        ],
        html_lines=[
            f"<p>Hi {escape(order.customer_name)},</p>",
            f"<p>Thanks for your order at <strong>{escape(store.name)}</strong>.</p>",
            "<ul>",
            *[
                f"<li>{escape(item.product_name)} x {item.quantity}: "
                f"{escape(currency)} {serialize_money(item.total_price)}</li>"
                for item in items
            ],
            "</ul>",
            f"<p><strong>Total: {escape(currency)} {serialize_money(order.total_amount)}</strong></p>",
            f'<p><a href="{escape(url)}">Track your order</a></p>',
        ],
    )


def send_payment_confirmation(order, *, base_url: str = "") -> None:
    store = order.store
    url = tracking_url(order, base_url)
    amount = f"{store.currency} {serialize_money(order.total_amount)}"
    method = order.get_payment_provider_display()

    _send(
        subject=f"Payment received for order {order.order_number}",
        to_email=order.customer_email,
        text_lines=[
            f"Hi {order.customer_name},",
            "",
            f"We received your payment of {amount} via {method}.",
            f"Track your order: {url}",
        ],
        html_lines=[
            f"<p>Hi {escape(order.customer_name)},</p>",
            f"<p>We received your payment of <strong>{escape(amount)}</strong> via {escape(method)}.</p>",
            f'<p><a href="{escape(url)}">Track your order</a></p>',
        ],
    )


def send_new_order_notification(order, *, base_url: str = "") -> None:
    admin_email = (getattr(settings, "ORDER_ADMIN_EMAIL", "") or "").strip()
    if not admin_email:
        return
    store = order.store
    total = f"{store.currency} {serialize_money(order.total_amount)}"
    item_count = order.items.count()

    _send(
        subject=f"New order {order.order_number} at {store.name}",
        to_email=admin_email,
        text_lines=[
            f"Order {order.order_number} from {order.customer_name} <{order.customer_email}>.",
            f"Items: {item_count}",
            f"Total: {total}",
            f"Payment status: {order.payment_status}",
        ],
        html_lines=[
            f"<p>Order <strong>{escape(order.order_number)}</strong> from {escape(order.customer_name)} "
            f"({escape(order.customer_email)}).</p>",
            f"<p>Items: {item_count}<br>Total: {escape(total)}<br>Payment status: {escape(order.payment_status)}</p>",
        ],
    )


def notify_safely(send, order, **kwargs) -> bool:
    try:
        send(order, **kwargs)
    except Exception:
        logger.exception("Failed to send %s for order %s", getattr(send, "__name__", "email"), order.order_number)
        return False
    return True
