"""Asynchronous order notification tasks."""

from __future__ import annotations

import structlog
from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from modules.orders.constants import PaymentMethod

logger = structlog.get_logger(__name__)

NOTIFICATIONS = {
    "placed": "Order {number} placed",
    "shipped": "Order {number} has shipped",
    "delivered": "Order {number} delivered",
    "cancelled": "Order {number} cancelled",
    "payment_completed": "Payment received for order {number}",
    "payment_failed": "Payment for order {number} could not be verified",
}


def _body(notification: str, order, tracking_number: str) -> str:
    lines = [f"Hello {order.shipping_address.get('full_name') or order.user},", ""]
    if notification == "placed":
        lines.append(f"Thank you for your order. Total: {order.total_amount}.")
        if order.payment_method == PaymentMethod.QR_CODE:
            lines.append(
                "We'll verify your payment within 2-4 hours and update your order status."
            )
        else:
            lines.append("Pay when your order arrives.")
    elif notification == "shipped":
        lines.append("Your order is on its way.")
        if tracking_number:
            lines.append(f"Tracking number: {tracking_number}")
    elif notification == "delivered":
        lines.append("Your order has been delivered.")
    elif notification == "cancelled":
        lines.append("Your order has been cancelled.")
    elif notification == "payment_completed":
        lines.append("Your payment has been verified. Your order will now be processed.")
    elif notification == "payment_failed":
        lines.append("We could not verify your payment. Please contact support.")
    return "\n".join(lines)


@shared_task(name="orders.send_order_notification")
def send_order_notification(order_id: str, notification: str, tracking_number: str = ""):
    """Email the order owner about a lifecycle change."""
    from modules.orders.models import Order

    log = logger.bind(order_id=order_id, notification=notification)

    if notification not in NOTIFICATIONS:
        log.warning("order.notification_unknown")
        return {"status": "skipped", "reason": "unknown notification"}

    order = Order.objects.select_related("user").filter(id=order_id).first()
    if order is None:
        log.warning("order.notification_order_missing")
        return {"status": "skipped", "reason": "order not found"}

    recipient = getattr(order.user, "email", "")
    if not recipient:
        log.info("order.notification_no_recipient")
        return {"status": "skipped", "reason": "no recipient"}

    subject = NOTIFICATIONS[notification].format(number=order.order_number)
    send_mail(
        subject,
        _body(notification, order, tracking_number or order.tracking_number),
        settings.DEFAULT_FROM_EMAIL,
        [recipient],
    )
    log.info("order.notification_sent")
    return {"status": "sent", "recipient": recipient, "subject": subject}
