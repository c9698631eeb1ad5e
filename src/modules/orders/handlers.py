"""Event handlers for Orders domain events.

Each handler maps a lifecycle event to a customer notification and
enqueues it on Celery.  Status changes with nothing to tell the customer
(e.g. ``processing``) are ignored.
"""

from __future__ import annotations

import structlog

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.events import OrderCreated, OrderStatusChanged, PaymentStatusChanged
from modules.orders.tasks import send_order_notification
from shared.domain.events import IEventHandler

logger = structlog.get_logger(__name__)

_STATUS_NOTIFICATIONS = {
    OrderStatus.SHIPPED: "shipped",
    OrderStatus.DELIVERED: "delivered",
    OrderStatus.CANCELLED: "cancelled",
}

_PAYMENT_NOTIFICATIONS = {
    PaymentStatus.COMPLETED: "payment_completed",
    PaymentStatus.FAILED: "payment_failed",
}


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info("order.event.created", order_id=event.aggregate_id)
        send_order_notification.delay(event.aggregate_id, "placed")


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=event.aggregate_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )
        notification = _STATUS_NOTIFICATIONS.get(event.new_status)
        if notification and event.old_status != event.new_status:
            send_order_notification.delay(
                event.aggregate_id, notification, event.tracking_number
            )


class PaymentStatusChangedHandler(IEventHandler[PaymentStatusChanged]):
    def handle(self, event: PaymentStatusChanged) -> None:
        logger.info(
            "order.event.payment_status_changed",
            order_id=event.aggregate_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )
        notification = _PAYMENT_NOTIFICATIONS.get(event.new_status)
        if notification:
            send_order_notification.delay(event.aggregate_id, notification)


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
payment_status_changed_handler = PaymentStatusChangedHandler()
