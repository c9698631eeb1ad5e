"""Order lifecycle state machines.

Two parallel machines live on every order:

- Fulfillment (``order_status``): any status may move to any other,
  so an operator can correct a mistaken status, except that nothing
  leaves ``delivered`` or ``cancelled``.  Entering ``shipped`` or
  ``delivered`` may record a tracking number.
- Payment (``payment_status``): ``pending`` moves to ``completed`` or
  ``failed``; both are final.

The machines never touch each other's fields, and no combination of the
two is forbidden.  ``OrderLifecycle`` holds no state: each call returns a
new ``OrderOutputDTO`` or raises ``InvalidOrderStatus``, and the caller
persists the result.
"""

from __future__ import annotations

from typing import Optional

import structlog

from modules.orders.constants import (
    PAYMENT_TRANSITIONS,
    TERMINAL_STATES,
    TRACKING_STATES,
    OrderStatus,
    PaymentStatus,
    StatusKind,
)
from modules.orders.dtos import OrderOutputDTO
from modules.orders.exceptions import InvalidOrderStatus

logger = structlog.get_logger(__name__)


def _coerce_status(choices, value, current: str, kind: str):
    try:
        return choices(value)
    except ValueError:
        raise InvalidOrderStatus(
            current, str(value), kind=kind, reason="Unknown status."
        ) from None


class OrderLifecycle:
    """Validates and applies status transitions to an order value."""

    # ------------------------------------------------------------------
    # Fulfillment
    # ------------------------------------------------------------------

    def can_transition_to(self, order: OrderOutputDTO, target: str) -> bool:
        return order.order_status not in TERMINAL_STATES and target in OrderStatus.values

    def transition(
        self,
        order: OrderOutputDTO,
        target: str,
        tracking_number: Optional[str] = None,
    ) -> OrderOutputDTO:
        """Move the order's fulfillment status to *target*.

        Raises:
            InvalidOrderStatus: unknown target, or the order is terminal.
        """
        current = order.order_status
        new_status = _coerce_status(OrderStatus, target, current, StatusKind.FULFILLMENT)

        if current in TERMINAL_STATES:
            logger.warning(
                "order.invalid_transition",
                order_id=order.id,
                current_status=current,
                new_status=new_status,
            )
            raise InvalidOrderStatus(
                current,
                new_status,
                kind=StatusKind.FULFILLMENT,
                reason=f"Order is already {current.value}.",
            )

        changes = {"order_status": new_status}
        tracking = (tracking_number or "").strip()
        if new_status in TRACKING_STATES and tracking:
            changes["tracking_number"] = tracking

        return order.model_copy(update=changes)

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def can_update_payment_status(self, order: OrderOutputDTO, target: str) -> bool:
        return target in PAYMENT_TRANSITIONS.get(order.payment_status, set())

    def update_payment_status(self, order: OrderOutputDTO, target: str) -> OrderOutputDTO:
        """Record the operator's payment verification decision.

        Raises:
            InvalidOrderStatus: unknown target, or the move is not allowed
                from the current payment status.
        """
        current = order.payment_status
        new_status = _coerce_status(PaymentStatus, target, current, StatusKind.PAYMENT)

        if not self.can_update_payment_status(order, new_status):
            logger.warning(
                "order.invalid_payment_transition",
                order_id=order.id,
                current_status=current,
                new_status=new_status,
            )
            raise InvalidOrderStatus(current, new_status, kind=StatusKind.PAYMENT)

        return order.model_copy(update={"payment_status": new_status})
