"""Unit tests for the order status state machines.

Covers:
- Fulfillment: every (source, target) pair, terminal states, unknown targets.
- Tracking number handling on entry to shipped/delivered.
- Payment: pending -> completed/failed only.
- Independence of the two machines.
"""

from __future__ import annotations

from decimal import Decimal
from itertools import product

import pytest

from modules.orders.constants import (
    TERMINAL_STATES,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from modules.orders.dtos import OrderItemDTO, OrderOutputDTO, ShippingAddressDTO
from modules.orders.exceptions import InvalidOrderStatus
from modules.orders.lifecycle import OrderLifecycle

pytestmark = pytest.mark.unit

NON_TERMINAL = [s for s in OrderStatus if s not in TERMINAL_STATES]


def make_order(**overrides) -> OrderOutputDTO:
    data = {
        "id": "0192f0c2-0000-7000-8000-000000000001",
        "items": [
            OrderItemDTO(product_id="p1", quantity=1, unit_price=Decimal("40")),
        ],
        "shipping_address": ShippingAddressDTO(city="Mumbai"),
        "payment_method": PaymentMethod.QR_CODE,
        "shipping_cost": Decimal("5"),
        "total_amount": Decimal("45"),
    }
    data.update(overrides)
    return OrderOutputDTO(**data)


@pytest.fixture()
def lifecycle() -> OrderLifecycle:
    return OrderLifecycle()


class TestFulfillmentTransitions:
    @pytest.mark.parametrize(("source", "target"), list(product(NON_TERMINAL, OrderStatus)))
    def test_non_terminal_source_accepts_any_target(self, lifecycle, source, target):
        order = make_order(order_status=source)

        result = lifecycle.transition(order, target)

        assert result.order_status == target
        assert lifecycle.can_transition_to(order, target) is True

    @pytest.mark.parametrize(
        ("source", "target"), list(product(sorted(TERMINAL_STATES), OrderStatus))
    )
    def test_terminal_source_rejects_every_target(self, lifecycle, source, target):
        order = make_order(order_status=source)

        with pytest.raises(InvalidOrderStatus) as exc_info:
            lifecycle.transition(order, target)

        assert exc_info.value.current == source
        assert exc_info.value.target == target
        assert lifecycle.can_transition_to(order, target) is False

    def test_cancelled_order_is_left_unchanged(self, lifecycle):
        order = make_order(order_status=OrderStatus.CANCELLED, tracking_number="TRK9")

        with pytest.raises(InvalidOrderStatus):
            lifecycle.transition(order, OrderStatus.PROCESSING, "TRK10")

        assert order.order_status == OrderStatus.CANCELLED
        assert order.tracking_number == "TRK9"

    def test_error_names_both_states(self, lifecycle):
        order = make_order(order_status=OrderStatus.DELIVERED)

        with pytest.raises(InvalidOrderStatus, match="from delivered to pending"):
            lifecycle.transition(order, "pending")

    @pytest.mark.parametrize("target", ["refunded", "SHIPPED", "", None])
    def test_unknown_target_is_rejected(self, lifecycle, target):
        order = make_order()

        with pytest.raises(InvalidOrderStatus, match="Unknown status"):
            lifecycle.transition(order, target)
        assert lifecycle.can_transition_to(order, target) is False

    def test_transition_returns_new_value(self, lifecycle):
        order = make_order()

        result = lifecycle.transition(order, OrderStatus.PROCESSING)

        assert result is not order
        assert order.order_status == OrderStatus.PENDING


class TestTrackingNumber:
    def test_delivered_keeps_existing_tracking(self, lifecycle):
        order = make_order(order_status=OrderStatus.SHIPPED, tracking_number="TRK1")

        result = lifecycle.transition(order, OrderStatus.DELIVERED)

        assert result.order_status == OrderStatus.DELIVERED
        assert result.tracking_number == "TRK1"

    @pytest.mark.parametrize("target", [OrderStatus.SHIPPED, OrderStatus.DELIVERED])
    def test_supplied_tracking_overwrites(self, lifecycle, target):
        order = make_order(order_status=OrderStatus.SHIPPED, tracking_number="OLD")

        result = lifecycle.transition(order, target, " NEW123 ")

        assert result.tracking_number == "NEW123"

    def test_tracking_is_optional(self, lifecycle):
        result = lifecycle.transition(make_order(), OrderStatus.SHIPPED)

        assert result.tracking_number == ""

    @pytest.mark.parametrize("tracking", [None, "", "   "])
    def test_blank_tracking_does_not_erase(self, lifecycle, tracking):
        order = make_order(order_status=OrderStatus.SHIPPED, tracking_number="TRK1")

        result = lifecycle.transition(order, OrderStatus.SHIPPED, tracking)

        assert result.tracking_number == "TRK1"

    @pytest.mark.parametrize(
        "target", [OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.CANCELLED]
    )
    def test_other_targets_ignore_tracking(self, lifecycle, target):
        order = make_order(order_status=OrderStatus.SHIPPED, tracking_number="TRK1")

        result = lifecycle.transition(order, target, "IGNORED")

        assert result.tracking_number == "TRK1"


class TestPaymentTransitions:
    @pytest.mark.parametrize("target", [PaymentStatus.COMPLETED, PaymentStatus.FAILED])
    def test_pending_can_be_decided(self, lifecycle, target):
        order = make_order()

        result = lifecycle.update_payment_status(order, target)

        assert result.payment_status == target

    @pytest.mark.parametrize(
        ("source", "target"),
        [
            (PaymentStatus.PENDING, PaymentStatus.PENDING),
            (PaymentStatus.COMPLETED, PaymentStatus.FAILED),
            (PaymentStatus.COMPLETED, PaymentStatus.PENDING),
            (PaymentStatus.FAILED, PaymentStatus.COMPLETED),
            (PaymentStatus.FAILED, PaymentStatus.PENDING),
        ],
    )
    def test_illegal_moves_are_rejected(self, lifecycle, source, target):
        order = make_order(payment_status=source)

        with pytest.raises(InvalidOrderStatus) as exc_info:
            lifecycle.update_payment_status(order, target)

        assert exc_info.value.kind == "payment"
        assert lifecycle.can_update_payment_status(order, target) is False

    def test_unknown_payment_status_is_rejected(self, lifecycle):
        with pytest.raises(InvalidOrderStatus, match="Unknown status"):
            lifecycle.update_payment_status(make_order(), "refunded")

    def test_cash_on_delivery_may_be_recorded(self, lifecycle):
        order = make_order(payment_method=PaymentMethod.CASH_ON_DELIVERY)

        result = lifecycle.update_payment_status(order, PaymentStatus.COMPLETED)

        assert result.payment_status == PaymentStatus.COMPLETED


class TestIndependence:
    def test_qr_payment_completion_leaves_fulfillment_pending(self, lifecycle):
        order = make_order()

        result = lifecycle.update_payment_status(order, PaymentStatus.COMPLETED)

        assert result.payment_status == PaymentStatus.COMPLETED
        assert result.order_status == OrderStatus.PENDING

    def test_fulfillment_never_touches_payment(self, lifecycle):
        order = make_order(payment_status=PaymentStatus.FAILED)

        for target in (OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.CANCELLED):
            order = lifecycle.transition(order, target)
            assert order.payment_status == PaymentStatus.FAILED

    @pytest.mark.parametrize(
        ("fulfillment", "payment"),
        [
            (OrderStatus.DELIVERED, PaymentStatus.COMPLETED),
            (OrderStatus.CANCELLED, PaymentStatus.FAILED),
        ],
    )
    def test_payment_can_be_decided_after_terminal_fulfillment(
        self, lifecycle, fulfillment, payment
    ):
        order = make_order(order_status=fulfillment)

        result = lifecycle.update_payment_status(order, payment)

        assert result.order_status == fulfillment
        assert result.payment_status == payment

    def test_interleaved_calls_touch_only_their_own_field(self, lifecycle):
        order = make_order()
        order = lifecycle.transition(order, OrderStatus.PROCESSING)
        order = lifecycle.update_payment_status(order, PaymentStatus.COMPLETED)
        order = lifecycle.transition(order, OrderStatus.SHIPPED, "TRK1")
        order = lifecycle.transition(order, OrderStatus.DELIVERED)

        assert order.order_status == OrderStatus.DELIVERED
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.tracking_number == "TRK1"
