"""Order service layer (Use Cases).

Orchestrates order placement and the two status machines.  All write
operations are atomic; the service defines the unit-of-work boundary and
holds the order row lock from read to write, so at most one transition
per order is in flight.

Business rules enforced:
- Orders are placed from a validated, priced draft (``OrderDraftBuilder``).
- Fulfillment and payment transitions are validated by ``OrderLifecycle``.
- Status and tracking number are written together or not at all.
- History is recorded on every status change, with the acting user.
- Domain events are published only after the transaction commits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

import structlog
from django.conf import settings
from django.db import transaction

from modules.orders.constants import (
    DEFAULT_COUNTRY,
    DEFAULT_PAGE_SIZE,
    OrderStatus,
    PaymentMethod,
    StatusKind,
)
from modules.orders.drafts import AddressInput, OrderDraftBuilder
from modules.orders.events import OrderCreated, OrderStatusChanged, PaymentStatusChanged
from modules.orders.exceptions import OrderNotFound
from modules.orders.lifecycle import OrderLifecycle
from modules.orders.pricing import PricingPolicy
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.orders.dtos import CartLineItemDTO, OrderOutputDTO, ShippingQuoteDTO
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


def _publish_on_commit(event: DomainEvent) -> None:
    transaction.on_commit(lambda: event_bus.publish(event))


class OrderService:
    """Application service for Order use-cases.

    Receives the repository and the pricing policy via constructor
    injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        pricing: Optional[PricingPolicy] = None,
        lifecycle: Optional[OrderLifecycle] = None,
    ) -> None:
        self._order_repo = order_repository
        self._pricing = pricing or PricingPolicy.from_settings()
        self._builder = OrderDraftBuilder(
            self._pricing,
            default_country=getattr(settings, "ORDERS_DEFAULT_COUNTRY", DEFAULT_COUNTRY),
        )
        self._lifecycle = lifecycle or OrderLifecycle()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def quote(
        self, cart: Sequence[CartLineItemDTO], address: AddressInput
    ) -> ShippingQuoteDTO:
        """Preview shipping and total; never persists anything."""
        return self._pricing.quote(cart, address)

    def check_draft(
        self,
        cart: Optional[Sequence[object]],
        address: AddressInput,
        payment_method: object,
    ) -> Dict[str, List[str]]:
        """Report draft problems without pricing or persisting anything."""
        return self._builder.validate(cart, address, payment_method)

    @transaction.atomic
    def create_order(
        self,
        user_id: object,
        cart: Sequence[CartLineItemDTO],
        address: AddressInput,
        payment_method: PaymentMethod | str,
    ) -> OrderOutputDTO:
        """Build a draft from the cart and persist it.

        Raises:
            OrderValidationError: the cart, address or payment method is
                invalid; the repository is not called.
        """
        log = logger.bind(user_id=str(user_id))
        log.info("order.creation_started", item_count=len(cart))

        draft = self._builder.build(cart, address, payment_method)
        order = self._order_repo.create(draft, user_id)

        self._order_repo.add_history(
            order_id=order.id,
            kind=StatusKind.FULFILLMENT,
            new_status=OrderStatus.PENDING,
            user_id=user_id,
            notes="Order created",
        )

        log.info(
            "order.created",
            order_id=order.id,
            total_amount=str(order.total_amount),
            payment_method=order.payment_method.value,
        )
        _publish_on_commit(
            OrderCreated(aggregate_id=order.id, payment_method=order.payment_method.value)
        )
        return self._order_repo.get_by_id(order.id) or order

    @transaction.atomic
    def update_status(
        self,
        order_id: str,
        new_status: str,
        tracking_number: Optional[str] = None,
        user_id: Optional[object] = None,
        notes: str = "",
    ) -> OrderOutputDTO:
        """Transition the fulfillment status, optionally recording tracking.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: transition is not allowed.
        """
        order = self._get_for_update(order_id)
        log = logger.bind(
            order_id=str(order_id),
            current_status=order.order_status,
            new_status=new_status,
        )

        updated = self._lifecycle.transition(order, new_status, tracking_number)
        tracking_changed = updated.tracking_number != order.tracking_number
        result = self._order_repo.apply_transition(
            order.id,
            order_status=updated.order_status,
            tracking_number=updated.tracking_number if tracking_changed else None,
        )

        self._order_repo.add_history(
            order_id=order.id,
            kind=StatusKind.FULFILLMENT,
            old_status=order.order_status,
            new_status=updated.order_status,
            user_id=user_id,
            notes=notes,
        )

        log.info("order.status_updated", tracking_changed=tracking_changed)
        _publish_on_commit(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=order.order_status.value,
                new_status=updated.order_status.value,
                tracking_number=result.tracking_number,
            )
        )
        return self._order_repo.get_by_id(order.id) or result

    @transaction.atomic
    def update_payment_status(
        self,
        order_id: str,
        new_status: str,
        user_id: Optional[object] = None,
        notes: str = "",
    ) -> OrderOutputDTO:
        """Record an operator's payment verification decision.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: transition is not allowed.
        """
        order = self._get_for_update(order_id)
        log = logger.bind(
            order_id=str(order_id),
            current_status=order.payment_status,
            new_status=new_status,
        )

        updated = self._lifecycle.update_payment_status(order, new_status)
        result = self._order_repo.apply_transition(
            order.id, payment_status=updated.payment_status
        )

        self._order_repo.add_history(
            order_id=order.id,
            kind=StatusKind.PAYMENT,
            old_status=order.payment_status,
            new_status=updated.payment_status,
            user_id=user_id,
            notes=notes,
        )

        log.info("order.payment_status_updated")
        _publish_on_commit(
            PaymentStatusChanged(
                aggregate_id=order.id,
                old_status=order.payment_status.value,
                new_status=updated.payment_status.value,
            )
        )
        return self._order_repo.get_by_id(order.id) or result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> OrderOutputDTO:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        user_id: Optional[object] = None,
    ) -> Tuple[List[OrderOutputDTO], int]:
        """Return one page of orders (optionally one status, one owner)."""
        return self._order_repo.list_by_status(
            status=status, page=page, page_size=page_size, user_id=user_id
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_for_update(self, order_id: str) -> OrderOutputDTO:
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order
