"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` to ensure
the Order aggregate (Order + OrderItems) is persisted atomically.

Concurrency control on status updates uses ``select_for_update()``
inside the caller's transaction; the service holds the lock from read
to write.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.orders.dtos import OrderDraftDTO, OrderOutputDTO
from modules.orders.exceptions import OrderNotFound
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, draft: OrderDraftDTO, user_id: Optional[object]) -> OrderOutputDTO:
        """Create an order with its items atomically.

        Prices and totals are written exactly as carried by the draft.
        """
        if not draft.items:
            raise ValueError("An order must contain at least one item.")

        order = Order(
            user_id=user_id,
            shipping_address=draft.shipping_address.model_dump(),
            payment_method=draft.payment_method,
            shipping_cost=draft.shipping_cost,
            total_amount=draft.total_amount,
        )
        order.save()

        for item in draft.items:
            OrderItem(
                order=order,
                product_id=item.product_id,
                size=item.size,
                quantity=item.quantity,
                unit_price=item.unit_price,
                accessories=[a.model_dump() for a in item.accessories],
            ).save()

        logger.info(
            "order.persisted",
            order_id=str(order.id),
            item_count=len(draft.items),
        )
        return self._load(str(order.id))

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[OrderOutputDTO]:
        """Retrieve an order with eager-loaded items and history.

        Returns ``None`` for non-existent or invalid IDs.
        """
        order = self._first(lambda: self._queryset().filter(id=id))
        return OrderOutputDTO.from_entity(order) if order else None

    def get_for_update(self, id: str) -> Optional[OrderOutputDTO]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must be called inside ``transaction.atomic``.  Returns ``None``
        for non-existent or invalid IDs.
        """
        order = self._first(lambda: self._queryset().select_for_update().filter(id=id))
        return OrderOutputDTO.from_entity(order) if order else None

    def list_by_status(
        self,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
        user_id: Optional[object] = None,
    ) -> Tuple[List[OrderOutputDTO], int]:
        """Return one page of orders, newest first, and the page count.

        Pages past the end yield an empty list.
        """
        filters: Dict[str, Any] = {}
        if status:
            filters["order_status"] = status
        if user_id is not None:
            filters["user_id"] = user_id

        queryset = self._queryset().filter(**filters).order_by("-created_at", "-id")
        total = queryset.count()
        total_pages = math.ceil(total / page_size) if total else 0

        page = max(page, 1)
        offset = (page - 1) * page_size
        orders = [
            OrderOutputDTO.from_entity(o) for o in queryset[offset : offset + page_size]
        ]
        return orders, total_pages

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @transaction.atomic
    def apply_transition(
        self,
        id: str,
        order_status: Optional[str] = None,
        tracking_number: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> OrderOutputDTO:
        """Write status fields (and tracking) in a single UPDATE."""
        changes: Dict[str, Any] = {}
        if order_status is not None:
            changes["order_status"] = order_status
        if tracking_number is not None:
            changes["tracking_number"] = tracking_number
        if payment_status is not None:
            changes["payment_status"] = payment_status

        order = self._first(lambda: Order.objects.select_for_update().filter(id=id))
        if not order:
            raise OrderNotFound(f"Order {id} not found.")

        for field, value in changes.items():
            setattr(order, field, value)
        if changes:
            order.save(update_fields=list(changes))

        logger.info("order.transition_applied", order_id=str(id), **changes)
        return self._load(str(id))

    @transaction.atomic
    def add_history(
        self,
        order_id: str,
        kind: str,
        new_status: str,
        old_status: Optional[str] = None,
        user_id: Optional[object] = None,
        notes: str = "",
    ) -> None:
        OrderStatusHistory(
            order_id=order_id,
            kind=kind,
            old_status=old_status,
            new_status=new_status,
            user_id=user_id,
            notes=notes,
        ).save()

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            kind=kind,
            old_status=old_status,
            new_status=new_status,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _queryset():
        return Order.objects.prefetch_related("items", "status_history")

    @staticmethod
    def _first(build_queryset: Callable[[], QuerySet]) -> Optional[Order]:
        """Return the first row, or ``None`` when the id is not a valid UUID."""
        try:
            return build_queryset().first()
        except (ValueError, ValidationError):
            return None

    def _load(self, id: str) -> OrderOutputDTO:
        order = self.get_by_id(id)
        if order is None:
            raise OrderNotFound(f"Order {id} not found.")
        return order
