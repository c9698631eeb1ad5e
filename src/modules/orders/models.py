"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- Shipping address is a snapshot copied at creation, never a live reference.
- OrderItem snapshots the cart price at creation time (``unit_price``).
- ``total_amount`` and ``shipping_cost`` are written once at creation.
- Fulfillment and payment statuses are independent columns; transitions
  are validated by ``OrderLifecycle`` before they reach the database.
- Every status change generates a history record with the acting user.
- Orders are never deleted; cancellation is a status value.
- Order number auto-generated as human-readable identifier.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    TERMINAL_STATES,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    StatusKind,
)


class Order(BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.

    ``user`` uses PROTECT: orders outlive account clean-ups.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    shipping_address: models.JSONField = models.JSONField()
    payment_method: models.CharField = models.CharField(
        max_length=10,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CASH_ON_DELIVERY,
    )
    shipping_cost: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    total_amount: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    order_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_status: models.CharField = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    tracking_number: models.CharField = models.CharField(
        max_length=100, blank=True, default=""
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["order_status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the fulfillment status is terminal."""
        return self.order_status in TERMINAL_STATES

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.order_status}/{self.payment_status})"


class OrderItem(BaseModel):
    """A purchased cart line.

    ``unit_price`` and ``accessories`` are copied from the cart when the
    order is placed.  ``line_total`` is
    ``(unit_price + sum(accessory prices)) * quantity``, recalculated on save.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_id: models.CharField = models.CharField(max_length=64)
    size: models.CharField = models.CharField(max_length=32, blank=True, default="")
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )
    accessories: models.JSONField = models.JSONField(
        default=list, blank=True, encoder=DjangoJSONEncoder
    )
    line_total: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        extras = sum(
            (Decimal(str(a.get("price", 0))) for a in self.accessories or []),
            Decimal("0"),
        )
        self.line_total = (Decimal(str(self.unit_price)) + extras) * self.quantity
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_id} [{self.size}] x{self.quantity}"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for both status machines.

    ``kind`` tells which machine changed.  ``user`` is nullable: ``None``
    means the change was performed by the system.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    kind: models.CharField = models.CharField(
        max_length=20,
        choices=StatusKind.choices,
        default=StatusKind.FULFILLMENT,
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(max_length=20)
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.kind} {self.old_status} -> {self.new_status}"
