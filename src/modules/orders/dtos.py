"""Order DTOs for the engine and the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  DTOs are
immutable (``frozen=True``) and use camelCase aliases so that
``model_dump(by_alias=True)`` yields the wire/storage record.

- ``CartLineItemDTO``: a cart line as held by the storefront.
- ``ShippingAddressDTO``: destination snapshot.
- ``OrderDraftDTO``: the client-assembled payload prior to persistence.
- ``OrderOutputDTO``: a materialized order, as served by the repository.
- ``ShippingQuoteDTO``: pricing preview.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from modules.orders.constants import (
    DEFAULT_COUNTRY,
    TERMINAL_STATES,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# ---------------------------------------------------------------------------
# Cart / input DTOs
# ---------------------------------------------------------------------------


class AccessoryDTO(_WireModel):
    name: str
    price: Decimal = Field(default=Decimal("0"), ge=0)


class CartLineItemDTO(_WireModel):
    """A single cart line.

    ``price`` is the unit price captured when the product was added to
    the cart; it is never re-fetched from the catalog.
    """

    product_id: str
    price: Decimal = Field(ge=0)
    size: str = ""
    quantity: int
    accessories: List[AccessoryDTO] = Field(default_factory=list)

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v

    @property
    def line_total(self) -> Decimal:
        extras = sum((a.price for a in self.accessories), Decimal("0"))
        return (self.price + extras) * self.quantity


class ShippingAddressDTO(_WireModel):
    full_name: str = ""
    phone: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = DEFAULT_COUNTRY


# ---------------------------------------------------------------------------
# Order DTOs
# ---------------------------------------------------------------------------


class OrderItemDTO(_WireModel):
    product_id: str
    size: str = ""
    quantity: int
    unit_price: Decimal
    accessories: List[AccessoryDTO] = Field(default_factory=list)

    @property
    def line_total(self) -> Decimal:
        extras = sum((a.price for a in self.accessories), Decimal("0"))
        return (self.unit_price + extras) * self.quantity

    @classmethod
    def from_cart_line(cls, line: CartLineItemDTO) -> OrderItemDTO:
        return cls(
            product_id=line.product_id,
            size=line.size,
            quantity=line.quantity,
            unit_price=line.price,
            accessories=list(line.accessories),
        )


class OrderDraftDTO(_WireModel):
    """Immutable order-creation request assembled by ``OrderDraftBuilder``."""

    items: Tuple[OrderItemDTO, ...]
    shipping_address: ShippingAddressDTO
    payment_method: PaymentMethod
    shipping_cost: Decimal
    total_amount: Decimal

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON-ready body accepted by ``POST /orders``.

        Line items are submitted as cart lines, so ``unitPrice`` goes out
        as ``price``.
        """
        payload = self.model_dump(mode="json", by_alias=True)
        for item in payload["items"]:
            item["price"] = item.pop("unitPrice")
        return payload


class StatusHistoryDTO(_WireModel):
    kind: str
    old_status: Optional[str] = None
    new_status: str
    notes: str = ""
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            kind=history.kind,
            old_status=history.old_status,
            new_status=history.new_status,
            notes=history.notes,
            created_at=history.created_at,
        )


class OrderOutputDTO(_WireModel):
    """A materialized order.

    ``total_amount`` is the authoritative charge recorded at creation;
    nothing in this package recomputes it.
    """

    id: str
    order_number: str = ""
    user_id: Optional[str] = None
    items: List[OrderItemDTO]
    shipping_address: ShippingAddressDTO
    payment_method: PaymentMethod
    shipping_cost: Decimal
    total_amount: Decimal
    order_status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    tracking_number: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    history: List[StatusHistoryDTO] = Field(default_factory=list)

    @field_validator("tracking_number", mode="before")
    @classmethod
    def tracking_number_defaults_to_blank(cls, v: Any) -> str:
        return v or ""

    @property
    def is_terminal(self) -> bool:
        return self.order_status in TERMINAL_STATES

    @classmethod
    def from_entity(cls, order: Order) -> OrderOutputDTO:
        """Build an output DTO from an Order model instance.

        Assumes ``items`` and ``status_history`` are prefetched.
        """
        items = [
            OrderItemDTO(
                product_id=item.product_id,
                size=item.size,
                quantity=item.quantity,
                unit_price=item.unit_price,
                accessories=[AccessoryDTO(**a) for a in item.accessories or []],
            )
            for item in order.items.all()
        ]
        history = [StatusHistoryDTO.from_entity(h) for h in order.status_history.all()]
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            user_id=str(order.user_id) if order.user_id is not None else None,
            items=items,
            shipping_address=ShippingAddressDTO(**order.shipping_address),
            payment_method=order.payment_method,
            shipping_cost=order.shipping_cost,
            total_amount=order.total_amount,
            order_status=order.order_status,
            payment_status=order.payment_status,
            tracking_number=order.tracking_number,
            created_at=order.created_at,
            updated_at=order.updated_at,
            history=history,
        )


class ShippingQuoteDTO(_WireModel):
    subtotal: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    zone: Optional[str] = None
    free_shipping: bool = False
