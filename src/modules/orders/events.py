"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class OrderCreated(DomainEvent):
    """Raised when an order is placed."""

    payment_method: str


@dataclass(frozen=True, kw_only=True)
class OrderStatusChanged(DomainEvent):
    """Raised when the fulfillment status changes."""

    old_status: str
    new_status: str
    tracking_number: str = ""


@dataclass(frozen=True, kw_only=True)
class PaymentStatusChanged(DomainEvent):
    """Raised when an operator records a payment verification decision."""

    old_status: str
    new_status: str
