"""Order draft assembly.

``OrderDraftBuilder`` turns cart state, a shipping address and a payment
method into an immutable ``OrderDraftDTO``.  Every problem in the input is
collected and raised together as a single ``OrderValidationError``.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import structlog

from modules.orders.constants import (
    DEFAULT_COUNTRY,
    PHONE_PATTERN,
    REQUIRED_ADDRESS_FIELDS,
    PaymentMethod,
)
from modules.orders.dtos import (
    CartLineItemDTO,
    OrderDraftDTO,
    OrderItemDTO,
    ShippingAddressDTO,
)
from modules.orders.exceptions import OrderValidationError
from modules.orders.pricing import PricingPolicy

logger = structlog.get_logger(__name__)

_PHONE_RE = re.compile(PHONE_PATTERN)
_WHITESPACE_RE = re.compile(r"\s")

AddressInput = Union[ShippingAddressDTO, Mapping[str, Any]]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _field_label(name: str) -> str:
    return name.replace("_", " ")


class OrderDraftBuilder:
    """Builds order drafts priced by an injected ``PricingPolicy``."""

    def __init__(self, pricing: PricingPolicy, default_country: str = DEFAULT_COUNTRY) -> None:
        self._pricing = pricing
        self._default_country = default_country

    def build(
        self,
        cart: Sequence[CartLineItemDTO],
        address: AddressInput,
        payment_method: Union[PaymentMethod, str],
    ) -> OrderDraftDTO:
        """Validate the inputs and return a priced draft.

        Raises:
            OrderValidationError: with every offending field.
        """
        fields = self._normalize_address(address)
        errors = self._collect_errors(cart, fields, payment_method)
        if errors:
            logger.info("order.draft_rejected", fields=sorted(errors))
            raise OrderValidationError(errors)

        snapshot = ShippingAddressDTO(**fields)
        shipping_cost = self._pricing.compute_shipping(cart, snapshot)
        draft = OrderDraftDTO(
            items=tuple(OrderItemDTO.from_cart_line(line) for line in cart),
            shipping_address=snapshot,
            payment_method=PaymentMethod(payment_method),
            shipping_cost=shipping_cost,
            total_amount=self._pricing.compute_total(cart, shipping_cost),
        )
        logger.info(
            "order.draft_built",
            item_count=len(draft.items),
            shipping_cost=str(draft.shipping_cost),
            total_amount=str(draft.total_amount),
        )
        return draft

    def validate(
        self,
        cart: Optional[Sequence[Any]],
        address: AddressInput,
        payment_method: Any,
    ) -> Dict[str, List[str]]:
        """Return the errors ``build`` would raise, keyed by wire field.

        A ``cart`` of ``None`` skips the empty-cart check, for callers that
        have already rejected the cart lines themselves.
        """
        return self._collect_errors(cart, self._normalize_address(address), payment_method)

    def _collect_errors(
        self,
        cart: Optional[Sequence[Any]],
        fields: Mapping[str, str],
        payment_method: Any,
    ) -> Dict[str, List[str]]:
        errors: Dict[str, List[str]] = {}

        if cart is not None and not cart:
            errors.setdefault("items", []).append("Cart is empty.")

        for name in REQUIRED_ADDRESS_FIELDS:
            if not fields[name]:
                errors.setdefault(f"shippingAddress.{_camel(name)}", []).append(
                    f"Please fill in {_field_label(name)}."
                )

        if fields["phone"] and not _PHONE_RE.match(_WHITESPACE_RE.sub("", fields["phone"])):
            errors.setdefault("shippingAddress.phone", []).append(
                "Please enter a valid phone number."
            )

        if not payment_method:
            errors.setdefault("paymentMethod", []).append("Please choose a payment method.")
        elif payment_method not in PaymentMethod.values:
            errors.setdefault("paymentMethod", []).append(
                f"Unknown payment method: {payment_method!r}."
            )
        return errors

    def _normalize_address(self, address: AddressInput) -> Dict[str, str]:
        if isinstance(address, ShippingAddressDTO):
            raw: Mapping[str, Any] = address.model_dump()
        elif isinstance(address, Mapping):
            raw = address
        else:
            raw = {}

        fields = {}
        for name in (*REQUIRED_ADDRESS_FIELDS, "country"):
            value = raw.get(name)
            if value is None:
                value = raw.get(_camel(name))
            fields[name] = value.strip() if isinstance(value, str) else ""
        fields["country"] = fields["country"] or self._default_country
        return fields
