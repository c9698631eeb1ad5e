"""Shipping and total computation.

``PricingPolicy`` is pure: zones, the free-shipping threshold and the
keyword matching mode are injected, never read from globals.  Use
``PricingPolicy.from_settings()`` to build the configured instance.

Zone keywords are matched as case-insensitive substrings of the city or
the state (``"thane"`` also matches ``"Thanesar"``).  The ``word`` mode
restricts matches to whole tokens and must be opted into explicitly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

import structlog

from modules.orders.constants import DEFAULT_DELIVERY_ZONES, FREE_SHIPPING_THRESHOLD
from modules.orders.dtos import CartLineItemDTO, ShippingQuoteDTO

logger = structlog.get_logger(__name__)

MATCH_SUBSTRING = "substring"
MATCH_WORD = "word"


@dataclass(frozen=True)
class DeliveryZone:
    """A named flat shipping rate selected by destination keywords."""

    name: str
    rate: Decimal
    keywords: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_catch_all(self) -> bool:
        return not self.keywords

    @classmethod
    def from_config(cls, data: Mapping[str, Any]) -> DeliveryZone:
        return cls(
            name=str(data["name"]),
            rate=Decimal(str(data["rate"])),
            keywords=tuple(str(k).lower() for k in data.get("keywords") or ()),
        )


class PricingPolicy:
    """Computes shipping cost and order total from a cart and destination."""

    def __init__(
        self,
        zones: Sequence[DeliveryZone],
        free_shipping_threshold: Decimal = FREE_SHIPPING_THRESHOLD,
        matching: str = MATCH_SUBSTRING,
    ) -> None:
        zones = tuple(zones)
        if not zones:
            raise ValueError("At least one delivery zone is required.")
        if not zones[-1].is_catch_all:
            raise ValueError("The last delivery zone must be a catch-all (no keywords).")
        if any(zone.is_catch_all for zone in zones[:-1]):
            raise ValueError("Only the last delivery zone may be a catch-all.")
        if any(zone.rate < 0 for zone in zones):
            raise ValueError("Delivery zone rates must be non-negative.")
        if free_shipping_threshold < 0:
            raise ValueError("Free shipping threshold must be non-negative.")
        if matching not in (MATCH_SUBSTRING, MATCH_WORD):
            raise ValueError(f"Unknown zone matching mode: {matching!r}.")

        self.zones = zones
        self.free_shipping_threshold = Decimal(free_shipping_threshold)
        self.matching = matching

    @classmethod
    def from_settings(cls) -> PricingPolicy:
        from django.conf import settings

        zones = getattr(settings, "ORDERS_DELIVERY_ZONES", DEFAULT_DELIVERY_ZONES)
        return cls(
            zones=[DeliveryZone.from_config(z) for z in zones],
            free_shipping_threshold=Decimal(
                str(
                    getattr(
                        settings,
                        "ORDERS_FREE_SHIPPING_THRESHOLD",
                        FREE_SHIPPING_THRESHOLD,
                    )
                )
            ),
            matching=getattr(settings, "ORDERS_ZONE_MATCHING", MATCH_SUBSTRING),
        )

    @property
    def catch_all(self) -> DeliveryZone:
        return self.zones[-1]

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def compute_subtotal(self, cart: Iterable[CartLineItemDTO]) -> Decimal:
        return sum((line.line_total for line in cart), Decimal("0"))

    def compute_shipping(self, cart: Sequence[CartLineItemDTO], address: Any) -> Decimal:
        return self._resolve(self.compute_subtotal(cart), address)[0]

    def compute_total(
        self, cart: Sequence[CartLineItemDTO], shipping_cost: Decimal
    ) -> Decimal:
        return self.compute_subtotal(cart) + shipping_cost

    def quote(self, cart: Sequence[CartLineItemDTO], address: Any) -> ShippingQuoteDTO:
        subtotal = self.compute_subtotal(cart)
        cost, zone = self._resolve(subtotal, address)
        return ShippingQuoteDTO(
            subtotal=subtotal,
            shipping_cost=cost,
            total_amount=subtotal + cost,
            zone=zone.name if zone else None,
            free_shipping=zone is None,
        )

    def match_zone(self, address: Any) -> DeliveryZone:
        """Return the first zone matching the destination, or the catch-all."""
        city = _address_field(address, "city")
        state = _address_field(address, "state")
        for zone in self.zones[:-1]:
            if any(
                self._matches(keyword, city) or self._matches(keyword, state)
                for keyword in zone.keywords
            ):
                return zone
        return self.catch_all

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(
        self, subtotal: Decimal, address: Any
    ) -> Tuple[Decimal, Optional[DeliveryZone]]:
        if subtotal >= self.free_shipping_threshold:
            return Decimal("0"), None
        zone = self.match_zone(address)
        logger.debug("pricing.zone_matched", zone=zone.name, rate=str(zone.rate))
        return zone.rate, zone

    def _matches(self, keyword: str, value: str) -> bool:
        if not value:
            return False
        if self.matching == MATCH_WORD:
            return re.search(rf"\b{re.escape(keyword)}\b", value) is not None
        return keyword in value


def _address_field(address: Any, name: str) -> str:
    """Read a lower-cased address field; anything malformed reads as blank."""
    if address is None:
        return ""
    if isinstance(address, Mapping):
        value = address.get(name)
    else:
        value = getattr(address, name, None)
    if not isinstance(value, str):
        return ""
    return value.strip().lower()
