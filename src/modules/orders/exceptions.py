"""Order domain exceptions.

Raised by the engine and the Service Layer when business rules are
violated.  The API layer (Views) catches these and translates them into
appropriate HTTP responses.  Persistence and transport failures are not
wrapped here; they propagate unchanged.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class OrderNotFound(Exception):
    """The requested order does not exist."""


class OrderValidationError(Exception):
    """Client-correctable input problems, reported all at once.

    ``errors`` maps a wire field path (``shippingAddress.phone``) to the
    list of messages for that field.
    """

    def __init__(self, errors: Dict[str, List[str]]) -> None:
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Invalid order data: {fields}.")


class InvalidOrderStatus(Exception):
    """A status transition was rejected.

    Carries the state the order was in and the rejected target so that
    operator mistakes can be diagnosed.
    """

    def __init__(
        self,
        current: Optional[str],
        target: str,
        kind: str = "fulfillment",
        reason: str = "",
    ) -> None:
        self.current = _plain(current)
        self.target = _plain(target)
        self.kind = _plain(kind)
        message = (
            f"Cannot change {self.kind} status from {self.current} to {self.target}."
        )
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


def _plain(value):
    """Unwrap choice enums to their raw string value."""
    return getattr(value, "value", value)
