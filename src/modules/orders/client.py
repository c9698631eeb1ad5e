"""Thin HTTP client for the orders REST API.

Used by storefront-side tooling to submit drafts and by the operator
console to drive status transitions.  Responses are parsed into the same
DTOs the service layer returns; API errors are raised as the matching
domain exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx
import structlog
from django.conf import settings

from modules.core.middleware import correlation_id_var
from modules.orders.constants import DEFAULT_PAGE_SIZE
from modules.orders.dtos import OrderDraftDTO, OrderOutputDTO
from modules.orders.exceptions import (
    InvalidOrderStatus,
    OrderNotFound,
    OrderValidationError,
)
from modules.orders.media import resolve_product_image_url

logger = structlog.get_logger(__name__)

# Default timeout for API calls (seconds).
_DEFAULT_TIMEOUT = 10.0

OrderPage = Tuple[List[OrderOutputDTO], int]


class OrdersAPIClient:
    """Synchronous client for ``/orders`` endpoints.

    Args:
        base_url: API root, e.g. ``http://localhost:5000/api``.
        token: Bearer token sent on every request.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport (tests use ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, token: Optional[str] = None, **kwargs: Any) -> OrdersAPIClient:
        return cls(settings.ORDERS_API_URL, token=token, **kwargs)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> OrdersAPIClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(self, draft: OrderDraftDTO) -> OrderOutputDTO:
        """Submit a draft; the server prices and persists it."""
        response = self._request("POST", "/orders/", json=draft.to_payload())
        return OrderOutputDTO.model_validate(response.json())

    def get_my_orders(self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> OrderPage:
        response = self._request(
            "GET", "/orders/my-orders/", params={"page": page, "limit": limit}
        )
        return self._page(response.json())

    def get_all_orders(
        self,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> OrderPage:
        """Staff listing, newest first; ``status`` narrows to one state."""
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        response = self._request("GET", "/orders/", params=params)
        return self._page(response.json())

    def get_order(self, order_id: str) -> OrderOutputDTO:
        response = self._request("GET", f"/orders/{order_id}/")
        return OrderOutputDTO.model_validate(response.json())

    def update_order_status(
        self,
        order_id: str,
        order_status: str,
        tracking_number: Optional[str] = None,
        notes: str = "",
    ) -> OrderOutputDTO:
        body: Dict[str, Any] = {"orderStatus": order_status, "notes": notes}
        if tracking_number is not None:
            body["trackingNumber"] = tracking_number
        response = self._request("PUT", f"/orders/{order_id}/status/", json=body)
        return OrderOutputDTO.model_validate(response.json())

    def update_order_payment_status(
        self, order_id: str, payment_status: str, notes: str = ""
    ) -> OrderOutputDTO:
        response = self._request(
            "PUT",
            f"/orders/{order_id}/payment-status/",
            json={"paymentStatus": payment_status, "notes": notes},
        )
        return OrderOutputDTO.model_validate(response.json())

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def image_url(self, product: Optional[Mapping[str, Any]]) -> str:
        return resolve_product_image_url(product, base_url=self.base_url)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {}
        request_id = correlation_id_var.get()
        if request_id:
            headers["X-Request-ID"] = request_id

        response = self._http.request(method, path, headers=headers, **kwargs)
        logger.debug(
            "orders_api.response",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        self._raise_for_error(response)
        return response

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.status_code == 404:
            raise OrderNotFound(response.request.url.path)
        if response.status_code == 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            if not isinstance(body, dict):
                response.raise_for_status()
            if "currentStatus" in body:
                raise InvalidOrderStatus(
                    body["currentStatus"],
                    body["targetStatus"],
                    kind=body.get("statusKind", "fulfillment"),
                )
            if body.get("type") == "validation_error":
                errors: Dict[str, List[str]] = {}
                for item in body.get("errors", []):
                    errors.setdefault(item.get("attr") or "non_field_errors", []).append(
                        item["detail"]
                    )
                raise OrderValidationError(errors)
        response.raise_for_status()

    @staticmethod
    def _page(body: Mapping[str, Any]) -> OrderPage:
        orders = [OrderOutputDTO.model_validate(o) for o in body.get("orders", [])]
        return orders, int(body.get("totalPages", 0))
