"""Unit tests for OrdersAPIClient using ``httpx.MockTransport``."""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from modules.orders.client import OrdersAPIClient
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.exceptions import (
    InvalidOrderStatus,
    OrderNotFound,
    OrderValidationError,
)

pytestmark = pytest.mark.unit

BASE = "http://localhost:5000/api"
ORDER_ID = "0192f0c2-0000-7000-8000-0000000000bb"

ORDER_BODY = {
    "id": ORDER_ID,
    "orderNumber": "ORD-20261019-ABC123",
    "userId": "7",
    "items": [
        {
            "productId": "prod-tee",
            "size": "M",
            "quantity": 2,
            "unitPrice": "15.00",
            "accessories": [{"name": "Gift wrap", "price": "5.00"}],
        }
    ],
    "shippingAddress": {
        "fullName": "Asha Rao",
        "phone": "+919876543210",
        "street": "12 Marine Drive",
        "city": "Mumbai",
        "state": "Maharashtra",
        "zipCode": "400001",
        "country": "India",
    },
    "paymentMethod": "qr",
    "shippingCost": "5.00",
    "totalAmount": "45.00",
    "orderStatus": "pending",
    "paymentStatus": "pending",
    "trackingNumber": "",
    "createdAt": "2026-10-19T10:00:00+05:30",
    "history": [],
}


class Recorder:
    """MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def make_client(*responses: httpx.Response) -> tuple[OrdersAPIClient, Recorder]:
    recorder = Recorder(*responses)
    client = OrdersAPIClient(BASE, token="tok-123", transport=httpx.MockTransport(recorder))
    return client, recorder


class TestRequests:
    def test_create_order_posts_draft(self, cart, address):
        from modules.orders.drafts import OrderDraftBuilder
        from modules.orders.pricing import PricingPolicy

        draft = OrderDraftBuilder(PricingPolicy.from_settings()).build(cart, address, "qr")
        client, recorder = make_client(httpx.Response(201, json=ORDER_BODY))

        order = client.create_order(draft)

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url == f"{BASE}/orders/"
        assert request.headers["Authorization"] == "Bearer tok-123"
        body = json.loads(request.content)
        assert body["totalAmount"] == "45"
        assert body["items"][0]["price"] == "15"
        assert order.id == ORDER_ID
        assert order.total_amount == Decimal("45.00")
        assert order.items[0].accessories[0].name == "Gift wrap"

    def test_get_all_orders_sends_filters(self):
        client, recorder = make_client(
            httpx.Response(200, json={"orders": [ORDER_BODY], "totalPages": 4, "page": 2})
        )

        orders, total_pages = client.get_all_orders(status="pending", page=2, limit=5)

        params = recorder.requests[0].url.params
        assert params["status"] == "pending"
        assert params["page"] == "2"
        assert params["limit"] == "5"
        assert total_pages == 4
        assert orders[0].order_status == OrderStatus.PENDING

    def test_get_all_orders_omits_blank_status(self):
        client, recorder = make_client(httpx.Response(200, json={"orders": [], "totalPages": 0}))

        assert client.get_all_orders() == ([], 0)
        assert "status" not in recorder.requests[0].url.params

    def test_get_my_orders(self):
        client, recorder = make_client(
            httpx.Response(200, json={"orders": [ORDER_BODY], "totalPages": 1})
        )

        orders, _ = client.get_my_orders()

        assert recorder.requests[0].url.path == "/api/orders/my-orders/"
        assert orders[0].user_id == "7"

    def test_update_order_status(self):
        shipped = {**ORDER_BODY, "orderStatus": "shipped", "trackingNumber": "TRK1"}
        client, recorder = make_client(httpx.Response(200, json=shipped))

        order = client.update_order_status(ORDER_ID, "shipped", tracking_number="TRK1")

        request = recorder.requests[0]
        assert request.method == "PUT"
        assert request.url.path == f"/api/orders/{ORDER_ID}/status/"
        assert json.loads(request.content) == {
            "orderStatus": "shipped",
            "notes": "",
            "trackingNumber": "TRK1",
        }
        assert order.tracking_number == "TRK1"

    def test_update_order_payment_status(self):
        paid = {**ORDER_BODY, "paymentStatus": "completed"}
        client, recorder = make_client(httpx.Response(200, json=paid))

        order = client.update_order_payment_status(ORDER_ID, "completed")

        assert recorder.requests[0].url.path == f"/api/orders/{ORDER_ID}/payment-status/"
        assert order.payment_status == PaymentStatus.COMPLETED

    def test_image_url_resolves_against_api_base(self):
        client, _ = make_client()

        assert client.image_url({"media": ["m1"]}) == f"{BASE}/upload/media/m1"


class TestErrors:
    def test_not_found(self):
        client, _ = make_client(httpx.Response(404, json={"type": "client_error"}))

        with pytest.raises(OrderNotFound):
            client.get_order(ORDER_ID)

    def test_invalid_transition(self):
        body = {
            "type": "client_error",
            "errors": [{"code": "invalid_transition", "detail": "...", "attr": None}],
            "currentStatus": "delivered",
            "targetStatus": "pending",
            "statusKind": "fulfillment",
        }
        client, _ = make_client(httpx.Response(400, json=body))

        with pytest.raises(InvalidOrderStatus) as exc_info:
            client.update_order_status(ORDER_ID, "pending")

        assert exc_info.value.current == "delivered"
        assert exc_info.value.target == "pending"

    def test_validation_errors_are_grouped_by_field(self, cart, address):
        from modules.orders.drafts import OrderDraftBuilder
        from modules.orders.pricing import PricingPolicy

        body = {
            "type": "validation_error",
            "errors": [
                {"code": "invalid", "detail": "Please fill in street.", "attr": "shippingAddress.street"},
                {"code": "invalid", "detail": "Cart is empty.", "attr": "items"},
            ],
        }
        draft = OrderDraftBuilder(PricingPolicy.from_settings()).build(cart, address, "cod")
        client, _ = make_client(httpx.Response(400, json=body))

        with pytest.raises(OrderValidationError) as exc_info:
            client.create_order(draft)

        assert exc_info.value.errors == {
            "shippingAddress.street": ["Please fill in street."],
            "items": ["Cart is empty."],
        }

    def test_other_errors_propagate(self):
        client, _ = make_client(httpx.Response(503, text="unavailable"))

        with pytest.raises(httpx.HTTPStatusError):
            client.get_order(ORDER_ID)

    def test_non_json_bad_request_propagates_as_http_error(self):
        client, _ = make_client(
            httpx.Response(400, text="<html>Bad Request</html>", headers={"content-type": "text/html"})
        )

        with pytest.raises(httpx.HTTPStatusError):
            client.get_order(ORDER_ID)
