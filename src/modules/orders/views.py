"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

import structlog
from rest_framework import permissions, status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import (
    CLIENT_ERROR,
    VALIDATION_ERROR,
    error_item,
    error_response,
    flatten_errors,
)
from modules.orders.dtos import CartLineItemDTO, OrderOutputDTO
from modules.orders.exceptions import (
    InvalidOrderStatus,
    OrderNotFound,
    OrderValidationError,
)
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderListQuerySerializer,
    OrderListSerializer,
    OrderSerializer,
    QuoteSerializer,
    ShippingAddressSerializer,
    ShippingQuoteSerializer,
    UpdatePaymentStatusSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)

ADMIN_ACTIONS = frozenset({"list", "update_status", "update_payment_status"})


def _not_found() -> Response:
    return error_response(
        CLIENT_ERROR,
        [error_item("Order not found.", code="not_found")],
        status.HTTP_404_NOT_FOUND,
    )


def _invalid_data(exc: OrderValidationError) -> Response:
    errors = [
        error_item(message, attr=attr)
        for attr, messages in exc.errors.items()
        for message in messages
    ]
    return error_response(VALIDATION_ERROR, errors, status.HTTP_400_BAD_REQUEST)


def _invalid_transition(exc: InvalidOrderStatus) -> Response:
    return error_response(
        CLIENT_ERROR,
        [error_item(exc, code="invalid_transition")],
        status.HTTP_400_BAD_REQUEST,
        currentStatus=exc.current,
        targetStatus=exc.target,
        statusKind=exc.kind,
    )


def _cart(items: List[Dict[str, Any]]) -> List[CartLineItemDTO]:
    return [CartLineItemDTO(**item) for item in items]


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with an injected repository (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(order_repository=OrderDjangoRepository())

    def get_permissions(self) -> list[permissions.BasePermission]:
        if self.action in ADMIN_ACTIONS:
            return [permissions.IsAdminUser()]
        return super().get_permissions()

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "my_orders"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create / Quote
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/orders/

        The order is priced on the server from the submitted cart.  The
        storefront's displayed ``shippingCost``/``totalAmount`` are only
        compared and logged when they disagree.
        """
        serializer = CreateOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return self._rejected_order(request.data, serializer.errors)
        data = serializer.validated_data

        try:
            order = self._service.create_order(
                user_id=request.user.pk,
                cart=_cart(data["items"]),
                address=data["shipping_address"],
                payment_method=data["payment_method"],
            )
        except OrderValidationError as exc:
            return _invalid_data(exc)

        self._check_client_totals(data, order)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def _rejected_order(self, payload: Any, serializer_errors: Dict[str, Any]) -> Response:
        """Report malformed fields together with the draft checks they would hide."""
        errors = flatten_errors(serializer_errors)
        if isinstance(payload, Mapping):
            address = ShippingAddressSerializer(data=payload.get("shippingAddress") or {})
            if address.is_valid():
                cart = None if "items" in serializer_errors else payload.get("items") or []
                draft_errors = self._service.check_draft(
                    cart, address.validated_data, payload.get("paymentMethod") or ""
                )
                reported = {error["attr"] for error in errors}
                errors.extend(
                    error_item(message, attr=attr)
                    for attr, messages in draft_errors.items()
                    if attr not in reported
                    for message in messages
                )
        return error_response(VALIDATION_ERROR, errors, status.HTTP_400_BAD_REQUEST)

    @action(detail=False, methods=["post"])
    def quote(self, request: Request) -> Response:
        """POST /api/orders/quote/

        Shipping and total preview for the checkout screen.
        """
        serializer = QuoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self._service.quote(_cart(data["items"]), data["shipping_address"])
        return Response(ShippingQuoteSerializer(result).data)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"], url_path="my-orders")
    def my_orders(self, request: Request) -> Response:
        """GET /api/orders/my-orders/"""
        return self._paginated(request, user_id=request.user.pk)

    def list(self, request: Request) -> Response:
        """GET /api/orders/?status=&page=&limit= (staff only)"""
        return self._paginated(request)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/orders/{pk}/

        Customers only see their own orders; anything else is reported
        as not found.
        """
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()
        if not request.user.is_staff and order.user_id != str(request.user.pk):
            return _not_found()
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status Updates (staff only)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/orders/{pk}/status/"""
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.update_status(
                order_id=pk,
                new_status=data["order_status"],
                tracking_number=data["tracking_number"],
                user_id=request.user.pk,
                notes=data["notes"],
            )
        except OrderNotFound:
            return _not_found()
        except InvalidOrderStatus as exc:
            return _invalid_transition(exc)

        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["put"], url_path="payment-status")
    def update_payment_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/orders/{pk}/payment-status/"""
        serializer = UpdatePaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.update_payment_status(
                order_id=pk,
                new_status=data["payment_status"],
                user_id=request.user.pk,
                notes=data["notes"],
            )
        except OrderNotFound:
            return _not_found()
        except InvalidOrderStatus as exc:
            return _invalid_transition(exc)

        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _paginated(self, request: Request, user_id: object = None) -> Response:
        query = OrderListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        orders, total_pages = self._service.list_orders(
            status=params["status"] or None,
            page=params["page"],
            page_size=params["limit"],
            user_id=user_id,
        )
        return Response(
            {
                "orders": OrderListSerializer(orders, many=True).data,
                "totalPages": total_pages,
                "page": params["page"],
            }
        )

    @staticmethod
    def _check_client_totals(data: Dict[str, Any], order: OrderOutputDTO) -> None:
        claimed = {
            "shipping_cost": data.get("shipping_cost"),
            "total_amount": data.get("total_amount"),
        }
        actual = {
            "shipping_cost": order.shipping_cost,
            "total_amount": order.total_amount,
        }
        mismatched = [
            field
            for field, value in claimed.items()
            if value is not None and value != actual[field]
        ]
        if mismatched:
            logger.warning(
                "order.client_total_mismatch",
                order_id=order.id,
                fields=mismatched,
                claimed={f: str(claimed[f]) for f in mismatched},
                charged={f: str(actual[f]) for f in mismatched},
            )
