"""Order DRF serializers for API input/output.

Field names follow the storefront wire format (camelCase); ``source``
maps them onto the snake_case DTO attributes.  Address completeness,
phone shape, payment method and empty carts are deliberately left to
``OrderDraftBuilder`` so that all such problems are reported together.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, OrderStatus

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


def _money(**kwargs):
    return serializers.DecimalField(max_digits=10, decimal_places=2, **kwargs)


class AccessorySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    price = _money(min_value=0, default=0)


class CartItemSerializer(serializers.Serializer):
    """Validates a single cart line."""

    productId = serializers.CharField(source="product_id", max_length=64)
    price = _money(min_value=0)
    size = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)
    accessories = AccessorySerializer(many=True, required=False, default=list)


class ShippingAddressSerializer(serializers.Serializer):
    fullName = serializers.CharField(
        source="full_name", required=False, allow_blank=True, default="", trim_whitespace=False
    )
    phone = serializers.CharField(
        required=False, allow_blank=True, default="", trim_whitespace=False
    )
    street = serializers.CharField(
        required=False, allow_blank=True, default="", trim_whitespace=False
    )
    city = serializers.CharField(
        required=False, allow_blank=True, default="", trim_whitespace=False
    )
    state = serializers.CharField(
        required=False, allow_blank=True, default="", trim_whitespace=False
    )
    zipCode = serializers.CharField(
        source="zip_code", required=False, allow_blank=True, default="", trim_whitespace=False
    )
    country = serializers.CharField(
        required=False, allow_blank=True, default="", trim_whitespace=False
    )


class QuoteSerializer(serializers.Serializer):
    """Validates a pricing preview request."""

    items = CartItemSerializer(many=True)
    shippingAddress = ShippingAddressSerializer(
        source="shipping_address", required=False, default=dict
    )


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload.

    ``shippingCost`` and ``totalAmount`` are what the storefront displayed;
    they are compared with the server computation but never persisted.
    """

    items = CartItemSerializer(many=True, required=False, default=list)
    shippingAddress = ShippingAddressSerializer(
        source="shipping_address", required=False, default=dict
    )
    paymentMethod = serializers.CharField(
        source="payment_method", required=False, allow_blank=True, default=""
    )
    shippingCost = _money(source="shipping_cost", required=False)
    totalAmount = _money(source="total_amount", required=False)


class UpdateStatusSerializer(serializers.Serializer):
    orderStatus = serializers.CharField(source="order_status")
    trackingNumber = serializers.CharField(
        source="tracking_number",
        max_length=100,
        required=False,
        allow_blank=True,
        allow_null=True,
        default=None,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class UpdatePaymentStatusSerializer(serializers.Serializer):
    paymentStatus = serializers.CharField(source="payment_status")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OrderListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=OrderStatus.choices, required=False, allow_blank=True, default=""
    )
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(
        required=False, min_value=1, max_value=MAX_PAGE_SIZE, default=DEFAULT_PAGE_SIZE
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.Serializer):
    productId = serializers.CharField(source="product_id")
    size = serializers.CharField()
    quantity = serializers.IntegerField()
    unitPrice = _money(source="unit_price")
    accessories = AccessorySerializer(many=True)


class ShippingAddressOutputSerializer(serializers.Serializer):
    fullName = serializers.CharField(source="full_name")
    phone = serializers.CharField()
    street = serializers.CharField()
    city = serializers.CharField()
    state = serializers.CharField()
    zipCode = serializers.CharField(source="zip_code")
    country = serializers.CharField()


class StatusHistorySerializer(serializers.Serializer):
    kind = serializers.CharField()
    oldStatus = serializers.CharField(source="old_status", allow_null=True)
    newStatus = serializers.CharField(source="new_status")
    notes = serializers.CharField()
    createdAt = serializers.DateTimeField(source="created_at")


class OrderListSerializer(serializers.Serializer):
    """Lightweight order representation (no history)."""

    id = serializers.CharField()
    orderNumber = serializers.CharField(source="order_number")
    userId = serializers.CharField(source="user_id", allow_null=True)
    items = OrderItemSerializer(many=True)
    shippingAddress = ShippingAddressOutputSerializer(source="shipping_address")
    paymentMethod = serializers.CharField(source="payment_method")
    shippingCost = _money(source="shipping_cost")
    totalAmount = _money(source="total_amount")
    orderStatus = serializers.CharField(source="order_status")
    paymentStatus = serializers.CharField(source="payment_status")
    trackingNumber = serializers.CharField(source="tracking_number")
    createdAt = serializers.DateTimeField(source="created_at")


class OrderSerializer(OrderListSerializer):
    """Full order representation with status history."""

    history = StatusHistorySerializer(many=True)


class ShippingQuoteSerializer(serializers.Serializer):
    subtotal = _money()
    shippingCost = _money(source="shipping_cost")
    totalAmount = _money(source="total_amount")
    zone = serializers.CharField(allow_null=True)
    freeShipping = serializers.BooleanField(source="free_shipping")
