"""Order domain constants.

Defines status and payment choices, the legal moves of both order state
machines, and the default pricing table used by ``PricingPolicy``.
"""

from decimal import Decimal

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class PaymentMethod(models.TextChoices):
    CASH_ON_DELIVERY = "cod", "Cash on Delivery"
    QR_CODE = "qr", "UPI/QR Code"


class StatusKind(models.TextChoices):
    FULFILLMENT = "fulfillment", "Fulfillment"
    PAYMENT = "payment", "Payment"


TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# Statuses that accept a tracking number on entry.
TRACKING_STATES: set[str] = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: set(),
    PaymentStatus.FAILED: set(),
}

FREE_SHIPPING_THRESHOLD = Decimal("100")

DEFAULT_DELIVERY_ZONES: list[dict] = [
    {
        "name": "Local (Same City)",
        "rate": "5",
        "keywords": ["mumbai", "delhi", "bangalore", "chennai", "kolkata", "hyderabad"],
    },
    {
        "name": "Metro Cities",
        "rate": "15",
        "keywords": ["pune", "ahmedabad", "surat", "jaipur", "lucknow", "kanpur"],
    },
    {
        "name": "Tier 2 Cities",
        "rate": "25",
        "keywords": ["nagpur", "indore", "thane", "bhopal", "visakhapatnam", "pimpri"],
    },
    {"name": "Remote Areas", "rate": "50", "keywords": []},
]

DEFAULT_COUNTRY = "India"

REQUIRED_ADDRESS_FIELDS = ("full_name", "phone", "street", "city", "state", "zip_code")

PHONE_PATTERN = r"^\+?[1-9]\d{0,15}$"

ORDER_NUMBER_MAX_RETRIES = 5

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
