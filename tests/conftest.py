from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.orders.dtos import AccessoryDTO, CartLineItemDTO, ShippingAddressDTO

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def customer():
    return User.objects.create_user(
        username="customer", email="customer@example.com", password="testpass123"
    )


@pytest.fixture()
def operator():
    return User.objects.create_user(
        username="operator",
        email="operator@example.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture()
def auth_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture()
def admin_client(operator):
    client = APIClient()
    client.force_authenticate(user=operator)
    return client


@pytest.fixture()
def address():
    return ShippingAddressDTO(
        full_name="Asha Rao",
        phone="+919876543210",
        street="12 Marine Drive",
        city="Mumbai",
        state="Maharashtra",
        zip_code="400001",
    )


@pytest.fixture()
def cart():
    """Subtotal 40: (15 + 5) * 2."""
    return [
        CartLineItemDTO(
            product_id="prod-tee",
            price=Decimal("15"),
            size="M",
            quantity=2,
            accessories=[AccessoryDTO(name="Gift wrap", price=Decimal("5"))],
        )
    ]


@pytest.fixture()
def address_payload():
    return {
        "fullName": "Asha Rao",
        "phone": "+91 98765 43210",
        "street": "12 Marine Drive",
        "city": "Mumbai",
        "state": "Maharashtra",
        "zipCode": "400001",
    }


@pytest.fixture()
def order_payload(address_payload):
    return {
        "items": [
            {
                "productId": "prod-tee",
                "price": "15.00",
                "size": "M",
                "quantity": 2,
                "accessories": [{"name": "Gift wrap", "price": "5.00"}],
            }
        ],
        "shippingAddress": address_payload,
        "paymentMethod": "qr",
        "shippingCost": "5.00",
        "totalAmount": "45.00",
    }
