"""Storefront order routes.

``quote/`` and ``my-orders/`` are list-level actions and resolve before
the ``{id}/`` detail route; staff status changes live under
``{id}/status/`` and ``{id}/payment-status/``.
"""

from rest_framework.routers import SimpleRouter

from modules.orders.views import OrderViewSet

app_name = "orders"

router = SimpleRouter()
router.register("orders", OrderViewSet, basename="storefront-order")

urlpatterns = router.urls
