# payments/api/urls.py

"""
PAYMENTS API URLS

Provides:
    GET    /api/payments/methods/
    GET    /api/payments/stats/
    GET    /api/payments/order-allocations/?order_id=<uuid>[&order_type=]
    GET    /api/payments/allocation-stats/     (filters: date_from, date_to)
    GET    /api/payments/                      list (filters: customer_id, status,
                                               payment_method, date_from, date_to, search)
    POST   /api/payments/                      create (+ allocations)
    GET    /api/payments/<uuid>/
    PATCH  /api/payments/<uuid>/               update (+ optional allocation replacement)
    DELETE /api/payments/<uuid>/
    POST   /api/payments/<uuid>/refund/
    POST   /api/payments/<uuid>/approve/
    POST   /api/payments/<uuid>/status/

Explicit non-PK routes are registered BEFORE router URLs.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from payments.views.payment import PaymentMethodListView, PaymentViewSet

router = SimpleRouter()
router.register(r"", PaymentViewSet, basename="payments")

urlpatterns = [
    path("methods/", PaymentMethodListView.as_view(), name="payment-methods"),
    path("", include(router.urls)),
]
