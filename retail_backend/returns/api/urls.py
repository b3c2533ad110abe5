# returns/api/urls.py

"""
RETURNS API URLS

Provides:
    GET    /api/returns/stats/
    GET    /api/returns/                         list
    POST   /api/returns/                         create (pending)
    GET    /api/returns/<uuid>/
    PATCH  /api/returns/<uuid>/
    DELETE /api/returns/<uuid>/
    POST   /api/returns/<uuid>/process/          approve | reject

    GET    /api/returns/sales/<sale_id>/
    GET    /api/returns/sales/<sale_id>/state/?return_id=<uuid>
    GET    /api/returns/sales/<sale_id>/state-after/<return_id>/
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from returns.views.sale_return import (
    ReturnViewSet,
    SaleReturnsView,
    SaleStateAfterReturnView,
    SaleStateBeforeReturnView,
)

router = SimpleRouter()
router.register(r"", ReturnViewSet, basename="returns")

urlpatterns = [
    path("sales/<uuid:sale_id>/", SaleReturnsView.as_view(), name="sale-returns"),
    path(
        "sales/<uuid:sale_id>/state/",
        SaleStateBeforeReturnView.as_view(),
        name="sale-state-before-return",
    ),
    path(
        "sales/<uuid:sale_id>/state-after/<uuid:return_id>/",
        SaleStateAfterReturnView.as_view(),
        name="sale-state-after-return",
    ),
    path("", include(router.urls)),
]
