# returns/serializers/__init__.py

from .sale_return import (
    ReturnCreateSerializer,
    ReturnItemInputSerializer,
    ReturnItemSerializer,
    ReturnListQuerySerializer,
    ReturnProcessSerializer,
    ReturnSerializer,
    ReturnStatsSerializer,
    ReturnUpdateSerializer,
)

__all__ = [
    "ReturnCreateSerializer",
    "ReturnItemInputSerializer",
    "ReturnItemSerializer",
    "ReturnListQuerySerializer",
    "ReturnProcessSerializer",
    "ReturnSerializer",
    "ReturnStatsSerializer",
    "ReturnUpdateSerializer",
]
