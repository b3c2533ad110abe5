# payments/serializers/__init__.py

from .payment import (
    AllocationInputSerializer,
    AllocationStatsSerializer,
    DateRangeQuerySerializer,
    OrderAllocationQuerySerializer,
    OrderAllocationSerializer,
    PaymentAllocationSerializer,
    PaymentCreateSerializer,
    PaymentListQuerySerializer,
    PaymentMethodSerializer,
    PaymentRefundSerializer,
    PaymentSerializer,
    PaymentStatsSerializer,
    PaymentStatusSerializer,
    PaymentUpdateSerializer,
)

__all__ = [
    "AllocationInputSerializer",
    "AllocationStatsSerializer",
    "DateRangeQuerySerializer",
    "OrderAllocationQuerySerializer",
    "OrderAllocationSerializer",
    "PaymentAllocationSerializer",
    "PaymentCreateSerializer",
    "PaymentListQuerySerializer",
    "PaymentMethodSerializer",
    "PaymentRefundSerializer",
    "PaymentSerializer",
    "PaymentStatsSerializer",
    "PaymentStatusSerializer",
    "PaymentUpdateSerializer",
]
