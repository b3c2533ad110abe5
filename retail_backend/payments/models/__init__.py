# payments/models/__init__.py

from .order_payment_event import OrderPaymentEvent
from .payment import Payment
from .payment_allocation import PaymentAllocation
from .payment_method import PaymentMethod

__all__ = [
    "PaymentMethod",
    "Payment",
    "PaymentAllocation",
    "OrderPaymentEvent",
]
