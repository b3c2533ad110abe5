# payments/services/order_notifier.py

"""
ORDER PAYMENT-STATUS NOTIFIER (OUTBOX)

Purpose:
- Tell the order modules (invoices, sales, purchases) that money was
  allocated to them, without coupling the payment transaction to them.

Flow:
1) enqueue_order_payment_events(): inside the payment transaction, one
   OrderPaymentEvent per allocation of a COMPLETED payment.
2) transaction.on_commit -> dispatch_pending_events() (when enabled).
3) `manage.py dispatch_order_payment_events` sweeps whatever is left.

Delivery goes to a callable named by settings.ORDER_PAYMENT_NOTIFIER which
receives the event payload dict. A failing handler is recorded on the
event row and never reaches the payment caller.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.module_loading import import_string

from payments.models import OrderPaymentEvent, Payment

logger = logging.getLogger("payments")


def log_notifier(payload: dict) -> None:
    """Default handler: record the event in the payments log."""
    logger.info("Order payment status changed", extra=payload)


def get_notifier():
    path = getattr(
        settings,
        "ORDER_PAYMENT_NOTIFIER",
        "payments.services.order_notifier.log_notifier",
    )
    return import_string(path)


def enqueue_order_payment_events(payment: Payment) -> list[OrderPaymentEvent]:
    if payment.status != Payment.STATUS_COMPLETED:
        return []

    events = [
        OrderPaymentEvent(
            payment=payment,
            order_id=alloc.order_id,
            order_type=alloc.order_type,
            order_number=alloc.order_number,
            allocated_amount=alloc.allocated_amount,
            payment_status=payment.status,
        )
        for alloc in payment.allocations.all()
    ]
    if not events:
        return []

    OrderPaymentEvent.objects.bulk_create(events)

    if getattr(settings, "ORDER_PAYMENT_DISPATCH_ON_COMMIT", True):
        ids = [e.id for e in events]
        transaction.on_commit(lambda: dispatch_pending_events(event_ids=ids))

    return events


def _deliver(event: OrderPaymentEvent, notifier, max_attempts: int) -> bool:
    event.attempts += 1
    try:
        notifier(event.as_payload())
    except Exception as exc:
        event.last_error = str(exc)[:2000]
        if event.attempts >= max_attempts:
            event.status = OrderPaymentEvent.STATUS_FAILED
        event.save(update_fields=["attempts", "last_error", "status"])
        logger.warning(
            "Order payment event delivery failed",
            extra={
                "event_id": str(event.id),
                "attempts": event.attempts,
                "error": event.last_error,
            },
        )
        return False

    event.status = OrderPaymentEvent.STATUS_DELIVERED
    event.delivered_at = timezone.now()
    event.last_error = ""
    event.save(update_fields=["attempts", "status", "delivered_at", "last_error"])
    return True


def dispatch_pending_events(*, limit: int = 100, event_ids=None) -> dict:
    """
    Deliver pending events, oldest first.

    Returns {"delivered": n, "failed": n}.
    """
    notifier = get_notifier()
    max_attempts = int(getattr(settings, "ORDER_PAYMENT_MAX_ATTEMPTS", 5))

    qs = OrderPaymentEvent.objects.filter(status=OrderPaymentEvent.STATUS_PENDING)
    if event_ids is not None:
        qs = qs.filter(id__in=event_ids)

    delivered = failed = 0
    for event in qs.order_by("created_at", "id")[:limit]:
        if _deliver(event, notifier, max_attempts):
            delivered += 1
        else:
            failed += 1

    return {"delivered": delivered, "failed": failed}
