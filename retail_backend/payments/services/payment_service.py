# payments/services/payment_service.py

"""
PAYMENT LEDGER (DOMAIN-CONTROLLED)

Purpose:
- Record money received from customers and spread it across open orders.
- Record money returned to customers (refunds) as negative payments.

Conservation (holds after every function in this module returns):
- payment.allocated_amount == Σ payment.allocations.allocated_amount
- payment.allocated_amount + payment.unallocated_amount == payment.amount

Rules:
- Allocations are replaced as a whole set, never patched one by one.
- update_allocation_amounts() runs in the same transaction as every
  allocation or amount change.
- Validation happens before the first write; any failure rolls back.
- The payment row is locked for update / delete / refund / status changes.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Avg, Count, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.money import ZERO, money
from core.services.sequences import next_document_number
from customers.services import customer_directory
from payments.models import Payment, PaymentAllocation
from payments.services import method_registry
from payments.services.exceptions import (
    AllocationExceedsAmount,
    AllocationExceedsOrderBalance,
    ApprovalNotRequired,
    CannotDeleteCompletedPayment,
    CannotDeleteRefund,
    InvalidAllocation,
    InvalidPaymentAmount,
    InvalidPaymentMethod,
    InvalidPaymentStatus,
    InvalidRefundAmount,
    PaymentClosed,
    PaymentNotCompleted,
    PaymentNotFound,
    PaymentNotPending,
    PaymentReferenceRequired,
    RefundExceedsPayment,
    RefundNotAllowed,
)
from payments.services.order_notifier import enqueue_order_payment_events

logger = logging.getLogger("payments")

PAYMENT_NUMBER_KIND = "PAY"

# Fields a caller may change through update_payment()
UPDATABLE_FIELDS = (
    "customer_id",
    "amount",
    "payment_method",
    "payment_date",
    "reference",
    "notes",
)

INITIAL_STATUSES = (Payment.STATUS_PENDING, Payment.STATUS_COMPLETED)
TERMINAL_FROM_PENDING = (Payment.STATUS_FAILED, Payment.STATUS_CANCELLED)

_DECIMAL_ZERO = Value(Decimal("0.00"))


# ============================================================
# INTERNAL HELPERS
# ============================================================


def _payment_queryset():
    return Payment.objects.select_related(
        "customer", "payment_method", "original_payment"
    ).prefetch_related("allocations")


def _lock_payment(payment_id) -> Payment:
    try:
        return Payment.objects.select_for_update().get(pk=payment_id)
    except (Payment.DoesNotExist, ValueError, ValidationError) as exc:
        raise PaymentNotFound(f"Payment {payment_id} not found") from exc


def _normalize_allocations(allocations) -> list[dict]:
    """
    Validate one allocation set in isolation (shape, sign, order balance).

    Several lines for the same order are summed before being compared with
    that order's outstanding balance.
    """
    valid_types = {value for value, _ in PaymentAllocation.ORDER_TYPE_CHOICES}
    per_order: dict[tuple, Decimal] = {}
    rows = []

    for raw in allocations or []:
        order_type = raw.get("order_type")
        if order_type not in valid_types:
            raise InvalidAllocation(f"Invalid order type: {order_type}")

        order_id = raw.get("order_id")
        if not order_id:
            raise InvalidAllocation("Allocation requires an order_id")

        amount = money(raw.get("allocated_amount"))
        if amount <= ZERO:
            raise InvalidAllocation(
                "Allocation amount must be greater than zero",
                order_id=str(order_id),
            )

        key = (order_type, str(order_id))
        per_order[key] = per_order.get(key, ZERO) + amount

        order_total = raw.get("order_total")
        previously_paid = money(raw.get("previously_paid"))
        remaining = None

        if order_total is not None:
            order_total = money(order_total)
            outstanding = order_total - previously_paid
            if per_order[key] > outstanding:
                raise AllocationExceedsOrderBalance(
                    f"Allocation {per_order[key]} exceeds outstanding balance "
                    f"{outstanding} of {order_type} {raw.get('order_number') or order_id}",
                    order_id=str(order_id),
                )
            remaining = outstanding - per_order[key]

        rows.append(
            {
                "order_id": order_id,
                "order_type": order_type,
                "order_number": (raw.get("order_number") or "").strip(),
                "allocated_amount": amount,
                "order_total": order_total,
                "previously_paid": previously_paid,
                "remaining_after_payment": remaining,
            }
        )

    return rows


def _allocation_total(rows) -> Decimal:
    return sum((r["allocated_amount"] for r in rows), ZERO)


def _check_allocation_cap(total: Decimal, amount: Decimal) -> None:
    if total > amount:
        raise AllocationExceedsAmount(
            f"Total allocation amount ({total}) cannot exceed payment amount ({amount})"
        )


def _replace_allocations(payment: Payment, rows: list[dict]) -> None:
    payment.allocations.all().delete()
    if rows:
        now = timezone.now()
        PaymentAllocation.objects.bulk_create(
            [PaymentAllocation(payment=payment, allocated_at=now, **row) for row in rows]
        )


def _check_reference(method, reference: str) -> None:
    if method.requires_reference and not (reference or "").strip():
        raise PaymentReferenceRequired(
            f"Payment method '{method.code}' requires a reference"
        )


def _apply_credit(payment: Payment, credit_type: str) -> None:
    if payment.payment_method.is_credit:
        customer_directory.update_credit(
            payment.customer_id, abs(Decimal(payment.amount)), credit_type
        )


def _insert_payment(**fields) -> Payment:
    payment = Payment(
        payment_number=next_document_number(
            kind=PAYMENT_NUMBER_KIND, model=Payment, field="payment_number"
        ),
        **fields,
    )
    payment.unallocated_amount = payment.amount
    payment.save()
    return payment


# ============================================================
# CONSERVATION
# ============================================================


def update_allocation_amounts(payment: Payment) -> Payment:
    """
    Recompute allocated / unallocated from the allocation rows.
    """
    allocated = payment.allocations.aggregate(
        total=Coalesce(Sum("allocated_amount"), _DECIMAL_ZERO)
    )["total"]

    payment.allocated_amount = money(allocated)
    payment.unallocated_amount = money(payment.amount) - payment.allocated_amount
    payment.save(update_fields=["allocated_amount", "unallocated_amount", "updated_at"])
    return payment


# ============================================================
# CREATE / UPDATE
# ============================================================


@transaction.atomic
def create_payment(*, payment_data: dict, allocations=None, created_by=None) -> Payment:
    """
    CREATE PAYMENT WITH ALLOCATIONS

    FLOW:
    1) Customer exists and is not blocked
    2) Method exists, is active, reference present when required
    3) Allocation set valid and Σ allocations <= amount
    4) Persist payment + allocations, recompute split
    5) Credit method -> customer used credit += amount
    6) Completed + allocated -> order payment events (outbox)
    """
    customer = customer_directory.get_payable_customer(payment_data.get("customer_id"))
    method = method_registry.get_active_method(payment_data.get("payment_method"))
    if method.is_internal:
        raise InvalidPaymentMethod(
            f"Payment method '{method.code}' is reserved for system use"
        )

    reference = (payment_data.get("reference") or "").strip()
    _check_reference(method, reference)

    amount = money(payment_data.get("amount"))
    if amount <= ZERO:
        raise InvalidPaymentAmount(f"Payment amount must be greater than zero: {amount}")

    status = payment_data.get("status") or Payment.STATUS_COMPLETED
    if status not in INITIAL_STATUSES:
        raise InvalidPaymentStatus(f"A new payment cannot start as '{status}'")
    if method.requires_approval:
        status = Payment.STATUS_PENDING

    rows = _normalize_allocations(allocations)
    _check_allocation_cap(_allocation_total(rows), amount)

    payment = _insert_payment(
        customer=customer,
        amount=amount,
        payment_method=method,
        payment_date=payment_data.get("payment_date") or timezone.localdate(),
        status=status,
        reference=reference,
        notes=payment_data.get("notes") or "",
        created_by=created_by,
    )

    _replace_allocations(payment, rows)
    update_allocation_amounts(payment)
    _apply_credit(payment, "add")
    enqueue_order_payment_events(payment)

    logger.info(
        "Payment created",
        extra={
            "payment_id": str(payment.id),
            "payment_number": payment.payment_number,
            "amount": str(payment.amount),
            "allocated": str(payment.allocated_amount),
            "status": payment.status,
        },
    )
    return get_payment_by_id(payment.id)


@transaction.atomic
def update_payment(*, payment_id, patch: dict, allocations=None) -> Payment:
    """
    UPDATE PAYMENT (+ OPTIONAL FULL ALLOCATION REPLACEMENT)

    - allocations=None keeps the current set; an amount change is then
      re-validated against it.
    - allocations=[] clears the set.
    """
    payment = _lock_payment(payment_id)
    if payment.status in TERMINAL_FROM_PENDING:
        raise PaymentClosed(
            f"Payment {payment.payment_number} is {payment.status} and cannot be changed"
        )

    previous = {
        "customer_id": payment.customer_id,
        "amount": money(payment.amount),
        "method": payment.payment_method,
    }

    changes = {k: v for k, v in (patch or {}).items() if k in UPDATABLE_FIELDS}

    if payment.is_refund and ({"customer_id", "amount", "payment_method"} & set(changes)):
        raise RefundNotAllowed(
            f"Refund {payment.payment_number}: only date, reference and notes can change"
        )

    if "customer_id" in changes and str(changes["customer_id"]) != str(payment.customer_id):
        payment.customer = customer_directory.get_payable_customer(changes["customer_id"])

    if "payment_method" in changes and changes["payment_method"] != payment.payment_method_id:
        method = method_registry.get_active_method(changes["payment_method"])
        if method.is_internal:
            raise InvalidPaymentMethod(
                f"Payment method '{method.code}' is reserved for system use"
            )
        payment.payment_method = method

    if "amount" in changes:
        amount = money(changes["amount"])
        if amount <= ZERO:
            raise InvalidPaymentAmount(
                f"Payment amount must be greater than zero: {amount}"
            )
        payment.amount = amount

    if "reference" in changes:
        payment.reference = (changes["reference"] or "").strip()
    if "notes" in changes:
        payment.notes = changes["notes"] or ""
    if changes.get("payment_date"):
        payment.payment_date = changes["payment_date"]

    _check_reference(payment.payment_method, payment.reference)

    new_amount = money(payment.amount)
    if allocations is not None:
        rows = _normalize_allocations(allocations)
        _check_allocation_cap(_allocation_total(rows), new_amount)
    else:
        rows = None
        if new_amount != previous["amount"]:
            current = payment.allocations.aggregate(
                total=Coalesce(Sum("allocated_amount"), _DECIMAL_ZERO)
            )["total"]
            _check_allocation_cap(money(current), new_amount)

    payment.save()

    if rows is not None:
        _replace_allocations(payment, rows)
    update_allocation_amounts(payment)

    credit_touched = (
        previous["customer_id"] != payment.customer_id
        or previous["amount"] != new_amount
        or previous["method"].code != payment.payment_method_id
    )
    if credit_touched:
        if previous["method"].is_credit:
            customer_directory.update_credit(
                previous["customer_id"], abs(previous["amount"]), "subtract"
            )
        _apply_credit(payment, "add")

    if rows is not None:
        enqueue_order_payment_events(payment)

    logger.info(
        "Payment updated",
        extra={
            "payment_id": str(payment.id),
            "fields": sorted(changes),
            "allocations_replaced": rows is not None,
            "allocated": str(payment.allocated_amount),
        },
    )
    return get_payment_by_id(payment.id)


# ============================================================
# READ
# ============================================================


def get_payment_by_id(payment_id) -> Payment:
    try:
        return _payment_queryset().get(pk=payment_id)
    except (Payment.DoesNotExist, ValueError, ValidationError) as exc:
        raise PaymentNotFound(f"Payment {payment_id} not found") from exc


def list_payments(*, filters: dict | None = None):
    """
    Filtered payment queryset, newest first. Pagination is left to the caller.

    Supported filters: customer_id, status, payment_method, date_from,
    date_to, search (payment number, reference, customer name).
    """
    filters = filters or {}
    qs = _payment_queryset()

    if filters.get("customer_id"):
        qs = qs.filter(customer_id=filters["customer_id"])
    if filters.get("status"):
        qs = qs.filter(status=filters["status"])
    if filters.get("payment_method"):
        qs = qs.filter(payment_method_id=filters["payment_method"])
    if filters.get("date_from"):
        qs = qs.filter(payment_date__gte=filters["date_from"])
    if filters.get("date_to"):
        qs = qs.filter(payment_date__lte=filters["date_to"])

    search = (filters.get("search") or "").strip()
    if search:
        qs = qs.filter(
            Q(payment_number__icontains=search)
            | Q(reference__icontains=search)
            | Q(customer__name__icontains=search)
        )

    return qs.order_by("-payment_date", "-created_at")


def get_payment_stats(*, filters: dict | None = None) -> dict:
    filters = dict(filters or {})
    filters.pop("status", None)
    qs = list_payments(filters=filters).order_by()

    completed = Q(status=Payment.STATUS_COMPLETED)
    stats = qs.aggregate(
        total_payments=Count("id"),
        completed_payments=Count("id", filter=completed),
        pending_payments=Count("id", filter=Q(status=Payment.STATUS_PENDING)),
        failed_payments=Count("id", filter=Q(status=Payment.STATUS_FAILED)),
        total_amount=Coalesce(Sum("amount", filter=completed), _DECIMAL_ZERO),
        average_amount=Avg("amount", filter=completed),
        total_unallocated=Coalesce(
            Sum("unallocated_amount", filter=completed), _DECIMAL_ZERO
        ),
    )

    stats["total_amount"] = money(stats["total_amount"])
    stats["total_unallocated"] = money(stats["total_unallocated"])
    stats["average_amount"] = money(stats["average_amount"] or ZERO)
    return stats


# ============================================================
# ORDER-SIDE READS
# ============================================================


def _order_allocations(order_id, order_type=None):
    qs = PaymentAllocation.objects.filter(order_id=order_id)
    if order_type:
        qs = qs.filter(order_type=order_type)
    return qs


def allocations_for_order(*, order_id, order_type=None):
    """
    Every allocation that points at one order, oldest first, whatever the
    paying payment's status.
    """
    return (
        _order_allocations(order_id, order_type)
        .select_related("payment")
        .order_by("allocated_at", "id")
    )


def total_allocated_for_order(*, order_id, order_type=None) -> Decimal:
    """
    Money booked against an order. Allocations of failed or cancelled
    payments are not counted.
    """
    total = (
        _order_allocations(order_id, order_type)
        .filter(payment__status__in=INITIAL_STATUSES)
        .aggregate(total=Coalesce(Sum("allocated_amount"), _DECIMAL_ZERO))["total"]
    )
    return money(total)


def get_allocation_stats(*, filters: dict | None = None) -> dict:
    """
    Allocation totals, optionally limited to an allocated_at date range
    (date_from / date_to, inclusive).
    """
    filters = filters or {}
    qs = PaymentAllocation.objects.all()
    if filters.get("date_from"):
        qs = qs.filter(allocated_at__date__gte=filters["date_from"])
    if filters.get("date_to"):
        qs = qs.filter(allocated_at__date__lte=filters["date_to"])

    stats = qs.aggregate(
        total_allocations=Count("id"),
        total_allocated=Coalesce(Sum("allocated_amount"), _DECIMAL_ZERO),
        average_allocation=Avg("allocated_amount"),
        payments_with_allocations=Count("payment", distinct=True),
        orders_with_payments=Count("order_id", distinct=True),
    )

    stats["total_allocated"] = money(stats["total_allocated"])
    stats["average_allocation"] = money(stats["average_allocation"] or ZERO)
    return stats


# ============================================================
# DELETE
# ============================================================


@transaction.atomic
def delete_payment(*, payment_id) -> None:
    payment = _lock_payment(payment_id)

    if payment.is_refund or payment.original_payment_id or payment.source_return_id:
        raise CannotDeleteRefund(
            f"Cannot delete refund payment {payment.payment_number}"
        )
    if payment.status == Payment.STATUS_COMPLETED and payment.allocations.exists():
        raise CannotDeleteCompletedPayment(
            f"Cannot delete completed payment {payment.payment_number} with allocations"
        )
    if payment.refunds.exists():
        raise CannotDeleteCompletedPayment(
            f"Cannot delete payment {payment.payment_number}: refunds were issued against it"
        )

    if payment.status in INITIAL_STATUSES:
        _apply_credit(payment, "subtract")

    number = payment.payment_number
    payment.delete()

    logger.info("Payment deleted", extra={"payment_number": number})


# ============================================================
# REFUNDS
# ============================================================


def refunded_total(payment: Payment) -> Decimal:
    """Sum of refunds already issued against a payment (positive number)."""
    total = payment.refunds.exclude(
        status__in=TERMINAL_FROM_PENDING
    ).aggregate(total=Coalesce(Sum("amount"), _DECIMAL_ZERO))["total"]
    return abs(money(total))


@transaction.atomic
def refund_payment(*, payment_id, amount, reason: str = "", created_by=None) -> Payment:
    """
    REFUND A COMPLETED PAYMENT

    Creates a NEW completed payment with amount = -|amount|, linked back to
    the original. The original row is not modified.
    """
    original = _lock_payment(payment_id)

    if original.is_refund:
        raise RefundNotAllowed(
            f"Payment {original.payment_number} is itself a refund"
        )
    if original.status != Payment.STATUS_COMPLETED:
        raise PaymentNotCompleted(
            f"Can only refund completed payments ({original.payment_number} is {original.status})"
        )

    refund_amount = abs(money(amount))
    if refund_amount <= ZERO:
        raise InvalidRefundAmount("Refund amount must be greater than zero")

    refundable = money(original.amount) - refunded_total(original)
    if refund_amount > refundable:
        raise RefundExceedsPayment(
            f"Refund {refund_amount} exceeds refundable balance {refundable} "
            f"of payment {original.payment_number}"
        )

    refund = _insert_payment(
        customer_id=original.customer_id,
        amount=-refund_amount,
        payment_method=original.payment_method,
        payment_date=timezone.localdate(),
        status=Payment.STATUS_COMPLETED,
        reference=f"REFUND-{original.payment_number}",
        notes=reason or "",
        original_payment=original,
        created_by=created_by,
    )
    update_allocation_amounts(refund)
    _apply_credit(refund, "subtract")

    logger.info(
        "Payment refunded",
        extra={
            "payment_id": str(original.id),
            "refund_payment_id": str(refund.id),
            "amount": str(refund_amount),
        },
    )
    return get_payment_by_id(refund.id)


@transaction.atomic
def record_refund(
    *,
    customer_id,
    amount,
    reference: str,
    reason: str = "",
    source_return=None,
    created_by=None,
) -> Payment:
    """
    Money owed back to a customer outside of a specific payment (return refunds).

    Blocked customers are still refunded.
    """
    refund_amount = abs(money(amount))
    if refund_amount <= ZERO:
        raise InvalidRefundAmount("Refund amount must be greater than zero")

    method = method_registry.find_by_code(method_registry.REFUND_METHOD_CODE)
    if method is None:
        raise InvalidPaymentMethod("Refund payment method is not configured")

    customer = customer_directory.find_by_id(customer_id)

    refund = _insert_payment(
        customer=customer,
        amount=-refund_amount,
        payment_method=method,
        payment_date=timezone.localdate(),
        status=Payment.STATUS_COMPLETED,
        reference=reference,
        notes=reason or "",
        source_return=source_return,
        created_by=created_by,
    )
    update_allocation_amounts(refund)

    logger.info(
        "Refund recorded",
        extra={
            "payment_id": str(refund.id),
            "reference": reference,
            "amount": str(refund_amount),
        },
    )
    return refund


# ============================================================
# STATUS TRANSITIONS
# ============================================================


@transaction.atomic
def approve_payment(*, payment_id, approved_by=None) -> Payment:
    payment = _lock_payment(payment_id)

    if payment.status != Payment.STATUS_PENDING:
        raise PaymentNotPending(
            f"Payment {payment.payment_number} is {payment.status}, not pending"
        )
    if not payment.payment_method.requires_approval:
        raise ApprovalNotRequired(
            f"Payment method '{payment.payment_method_id}' does not require approval"
        )

    payment.status = Payment.STATUS_COMPLETED
    payment.approved_by = approved_by
    payment.approved_at = timezone.now()
    payment.save(update_fields=["status", "approved_by", "approved_at", "updated_at"])

    enqueue_order_payment_events(payment)

    logger.info(
        "Payment approved",
        extra={"payment_id": str(payment.id), "approved_by": getattr(approved_by, "pk", None)},
    )
    return get_payment_by_id(payment.id)


@transaction.atomic
def set_payment_status(*, payment_id, status: str) -> Payment:
    """
    pending -> failed | cancelled. Completion goes through approve_payment().
    """
    if status not in TERMINAL_FROM_PENDING:
        raise InvalidPaymentStatus(f"Cannot move a payment to '{status}' directly")

    payment = _lock_payment(payment_id)
    if payment.status != Payment.STATUS_PENDING:
        raise PaymentNotPending(
            f"Payment {payment.payment_number} is {payment.status}, not pending"
        )

    payment.status = status
    payment.save(update_fields=["status", "updated_at"])
    _apply_credit(payment, "subtract")

    logger.info(
        "Payment status changed",
        extra={"payment_id": str(payment.id), "status": status},
    )
    return get_payment_by_id(payment.id)
