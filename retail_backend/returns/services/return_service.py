# returns/services/return_service.py

"""
RETURN LEDGER (DOMAIN-CONTROLLED)

Purpose:
- Record merchandise returned against a historical sale.
- Guard returnable quantity per sale line (scarcity).
- Settle approved returns with a refund payment.

Rules:
- Σ quantity_returned over non-rejected returns <= sale_item.quantity.
  Earlier lines of the same request count towards the total.
- Sale item rows are locked before availability is read, so concurrent
  returns of the same sale serialize.
- All-or-nothing: one bad line rejects the whole request, nothing written.
- Approval mints the refund payment in the SAME transaction.
- Completed returns (or returns with a processed refund) are locked.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, DecimalField, IntegerField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.money import ZERO, money
from core.services.sequences import next_document_number
from customers.services import customer_directory
from payments.services import payment_service
from returns.models import Return, ReturnItem
from returns.services.exceptions import (
    EmptyReturn,
    InvalidReturnQuantity,
    InvalidReturnTransition,
    QuantityExceedsAvailable,
    RefundExceedsReturnTotal,
    ReturnDateInFuture,
    ReturnLocked,
    ReturnNotFound,
    ReturnNotPending,
    SaleCancelled,
    SaleItemNotFound,
)
from sales.models import Sale
from sales.services import sale_store

logger = logging.getLogger("returns")

RETURN_NUMBER_KIND = "RET"

UPDATABLE_FIELDS = ("return_date", "return_type", "reason", "notes")


# ============================================================
# QUANTITY ACCOUNTING
# ============================================================


def already_returned_quantity(sale_item, *, exclude_return=None) -> int:
    """
    Units of a sale line already claimed by non-rejected returns.
    """
    qs = ReturnItem.objects.filter(sale_item=sale_item).exclude(
        sale_return__status=Return.STATUS_REJECTED
    )
    if exclude_return is not None:
        qs = qs.exclude(sale_return=exclude_return)

    total = qs.aggregate(
        total=Coalesce(Sum("quantity_returned"), Value(0), output_field=IntegerField())
    )["total"]
    return int(total)


def _check_return_date(return_date) -> None:
    if return_date and return_date > timezone.localdate():
        raise ReturnDateInFuture(f"Return date cannot be in the future: {return_date}")


def _build_item_rows(*, sale: Sale, items, exclude_return=None) -> list[dict]:
    """
    Validate requested lines against the sale and return ReturnItem field dicts.

    Locks the sale's item rows for the rest of the transaction.
    """
    if not items:
        raise EmptyReturn("A return needs at least one item")

    sale_items = {
        str(si.id): si
        for si in sale_store.find_items_by_sale_id(sale.id, lock_items=True)
    }

    claimed_in_request: dict[str, int] = {}
    rows = []

    for raw in items:
        key = str(raw.get("sale_item_id"))
        sale_item = sale_items.get(key)
        if sale_item is None:
            raise SaleItemNotFound(
                f"Sale item {key} not found on sale {sale.sale_number}"
            )

        quantity = int(raw.get("quantity_returned") or 0)
        if quantity < 1:
            raise InvalidReturnQuantity(
                f"Returned quantity must be at least 1 (got {quantity})"
            )

        already = already_returned_quantity(
            sale_item, exclude_return=exclude_return
        ) + claimed_in_request.get(key, 0)
        available = sale_item.quantity - already

        if quantity > available:
            label = sale_item.product_name or sale_item.product_id
            raise QuantityExceedsAvailable(
                f"Return quantity ({quantity}) exceeds available quantity "
                f"({available}) for {label}",
                sale_item_id=key,
                available=available,
            )

        claimed_in_request[key] = claimed_in_request.get(key, 0) + quantity

        rows.append(
            {
                "sale_item": sale_item,
                "product_id": sale_item.product_id,
                "product_name": sale_item.product_name,
                "product_sku": sale_item.product_sku,
                "quantity_returned": quantity,
                "original_quantity": sale_item.quantity,
                "unit_price": sale_item.unit_price,
                "line_total": money(sale_item.unit_price * quantity),
                "condition": raw.get("condition") or ReturnItem.CONDITION_GOOD,
                "notes": raw.get("notes") or "",
            }
        )

    return rows


def _derive_return_type(*, sale_items_by_id: dict, rows: list[dict], exclude_return=None) -> str:
    """
    full: after this return every line of the sale is completely returned.
    """
    requested: dict[str, int] = {}
    for row in rows:
        key = str(row["sale_item"].id)
        requested[key] = requested.get(key, 0) + row["quantity_returned"]

    for key, sale_item in sale_items_by_id.items():
        returned = already_returned_quantity(sale_item, exclude_return=exclude_return)
        if returned + requested.get(key, 0) < sale_item.quantity:
            return Return.TYPE_PARTIAL
    return Return.TYPE_FULL


def _insert_items(sale_return: Return, rows: list[dict]) -> None:
    ReturnItem.objects.bulk_create(
        [ReturnItem(sale_return=sale_return, **row) for row in rows]
    )


def _rows_total(rows) -> Decimal:
    return money(sum((row["line_total"] for row in rows), ZERO))


def _lock_return(return_id) -> Return:
    try:
        return Return.objects.select_for_update().get(pk=return_id)
    except (Return.DoesNotExist, ValueError, ValidationError) as exc:
        raise ReturnNotFound(f"Return {return_id} not found") from exc


# ============================================================
# CREATE
# ============================================================


@transaction.atomic
def create_return(*, return_data: dict, items, created_by=None) -> Return:
    """
    CREATE RETURN (PENDING)

    FLOW:
    1) Sale exists and is not cancelled; its customer exists
    2) Return date not in the future
    3) Lock sale lines, validate every requested line (scarcity)
    4) Number from the RET-YYYYMM sequence, persist return + items
    """
    sale = sale_store.find_by_id(return_data.get("sale_id"))
    if sale.status == Sale.STATUS_CANCELLED:
        raise SaleCancelled(f"Cannot create return for cancelled sale {sale.sale_number}")

    customer = customer_directory.find_by_id(sale.customer_id)

    return_date = return_data.get("return_date") or timezone.localdate()
    _check_return_date(return_date)

    rows = _build_item_rows(sale=sale, items=items)

    return_type = return_data.get("return_type")
    if not return_type:
        sale_items = {
            str(si.id): si for si in sale_store.find_items_by_sale_id(sale.id)
        }
        return_type = _derive_return_type(sale_items_by_id=sale_items, rows=rows)

    sale_return = Return.objects.create(
        return_number=next_document_number(
            kind=RETURN_NUMBER_KIND, model=Return, field="return_number"
        ),
        sale=sale,
        customer=customer,
        return_date=return_date,
        return_type=return_type,
        reason=return_data.get("reason") or Return.REASON_OTHER,
        total_amount=_rows_total(rows),
        refund_amount=ZERO,
        status=Return.STATUS_PENDING,
        refund_status=Return.REFUND_PENDING,
        notes=return_data.get("notes") or "",
        created_by=created_by,
    )
    _insert_items(sale_return, rows)

    logger.info(
        "Return created",
        extra={
            "return_id": str(sale_return.id),
            "return_number": sale_return.return_number,
            "sale_id": str(sale.id),
            "total_amount": str(sale_return.total_amount),
            "lines": len(rows),
        },
    )
    return get_return_by_id(sale_return.id)


# ============================================================
# PROCESS (APPROVE / REJECT)
# ============================================================


@transaction.atomic
def process_return(
    *,
    return_id,
    status: str,
    refund_amount=None,
    notes=None,
    processed_by=None,
) -> Return:
    """
    PROCESS A PENDING RETURN

    approved:
    - refund defaults to the return total; 0 <= refund <= total
    - refund > 0 -> one negative payment, reference REFUND-<return_number>
    - stored as completed
    rejected:
    - no refund, quantities released back to the sale
    """
    sale_return = _lock_return(return_id)

    if sale_return.status != Return.STATUS_PENDING:
        raise ReturnNotPending(
            f"Return {sale_return.return_number} has already been processed "
            f"({sale_return.status})"
        )

    if status == Return.STATUS_APPROVED:
        total = money(sale_return.total_amount)
        amount = total if refund_amount is None else money(refund_amount)
        if amount < ZERO or amount > total:
            raise RefundExceedsReturnTotal(
                f"Refund amount {amount} must be between 0 and return total {total}"
            )

        if amount > ZERO:
            payment_service.record_refund(
                customer_id=sale_return.customer_id,
                amount=amount,
                reference=f"REFUND-{sale_return.return_number}",
                reason=f"Refund for return {sale_return.return_number}",
                source_return=sale_return,
                created_by=processed_by,
            )
            sale_return.refund_status = Return.REFUND_PROCESSED
        else:
            sale_return.refund_status = Return.REFUND_CANCELLED

        sale_return.refund_amount = amount
        sale_return.status = Return.STATUS_COMPLETED

    elif status == Return.STATUS_REJECTED:
        sale_return.refund_amount = ZERO
        sale_return.refund_status = Return.REFUND_CANCELLED
        sale_return.status = Return.STATUS_REJECTED

    else:
        raise InvalidReturnTransition(
            f"Return can only be approved or rejected (got '{status}')"
        )

    if notes is not None:
        sale_return.notes = notes
    sale_return.processed_by = processed_by
    sale_return.processed_at = timezone.now()
    sale_return.save()

    logger.info(
        "Return processed",
        extra={
            "return_id": str(sale_return.id),
            "status": sale_return.status,
            "refund_status": sale_return.refund_status,
            "refund_amount": str(sale_return.refund_amount),
        },
    )
    return get_return_by_id(sale_return.id)


# ============================================================
# UPDATE / DELETE
# ============================================================


@transaction.atomic
def update_return(*, return_id, patch: dict, items=None) -> Return:
    """
    Header fields change while the return is not locked. Items are replaced
    as a whole set, only while pending, and re-validated without counting
    this return's current lines.
    """
    sale_return = _lock_return(return_id)

    if sale_return.is_locked:
        raise ReturnLocked(
            f"Return {sale_return.return_number} is {sale_return.status} and cannot be changed"
        )

    changes = {k: v for k, v in (patch or {}).items() if k in UPDATABLE_FIELDS}

    if changes.get("return_date"):
        _check_return_date(changes["return_date"])
        sale_return.return_date = changes["return_date"]
    if changes.get("return_type"):
        sale_return.return_type = changes["return_type"]
    if changes.get("reason"):
        sale_return.reason = changes["reason"]
    if "notes" in changes:
        sale_return.notes = changes["notes"] or ""

    if items is not None:
        if sale_return.status != Return.STATUS_PENDING:
            raise ReturnNotPending(
                f"Items of return {sale_return.return_number} can only change while pending"
            )

        rows = _build_item_rows(
            sale=sale_return.sale, items=items, exclude_return=sale_return
        )
        if not changes.get("return_type"):
            sale_items = {
                str(si.id): si
                for si in sale_store.find_items_by_sale_id(sale_return.sale_id)
            }
            sale_return.return_type = _derive_return_type(
                sale_items_by_id=sale_items, rows=rows, exclude_return=sale_return
            )

        sale_return.items.all().delete()
        _insert_items(sale_return, rows)
        sale_return.total_amount = _rows_total(rows)

    sale_return.save()

    logger.info(
        "Return updated",
        extra={
            "return_id": str(sale_return.id),
            "fields": sorted(changes),
            "items_replaced": items is not None,
        },
    )
    return get_return_by_id(sale_return.id)


@transaction.atomic
def delete_return(*, return_id) -> None:
    sale_return = _lock_return(return_id)

    if sale_return.is_locked:
        raise ReturnLocked(
            f"Cannot delete return {sale_return.return_number}: "
            f"status {sale_return.status}, refund {sale_return.refund_status}"
        )

    number = sale_return.return_number
    sale_return.delete()

    logger.info("Return deleted", extra={"return_number": number})


# ============================================================
# READ
# ============================================================


def _return_queryset():
    return Return.objects.select_related(
        "sale", "customer", "processed_by"
    ).prefetch_related("items", "refund_payments")


def get_return_by_id(return_id) -> Return:
    try:
        return _return_queryset().get(pk=return_id)
    except (Return.DoesNotExist, ValueError, ValidationError) as exc:
        raise ReturnNotFound(f"Return {return_id} not found") from exc


def list_returns(*, filters: dict | None = None):
    """
    Supported filters: sale_id, customer_id, status, refund_status,
    return_type, reason, date_from, date_to, search.
    """
    filters = filters or {}
    qs = _return_queryset()

    for field in ("sale_id", "customer_id", "status", "refund_status", "return_type", "reason"):
        if filters.get(field):
            qs = qs.filter(**{field: filters[field]})

    if filters.get("date_from"):
        qs = qs.filter(return_date__gte=filters["date_from"])
    if filters.get("date_to"):
        qs = qs.filter(return_date__lte=filters["date_to"])

    search = (filters.get("search") or "").strip()
    if search:
        qs = qs.filter(
            Q(return_number__icontains=search)
            | Q(sale__sale_number__icontains=search)
            | Q(customer__name__icontains=search)
        )

    return qs.order_by("-created_at")


def get_sale_returns(sale_id) -> list[Return]:
    sale = sale_store.find_by_id(sale_id)
    return list(_return_queryset().filter(sale=sale).order_by("created_at", "id"))


def get_return_stats(*, filters: dict | None = None) -> dict:
    filters = filters or {}
    qs = Return.objects.all()
    if filters.get("date_from"):
        qs = qs.filter(return_date__gte=filters["date_from"])
    if filters.get("date_to"):
        qs = qs.filter(return_date__lte=filters["date_to"])

    zero = Value(ZERO, output_field=DecimalField(max_digits=16, decimal_places=2))
    stats = qs.aggregate(
        total_returns=Count("id"),
        total_return_amount=Coalesce(Sum("total_amount"), zero),
        total_refund_amount=Coalesce(Sum("refund_amount"), zero),
        completed_returns=Count("id", filter=Q(status=Return.STATUS_COMPLETED)),
        pending_returns=Count("id", filter=Q(status=Return.STATUS_PENDING)),
        rejected_returns=Count("id", filter=Q(status=Return.STATUS_REJECTED)),
        full_returns=Count("id", filter=Q(return_type=Return.TYPE_FULL)),
        partial_returns=Count("id", filter=Q(return_type=Return.TYPE_PARTIAL)),
    )
    stats["total_return_amount"] = money(stats["total_return_amount"])
    stats["total_refund_amount"] = money(stats["total_refund_amount"])
    return stats
