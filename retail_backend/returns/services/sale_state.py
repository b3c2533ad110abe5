# returns/services/sale_state.py

"""
SALE STATE RECONSTRUCTOR (READ-ONLY PROJECTION)

Answers "what did this sale look like" at a point in its return history:
- before a given return (every return created earlier than it)
- after a given return (the same, plus exactly that return)
- now (no return given: every return)

Rules:
- Pure read: nothing is written, repeated calls give equal results.
- Returns are ordered by (created_at, id).
- Earlier rejected returns are listed but do not reduce any quantity.
- An after-view always overlays the target return's own items, rejected or not.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db.models import Q

from core.money import ZERO, money
from returns.models import Return
from returns.services.exceptions import ReturnNotFound
from sales.services import sale_store


def _sale_returns(sale):
    return (
        Return.objects.filter(sale=sale)
        .prefetch_related("items")
        .order_by("created_at", "id")
    )


def _get_target(sale, return_id) -> Return:
    try:
        target = _sale_returns(sale).filter(pk=return_id).first()
    except (ValueError, ValidationError) as exc:
        raise ReturnNotFound(f"Return {return_id} not found") from exc

    if target is None:
        raise ReturnNotFound(
            f"Return {return_id} not found on sale {sale.sale_number}"
        )
    return target


def _returns_before(sale, target: Return) -> list[Return]:
    return list(
        _sale_returns(sale).filter(
            Q(created_at__lt=target.created_at)
            | Q(created_at=target.created_at, id__lt=target.id)
        )
    )


def _return_summary(ret: Return) -> dict:
    return {
        "id": str(ret.id),
        "return_number": ret.return_number,
        "return_date": ret.return_date,
        "return_type": ret.return_type,
        "status": ret.status,
        "refund_status": ret.refund_status,
        "total_amount": money(ret.total_amount),
        "refund_amount": money(ret.refund_amount),
        "created_at": ret.created_at,
        "items": [
            {
                "sale_item_id": str(item.sale_item_id),
                "quantity_returned": item.quantity_returned,
                "line_total": money(item.line_total),
            }
            for item in ret.items.all()
        ],
    }


def _project(sale, sale_items, history: list[Return], target: Return | None = None) -> dict:
    """
    Quantities claimed by the non-rejected returns in `history`, plus every
    item of `target` whatever its status.
    """
    counted = [ret for ret in history if ret.status != Return.STATUS_REJECTED]
    if target is not None:
        counted.append(target)

    returned: dict[str, int] = {}
    for ret in counted:
        for item in ret.items.all():
            key = str(item.sale_item_id)
            returned[key] = returned.get(key, 0) + item.quantity_returned

    items = []
    totals = {
        "quantity_sold": 0,
        "quantity_returned": 0,
        "quantity_remaining": 0,
        "original_amount": ZERO,
        "returned_amount": ZERO,
        "remaining_amount": ZERO,
    }

    for si in sale_items:
        qty_returned = returned.get(str(si.id), 0)
        qty_remaining = si.quantity - qty_returned
        unit_price = money(si.unit_price)
        line_total = money(unit_price * si.quantity)
        returned_amount = money(unit_price * qty_returned)

        items.append(
            {
                "sale_item_id": str(si.id),
                "product_id": si.product_id,
                "product_name": si.product_name,
                "product_sku": si.product_sku,
                "quantity": si.quantity,
                "unit_price": unit_price,
                "line_total": line_total,
                "quantity_returned": qty_returned,
                "quantity_remaining": qty_remaining,
                "returned_amount": returned_amount,
                "remaining_amount": line_total - returned_amount,
            }
        )

        totals["quantity_sold"] += si.quantity
        totals["quantity_returned"] += qty_returned
        totals["quantity_remaining"] += qty_remaining
        totals["original_amount"] += line_total
        totals["returned_amount"] += returned_amount
        totals["remaining_amount"] += line_total - returned_amount

    return {
        "sale": {
            "id": str(sale.id),
            "sale_number": sale.sale_number,
            "customer_id": str(sale.customer_id) if sale.customer_id else None,
            "status": sale.status,
            "total_amount": money(sale.total_amount),
            "created_at": sale.created_at,
        },
        "items": items,
        "returns": [
            _return_summary(ret) for ret in history + ([target] if target else [])
        ],
        "totals": totals,
    }


def get_sale_state_before_return(sale_id, return_id=None) -> dict:
    sale = sale_store.find_by_id(sale_id)
    sale_items = sale_store.find_items_by_sale_id(sale.id)

    if return_id is None:
        returns = list(_sale_returns(sale))
    else:
        returns = _returns_before(sale, _get_target(sale, return_id))

    return _project(sale, sale_items, returns)


def get_sale_state_after_return(sale_id, return_id) -> dict:
    sale = sale_store.find_by_id(sale_id)
    sale_items = sale_store.find_items_by_sale_id(sale.id)

    target = _get_target(sale, return_id)

    return _project(sale, sale_items, _returns_before(sale, target), target)

