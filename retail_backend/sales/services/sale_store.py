# sales/services/sale_store.py

"""
SALE STORE (READ-ONLY INTERFACE)

What the return ledger is allowed to know about sales:
- find_by_id(): the sale header
- find_items_by_sale_id(): its line items, in insertion order

lock_items=True takes row locks on the lines so concurrent returns of the
same sale serialize on them.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError

from core.exceptions import NotFound
from sales.models import Sale, SaleItem


class SaleNotFound(NotFound):
    """Sale not found."""

    code = "SALE_NOT_FOUND"


def find_by_id(sale_id) -> Sale:
    try:
        return Sale.objects.select_related("customer").get(pk=sale_id)
    except (Sale.DoesNotExist, ValueError, ValidationError) as exc:
        raise SaleNotFound(f"Sale {sale_id} not found") from exc


def find_items_by_sale_id(sale_id, *, lock_items: bool = False) -> list[SaleItem]:
    qs = SaleItem.objects.filter(sale_id=sale_id).order_by("created_at", "id")
    if lock_items:
        qs = qs.select_for_update()
    return list(qs)
