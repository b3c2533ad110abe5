# sales/models/sale_item.py

"""
SALE ITEM (IMMUTABLE SNAPSHOT)

Snapshot of a sold line. Product identity is denormalized (id, name, sku)
so returns can be projected without a product catalog.

Rows are editable only while the parent sale is a draft.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .sale import Sale


class SaleItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product_id = models.CharField(max_length=64)
    product_name = models.CharField(max_length=200, blank=True, default="")
    product_sku = models.CharField(max_length=64, blank=True, default="")

    quantity = models.PositiveIntegerField()

    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
    )

    line_total = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        editable=False,
        default=Decimal("0.00"),
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sale", "created_at"], name="sales_salei_sale_id_4e7a21_idx"),
        ]

    def save(self, *args, **kwargs):
        self.line_total = Decimal(self.unit_price) * Decimal(int(self.quantity or 0))

        if not self._state.adding:
            if getattr(self.sale, "status", None) != Sale.STATUS_DRAFT:
                raise ValidationError(
                    "SaleItem records are immutable once sale is not draft"
                )

        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.product_name or self.product_id} x {self.quantity}"
