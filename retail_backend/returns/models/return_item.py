# returns/models/return_item.py

"""
RETURN ITEM (SNAPSHOT)

One returned line of a sale item. Quantity and price of the original line
are copied at return time so the return keeps its value even if the sale
line were ever corrected.

SCARCITY:
    per sale_item: Σ quantity_returned over non-rejected returns
                   <= sale_item.quantity
(enforced by returns.services.return_service under sale item row locks)
"""

import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q


class ReturnItem(models.Model):
    CONDITION_GOOD = "good"
    CONDITION_DAMAGED = "damaged"
    CONDITION_DEFECTIVE = "defective"
    CONDITION_UNOPENED = "unopened"

    CONDITION_CHOICES = [
        (CONDITION_GOOD, "Good"),
        (CONDITION_DAMAGED, "Damaged"),
        (CONDITION_DEFECTIVE, "Defective"),
        (CONDITION_UNOPENED, "Unopened"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sale_return = models.ForeignKey(
        "returns.Return",
        on_delete=models.CASCADE,
        related_name="items",
    )
    sale_item = models.ForeignKey(
        "sales.SaleItem",
        on_delete=models.PROTECT,
        related_name="return_items",
    )

    product_id = models.CharField(max_length=64)
    product_name = models.CharField(max_length=200, blank=True, default="")
    product_sku = models.CharField(max_length=64, blank=True, default="")

    quantity_returned = models.PositiveIntegerField()
    original_quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    line_total = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    condition = models.CharField(
        max_length=16,
        choices=CONDITION_CHOICES,
        default=CONDITION_GOOD,
    )
    notes = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sale_item"], name="ret_item_sale_item_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_returned__gt=0),
                name="chk_return_item_quantity_positive",
            ),
        ]

    def save(self, *args, **kwargs):
        self.line_total = Decimal(self.unit_price) * Decimal(int(self.quantity_returned or 0))
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.product_name or self.product_id} x {self.quantity_returned}"
