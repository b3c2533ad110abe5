# payments/models/payment_allocation.py

import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone


class PaymentAllocation(models.Model):
    """
    One slice of a payment applied to an open order.

    RULES:
    - allocated_amount > 0
    - Σ allocated_amount per payment == payment.allocated_amount
    - The whole set is replaced on change (delete-all, then bulk insert)

    order_id is a weak reference: orders live in other modules
    (invoices, sales, purchases).
    """

    ORDER_INVOICE = "invoice"
    ORDER_SALE = "sale"
    ORDER_PURCHASE = "purchase"

    ORDER_TYPE_CHOICES = [
        (ORDER_INVOICE, "Invoice"),
        (ORDER_SALE, "Sale"),
        (ORDER_PURCHASE, "Purchase"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.CASCADE,
        related_name="allocations",
    )

    order_id = models.UUIDField()
    order_type = models.CharField(max_length=16, choices=ORDER_TYPE_CHOICES)
    order_number = models.CharField(max_length=64, blank=True, default="")

    allocated_amount = models.DecimalField(max_digits=14, decimal_places=2)

    # Order balance snapshot as supplied by the caller
    order_total = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )
    previously_paid = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    remaining_after_payment = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )

    allocated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["allocated_at", "id"]
        indexes = [
            models.Index(fields=["payment"], name="pay_alloc_payment_idx"),
            models.Index(fields=["order_type", "order_id"], name="pay_alloc_order_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(allocated_amount__gt=0),
                name="chk_payment_allocation_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.payment_id} -> {self.order_type}:{self.order_id} | {self.allocated_amount}"
