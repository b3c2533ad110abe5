# payments/models/payment.py

"""
PAYMENT (LEDGER ROW)

Money received from (positive amount) or returned to (negative amount)
a customer.

CONSERVATION:
- allocated_amount + unallocated_amount == amount
- allocated_amount == Σ allocations.allocated_amount

Both are maintained ONLY by
payments.services.payment_service.update_allocation_amounts(), which runs in
the same transaction as every allocation or amount change.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

User = settings.AUTH_USER_MODEL


class Payment(models.Model):
    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    payment_number = models.CharField(max_length=32, unique=True)

    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="payments",
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)

    payment_method = models.ForeignKey(
        "payments.PaymentMethod",
        to_field="code",
        on_delete=models.PROTECT,
        related_name="payments",
    )

    payment_date = models.DateField()

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_COMPLETED,
    )

    allocated_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    unallocated_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    reference = models.CharField(max_length=128, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    # Refund linkage
    original_payment = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="refunds",
    )
    source_return = models.ForeignKey(
        "returns.Return",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="refund_payments",
    )

    approved_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_payments",
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_payments",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-payment_date", "-created_at"]
        indexes = [
            models.Index(fields=["customer", "payment_date"], name="pay_customer_date_idx"),
            models.Index(fields=["status"], name="pay_status_idx"),
            models.Index(fields=["payment_date"], name="pay_date_idx"),
        ]

    @property
    def is_refund(self) -> bool:
        return Decimal(self.amount) < 0

    def __str__(self):
        return f"{self.payment_number} | {self.amount}"
