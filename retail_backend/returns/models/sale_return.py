# returns/models/sale_return.py

"""
RETURN (MERCHANDISE RETURN AGAINST A SALE)

Lifecycle:
    pending -> approved (stored as completed once the refund is settled)
    pending -> rejected

Rules:
- Starts pending with refund_status pending and refund_amount 0.
- Completed returns, and returns whose refund was processed, are locked:
  no edits, no deletion.
- The sale itself is never mutated by a return.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

User = settings.AUTH_USER_MODEL


class Return(models.Model):
    TYPE_FULL = "full"
    TYPE_PARTIAL = "partial"

    TYPE_CHOICES = [
        (TYPE_FULL, "Full"),
        (TYPE_PARTIAL, "Partial"),
    ]

    REASON_DEFECTIVE = "defective"
    REASON_WRONG_ITEM = "wrong_item"
    REASON_NOT_NEEDED = "not_needed"
    REASON_DAMAGED = "damaged"
    REASON_OTHER = "other"

    REASON_CHOICES = [
        (REASON_DEFECTIVE, "Defective"),
        (REASON_WRONG_ITEM, "Wrong item"),
        (REASON_NOT_NEEDED, "Not needed"),
        (REASON_DAMAGED, "Damaged"),
        (REASON_OTHER, "Other"),
    ]

    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_COMPLETED = "completed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_COMPLETED, "Completed"),
    ]

    REFUND_PENDING = "pending"
    REFUND_PROCESSED = "processed"
    REFUND_CANCELLED = "cancelled"

    REFUND_STATUS_CHOICES = [
        (REFUND_PENDING, "Pending"),
        (REFUND_PROCESSED, "Processed"),
        (REFUND_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    return_number = models.CharField(max_length=32, unique=True)

    sale = models.ForeignKey(
        "sales.Sale",
        on_delete=models.PROTECT,
        related_name="returns",
    )
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="returns",
    )

    return_date = models.DateField()
    return_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    reason = models.CharField(max_length=16, choices=REASON_CHOICES)

    total_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    refund_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )
    refund_status = models.CharField(
        max_length=16,
        choices=REFUND_STATUS_CHOICES,
        default=REFUND_PENDING,
    )

    processed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="processed_returns",
    )
    processed_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_returns",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["sale", "created_at"], name="ret_sale_created_idx"),
            models.Index(fields=["status"], name="ret_status_idx"),
            models.Index(fields=["return_date"], name="ret_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(refund_amount__gte=0),
                name="chk_return_refund_non_negative",
            ),
        ]

    @property
    def is_locked(self) -> bool:
        return (
            self.status == self.STATUS_COMPLETED
            or self.refund_status == self.REFUND_PROCESSED
        )

    def __str__(self):
        return f"{self.return_number} | {self.status}"
