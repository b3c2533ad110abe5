# customers/models.py

"""
CUSTOMER DIRECTORY

Minimal customer master consumed by the payment and return ledgers:
- status gates payments (blocked customers cannot pay)
- used_credit tracks exposure taken through credit-type payment methods

Every credit change is journaled in CustomerCreditMovement (append-only).
"""

import uuid
from decimal import Decimal

from django.db import models


class Customer(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"
    STATUS_BLOCKED = "blocked"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_INACTIVE, "Inactive"),
        (STATUS_BLOCKED, "Blocked"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
    )

    credit_limit = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    used_credit = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="customers_c_status_6f1e2a_idx"),
            models.Index(fields=["name"], name="customers_c_name_3b7c9d_idx"),
        ]

    @property
    def is_blocked(self) -> bool:
        return self.status == self.STATUS_BLOCKED

    @property
    def available_credit(self) -> Decimal:
        return Decimal(self.credit_limit) - Decimal(self.used_credit)

    def __str__(self):
        return f"{self.code} | {self.name}"


class CustomerCreditMovement(models.Model):
    """
    Append-only journal of used-credit changes.
    """

    TYPE_ADD = "add"
    TYPE_SUBTRACT = "subtract"

    TYPE_CHOICES = [
        (TYPE_ADD, "Add"),
        (TYPE_SUBTRACT, "Subtract"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name="credit_movements",
    )

    movement_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    previous_used_credit = models.DecimalField(max_digits=14, decimal_places=2)
    new_used_credit = models.DecimalField(max_digits=14, decimal_places=2)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.customer_id} | {self.movement_type} {self.amount}"
