# payments/models/payment_method.py

from django.db import models
from django.db.models import Q


class PaymentMethod(models.Model):
    """
    Reference data for allowed payment methods.

    Payments point at a method by its code. Flags drive ledger behaviour:
    - requires_reference: payment must carry a reference (cheque no, transfer id)
    - requires_approval: payment starts pending until approved
    - is_credit: payment moves the customer's used credit
    - is_internal: system-only method (return refunds), hidden from pickers
    """

    code = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=255, blank=True, default="")

    is_active = models.BooleanField(default=True)
    requires_reference = models.BooleanField(default=False)
    requires_approval = models.BooleanField(default=False)
    is_credit = models.BooleanField(default=False)
    is_internal = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_payment_method_code_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} | {self.name}"
