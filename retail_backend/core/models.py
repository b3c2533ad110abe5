# core/models.py

"""
DOCUMENT SEQUENCE

One row per business-key prefix (e.g. "PAY-202610", "RET-202610").

The row is locked with SELECT ... FOR UPDATE while the counter is incremented,
so two transactions in the same month can never hand out the same number.
"""

from django.db import models


class DocumentSequence(models.Model):
    prefix = models.CharField(max_length=32, unique=True)
    current_number = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["prefix"]

    def __str__(self):
        return f"{self.prefix} @ {self.current_number}"
