# payments/models/order_payment_event.py

"""
ORDER PAYMENT EVENT (OUTBOX)

Written in the same transaction as a completed, allocated payment.
Delivered to the order modules after commit (and by the sweep command),
so a payment never waits on, or fails because of, order bookkeeping.
"""

import uuid

from django.db import models


class OrderPaymentEvent(models.Model):
    STATUS_PENDING = "pending"
    STATUS_DELIVERED = "delivered"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_FAILED, "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.CASCADE,
        related_name="order_events",
    )

    order_id = models.UUIDField()
    order_type = models.CharField(max_length=16)
    order_number = models.CharField(max_length=64, blank=True, default="")
    allocated_amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_status = models.CharField(max_length=16)

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="pay_event_status_idx"),
        ]

    def as_payload(self) -> dict:
        return {
            "event_id": str(self.id),
            "payment_id": str(self.payment_id),
            "order_id": str(self.order_id),
            "order_type": self.order_type,
            "order_number": self.order_number,
            "allocated_amount": str(self.allocated_amount),
            "payment_status": self.payment_status,
        }

    def __str__(self):
        return f"{self.order_type}:{self.order_id} | {self.status}"
