# payments/services/method_registry.py

"""
PAYMENT METHOD REGISTRY

Read access to payment methods plus an idempotent seeding of the defaults.
The seed also runs from a data migration and `manage.py seed_payment_methods`.
"""

from __future__ import annotations

import logging

from django.db import transaction

from payments.models import PaymentMethod
from payments.services.exceptions import InvalidPaymentMethod

logger = logging.getLogger("payments")

REFUND_METHOD_CODE = "refund"

DEFAULT_METHODS = [
    {
        "code": "cash",
        "name": "Cash",
        "description": "Cash payment",
    },
    {
        "code": "bank_transfer",
        "name": "Bank Transfer",
        "description": "Bank transfer payment",
        "requires_reference": True,
    },
    {
        "code": "credit",
        "name": "Credit",
        "description": "Customer credit",
        "requires_approval": True,
        "is_credit": True,
    },
    {
        "code": "check",
        "name": "Check",
        "description": "Check payment",
        "requires_reference": True,
        "requires_approval": True,
    },
    {
        "code": REFUND_METHOD_CODE,
        "name": "Refund",
        "description": "Money returned to the customer for a merchandise return",
        "is_internal": True,
    },
]


def find_by_code(code) -> PaymentMethod | None:
    if not code:
        return None
    return PaymentMethod.objects.filter(code=str(code).strip()).first()


def get_active_method(code) -> PaymentMethod:
    """
    Method usable for a new payment: must exist and be active.
    """
    method = find_by_code(code)
    if method is None or not method.is_active:
        raise InvalidPaymentMethod(f"Invalid or inactive payment method: {code}")
    return method


def get_active_methods(*, include_internal: bool = False):
    qs = PaymentMethod.objects.filter(is_active=True)
    if not include_internal:
        qs = qs.filter(is_internal=False)
    return qs.order_by("name")


@transaction.atomic
def ensure_default_methods() -> int:
    """
    Create any missing default method. Existing rows are left untouched
    so local edits (deactivation, renames) survive re-seeding.

    Returns the number of rows created.
    """
    created = 0
    for method_defaults in DEFAULT_METHODS:
        defaults = {k: v for k, v in method_defaults.items() if k != "code"}
        _, was_created = PaymentMethod.objects.get_or_create(
            code=method_defaults["code"], defaults=defaults
        )
        if was_created:
            created += 1

    if created:
        logger.info("Seeded payment methods", extra={"created_count": created})
    return created
