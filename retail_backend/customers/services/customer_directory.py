# customers/services/customer_directory.py

"""
CUSTOMER DIRECTORY (NARROW INTERFACE)

The ledgers only ever need two things from customers:
- find_by_id(): existence + status (blocked customers cannot pay)
- update_credit(): move used credit when a credit-type method is used or refunded

Used credit never goes below zero. Going over the credit limit is allowed
(the sale already happened) but is logged for follow-up.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction

from core.exceptions import NotFound, PreconditionFailed
from core.money import ZERO, money
from customers.models import Customer, CustomerCreditMovement

logger = logging.getLogger("payments")


class CustomerNotFound(NotFound):
    """Customer not found."""

    code = "CUSTOMER_NOT_FOUND"


class CustomerBlocked(PreconditionFailed):
    """Cannot process payment for blocked customer."""

    code = "CUSTOMER_BLOCKED"


def find_by_id(customer_id, *, for_update: bool = False) -> Customer:
    qs = Customer.objects.all()
    if for_update:
        qs = qs.select_for_update()

    try:
        return qs.get(pk=customer_id)
    except (Customer.DoesNotExist, ValueError, ValidationError) as exc:
        raise CustomerNotFound(f"Customer {customer_id} not found") from exc


def get_payable_customer(customer_id) -> Customer:
    """
    Customer that may receive a payment: must exist and must not be blocked.
    """
    customer = find_by_id(customer_id)
    if customer.is_blocked:
        raise CustomerBlocked(
            f"Cannot process payment for blocked customer {customer.code}"
        )
    return customer


@transaction.atomic
def update_credit(customer_id, amount, credit_type: str) -> Customer:
    if credit_type not in (
        CustomerCreditMovement.TYPE_ADD,
        CustomerCreditMovement.TYPE_SUBTRACT,
    ):
        raise ValueError(f"Invalid credit movement type: {credit_type}")

    customer = find_by_id(customer_id, for_update=True)
    amt = abs(money(amount))
    previous = Decimal(customer.used_credit)

    if credit_type == CustomerCreditMovement.TYPE_ADD:
        new_used = previous + amt
    else:
        new_used = max(ZERO, previous - amt)

    customer.used_credit = new_used
    customer.save(update_fields=["used_credit", "updated_at"])

    CustomerCreditMovement.objects.create(
        customer=customer,
        movement_type=credit_type,
        amount=amt,
        previous_used_credit=previous,
        new_used_credit=new_used,
    )

    if new_used > Decimal(customer.credit_limit):
        logger.warning(
            "Customer used credit exceeds credit limit",
            extra={
                "customer_id": str(customer.id),
                "used_credit": str(new_used),
                "credit_limit": str(customer.credit_limit),
            },
        )

    return customer
