# reconciliation/services/orchestrator.py

"""
RECONCILIATION ORCHESTRATOR

Single entry point for the operations that touch both ledgers.

Rules:
- One transaction.atomic boundary per operation: either every write of the
  operation commits or none does.
- No state of its own.
- Never catches ledger errors: callers (views, commands) translate them.
"""

from __future__ import annotations

import logging

from django.db import transaction

from payments.services import payment_service
from returns.services import return_service

logger = logging.getLogger("reconciliation")


def _user_id(user):
    return getattr(user, "pk", None)


@transaction.atomic
def create_payment(*, payment_data: dict, allocations=None, user=None):
    logger.info(
        "create_payment started",
        extra={
            "customer_id": str(payment_data.get("customer_id")),
            "allocation_count": len(allocations or []),
            "user_id": _user_id(user),
        },
    )
    payment = payment_service.create_payment(
        payment_data=payment_data,
        allocations=allocations,
        created_by=user,
    )
    logger.info(
        "create_payment finished",
        extra={"payment_id": str(payment.id), "payment_number": payment.payment_number},
    )
    return payment


@transaction.atomic
def update_payment(*, payment_id, patch: dict, allocations=None, user=None):
    logger.info(
        "update_payment started",
        extra={
            "payment_id": str(payment_id),
            "replace_allocations": allocations is not None,
            "user_id": _user_id(user),
        },
    )
    payment = payment_service.update_payment(
        payment_id=payment_id,
        patch=patch,
        allocations=allocations,
    )
    logger.info("update_payment finished", extra={"payment_id": str(payment.id)})
    return payment


@transaction.atomic
def refund_payment(*, payment_id, amount, reason: str = "", user=None):
    logger.info(
        "refund_payment started",
        extra={"payment_id": str(payment_id), "amount": str(amount), "user_id": _user_id(user)},
    )
    refund = payment_service.refund_payment(
        payment_id=payment_id,
        amount=amount,
        reason=reason,
        created_by=user,
    )
    logger.info(
        "refund_payment finished",
        extra={"payment_id": str(payment_id), "refund_payment_id": str(refund.id)},
    )
    return refund


@transaction.atomic
def create_return(*, return_data: dict, items, user=None):
    logger.info(
        "create_return started",
        extra={
            "sale_id": str(return_data.get("sale_id")),
            "line_count": len(items or []),
            "user_id": _user_id(user),
        },
    )
    sale_return = return_service.create_return(
        return_data=return_data,
        items=items,
        created_by=user,
    )
    logger.info(
        "create_return finished",
        extra={"return_id": str(sale_return.id), "return_number": sale_return.return_number},
    )
    return sale_return


@transaction.atomic
def process_return(*, return_id, status: str, refund_amount=None, notes=None, user=None):
    logger.info(
        "process_return started",
        extra={"return_id": str(return_id), "target_status": status, "user_id": _user_id(user)},
    )
    sale_return = return_service.process_return(
        return_id=return_id,
        status=status,
        refund_amount=refund_amount,
        notes=notes,
        processed_by=user,
    )
    logger.info(
        "process_return finished",
        extra={
            "return_id": str(sale_return.id),
            "status": sale_return.status,
            "refund_amount": str(sale_return.refund_amount),
        },
    )
    return sale_return
