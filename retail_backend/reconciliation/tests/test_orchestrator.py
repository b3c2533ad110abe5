# reconciliation/tests/test_orchestrator.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from customers.models import Customer
from payments.models import Payment, PaymentMethod
from payments.services.exceptions import AllocationExceedsAmount, InvalidPaymentMethod
from reconciliation.services import orchestrator
from returns.models import Return
from sales.models import Sale, SaleItem

User = get_user_model()


class OrchestratorTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="ops", password="pass")
        self.customer = Customer.objects.create(code="C-ORC", name="Orchestrated")
        self.sale = Sale.objects.create(
            customer=self.customer,
            total_amount=Decimal("30.00"),
            status=Sale.STATUS_COMPLETED,
        )
        self.item = SaleItem.objects.create(
            sale=self.sale,
            product_id="P-1",
            product_name="Widget",
            quantity=3,
            unit_price=Decimal("10.00"),
        )

    def _create_return(self, quantity=2):
        return orchestrator.create_return(
            return_data={"sale_id": self.sale.id, "reason": Return.REASON_DAMAGED},
            items=[{"sale_item_id": self.item.id, "quantity_returned": quantity}],
            user=self.user,
        )

    # -----------------------------
    # Return + refund in one unit
    # -----------------------------

    def test_approval_commits_return_and_refund_together(self):
        ret = self._create_return()

        processed = orchestrator.process_return(
            return_id=ret.id, status=Return.STATUS_APPROVED, user=self.user
        )

        self.assertEqual(processed.status, Return.STATUS_COMPLETED)
        self.assertEqual(processed.processed_by, self.user)
        refund = Payment.objects.get(source_return=ret)
        self.assertEqual(refund.amount, Decimal("-20.00"))

    def test_failed_refund_rolls_back_the_approval(self):
        ret = self._create_return()
        PaymentMethod.objects.filter(code="refund").delete()

        with self.assertRaises(InvalidPaymentMethod):
            orchestrator.process_return(
                return_id=ret.id, status=Return.STATUS_APPROVED, user=self.user
            )

        ret.refresh_from_db()
        self.assertEqual(ret.status, Return.STATUS_PENDING)
        self.assertEqual(ret.refund_status, Return.REFUND_PENDING)
        self.assertIsNone(ret.processed_at)
        self.assertFalse(Payment.objects.exists())

    # -----------------------------
    # Payments
    # -----------------------------

    def test_payment_writes_are_attributed_to_the_user(self):
        payment = orchestrator.create_payment(
            payment_data={
                "customer_id": self.customer.id,
                "amount": Decimal("30.00"),
                "payment_method": "cash",
            },
            allocations=[
                {
                    "order_id": uuid.uuid4(),
                    "order_type": "sale",
                    "allocated_amount": Decimal("30.00"),
                }
            ],
            user=self.user,
        )
        refund = orchestrator.refund_payment(
            payment_id=payment.id, amount=Decimal("5.00"), reason="Overcharge", user=self.user
        )

        self.assertEqual(payment.created_by, self.user)
        self.assertEqual(refund.original_payment_id, payment.id)
        self.assertEqual(refund.created_by, self.user)

    def test_rejected_payment_leaves_nothing_behind(self):
        with self.assertRaises(AllocationExceedsAmount):
            orchestrator.create_payment(
                payment_data={
                    "customer_id": self.customer.id,
                    "amount": Decimal("10.00"),
                    "payment_method": "cash",
                },
                allocations=[
                    {
                        "order_id": uuid.uuid4(),
                        "order_type": "sale",
                        "allocated_amount": Decimal("10.01"),
                    }
                ],
            )

        self.assertFalse(Payment.objects.exists())

    def test_update_goes_through_the_ledger(self):
        payment = orchestrator.create_payment(
            payment_data={
                "customer_id": self.customer.id,
                "amount": Decimal("30.00"),
                "payment_method": "cash",
            },
        )

        updated = orchestrator.update_payment(
            payment_id=payment.id,
            patch={"notes": "Counted twice"},
            allocations=[
                {
                    "order_id": uuid.uuid4(),
                    "order_type": "invoice",
                    "allocated_amount": Decimal("12.50"),
                }
            ],
        )

        self.assertEqual(updated.notes, "Counted twice")
        self.assertEqual(updated.unallocated_amount, Decimal("17.50"))

    # -----------------------------
    # Logging
    # -----------------------------

    def test_operations_are_logged(self):
        with self.assertLogs("reconciliation", level="INFO") as logs:
            ret = self._create_return(quantity=1)
            orchestrator.process_return(return_id=ret.id, status=Return.STATUS_REJECTED)

        messages = [record.getMessage() for record in logs.records]
        self.assertIn("create_return started", messages)
        self.assertIn("process_return finished", messages)

    def test_failures_are_not_swallowed(self):
        with self.assertLogs("reconciliation", level="INFO") as logs:
            with self.assertRaises(AllocationExceedsAmount):
                orchestrator.create_payment(
                    payment_data={
                        "customer_id": self.customer.id,
                        "amount": Decimal("1.00"),
                        "payment_method": "cash",
                    },
                    allocations=[
                        {
                            "order_id": uuid.uuid4(),
                            "order_type": "sale",
                            "allocated_amount": Decimal("2.00"),
                        }
                    ],
                )

        messages = [record.getMessage() for record in logs.records]
        self.assertNotIn("create_payment finished", messages)
