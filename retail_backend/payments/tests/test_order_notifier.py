# payments/tests/test_order_notifier.py

from __future__ import annotations

import uuid
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings

from customers.models import Customer
from payments.models import OrderPaymentEvent, PaymentAllocation
from payments.services import payment_service
from payments.services.order_notifier import dispatch_pending_events

DELIVERED = []


def recording_notifier(payload):
    DELIVERED.append(payload)


def failing_notifier(payload):
    raise RuntimeError("order service unavailable")


def _alloc(amount):
    return {
        "order_id": uuid.uuid4(),
        "order_type": PaymentAllocation.ORDER_SALE,
        "order_number": "SALE-1",
        "allocated_amount": Decimal(amount),
    }


class OrderPaymentOutboxTests(TestCase):
    def setUp(self):
        DELIVERED.clear()
        self.customer = Customer.objects.create(code="C-OUT", name="Outbox Ltd")

    def _create(self, method="cash", allocations=None, **data):
        return payment_service.create_payment(
            payment_data={
                "customer_id": self.customer.id,
                "amount": Decimal("100.00"),
                "payment_method": method,
                **data,
            },
            allocations=allocations,
        )

    # -----------------------------
    # Enqueue
    # -----------------------------

    def test_completed_payment_writes_one_event_per_allocation(self):
        payment = self._create(allocations=[_alloc("60.00"), _alloc("40.00")])

        events = OrderPaymentEvent.objects.filter(payment=payment)
        self.assertEqual(events.count(), 2)
        self.assertTrue(all(e.status == OrderPaymentEvent.STATUS_PENDING for e in events))
        self.assertEqual(
            sorted(e.allocated_amount for e in events),
            [Decimal("40.00"), Decimal("60.00")],
        )

    def test_pending_payment_writes_nothing_until_approved(self):
        payment = self._create(method="credit", allocations=[_alloc("10.00")])
        self.assertFalse(OrderPaymentEvent.objects.exists())

        payment_service.approve_payment(payment_id=payment.id)

        self.assertEqual(OrderPaymentEvent.objects.filter(payment=payment).count(), 1)

    def test_unallocated_payment_writes_nothing(self):
        self._create()
        self.assertFalse(OrderPaymentEvent.objects.exists())

    # -----------------------------
    # Dispatch
    # -----------------------------

    @override_settings(
        ORDER_PAYMENT_NOTIFIER="payments.tests.test_order_notifier.recording_notifier"
    )
    def test_dispatch_delivers_pending_events(self):
        payment = self._create(allocations=[_alloc("25.00")])

        result = dispatch_pending_events()

        self.assertEqual(result, {"delivered": 1, "failed": 0})
        self.assertEqual(DELIVERED[0]["payment_id"], str(payment.id))
        self.assertEqual(DELIVERED[0]["allocated_amount"], "25.00")
        event = OrderPaymentEvent.objects.get()
        self.assertEqual(event.status, OrderPaymentEvent.STATUS_DELIVERED)
        self.assertIsNotNone(event.delivered_at)

    @override_settings(
        ORDER_PAYMENT_NOTIFIER="payments.tests.test_order_notifier.failing_notifier",
        ORDER_PAYMENT_MAX_ATTEMPTS=2,
    )
    def test_failures_are_recorded_and_give_up_after_max_attempts(self):
        self._create(allocations=[_alloc("25.00")])

        first = dispatch_pending_events()
        event = OrderPaymentEvent.objects.get()
        self.assertEqual(first, {"delivered": 0, "failed": 1})
        self.assertEqual(event.status, OrderPaymentEvent.STATUS_PENDING)
        self.assertIn("unavailable", event.last_error)

        dispatch_pending_events()
        event.refresh_from_db()
        self.assertEqual(event.attempts, 2)
        self.assertEqual(event.status, OrderPaymentEvent.STATUS_FAILED)

    @override_settings(
        ORDER_PAYMENT_NOTIFIER="payments.tests.test_order_notifier.recording_notifier",
        ORDER_PAYMENT_DISPATCH_ON_COMMIT=True,
    )
    def test_events_are_dispatched_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True):
            self._create(allocations=[_alloc("15.00")])

        self.assertEqual(len(DELIVERED), 1)
        self.assertEqual(
            OrderPaymentEvent.objects.get().status, OrderPaymentEvent.STATUS_DELIVERED
        )

    @override_settings(
        ORDER_PAYMENT_NOTIFIER="payments.tests.test_order_notifier.failing_notifier",
        ORDER_PAYMENT_DISPATCH_ON_COMMIT=True,
    )
    def test_notifier_failure_does_not_reach_payment_caller(self):
        with self.captureOnCommitCallbacks(execute=True):
            payment = self._create(allocations=[_alloc("15.00")])

        payment.refresh_from_db()
        self.assertEqual(payment.allocated_amount, Decimal("15.00"))
        self.assertEqual(OrderPaymentEvent.objects.get().attempts, 1)

    # -----------------------------
    # Sweep command
    # -----------------------------

    @override_settings(
        ORDER_PAYMENT_NOTIFIER="payments.tests.test_order_notifier.recording_notifier"
    )
    def test_sweep_command(self):
        self._create(allocations=[_alloc("10.00"), _alloc("20.00")])
        out = StringIO()

        call_command("dispatch_order_payment_events", stdout=out)

        self.assertIn("Delivered: 2", out.getvalue())
        self.assertFalse(
            OrderPaymentEvent.objects.filter(status=OrderPaymentEvent.STATUS_PENDING).exists()
        )

    def test_sweep_command_dry_run(self):
        self._create(allocations=[_alloc("10.00")])
        out = StringIO()

        call_command("dispatch_order_payment_events", "--dry-run", stdout=out)

        self.assertIn("Pending order payment events: 1", out.getvalue())
        self.assertTrue(
            OrderPaymentEvent.objects.filter(status=OrderPaymentEvent.STATUS_PENDING).exists()
        )
