# payments/tests/test_payments_api.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from customers.models import Customer
from payments.models import Payment

User = get_user_model()

PAYMENTS_URL = "/api/payments/"


class PaymentApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="clerk", password="pass")
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)
        self.customer = Customer.objects.create(code="C-API", name="Api Customer")

    def _payload(self, **overrides):
        payload = {
            "customer_id": str(self.customer.id),
            "amount": "100.00",
            "payment_method": "cash",
            "allocations": [
                {
                    "order_id": str(uuid.uuid4()),
                    "order_type": "invoice",
                    "allocated_amount": "60.00",
                },
            ],
        }
        payload.update(overrides)
        return payload

    # -----------------------------
    # Auth
    # -----------------------------

    def test_requires_authentication(self):
        anonymous = APIClient()
        res = anonymous.get(PAYMENTS_URL)
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    # -----------------------------
    # Create / read
    # -----------------------------

    def test_create_payment(self):
        res = self.client.post(PAYMENTS_URL, self._payload(), format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["allocated_amount"], "60.00")
        self.assertEqual(res.data["unallocated_amount"], "40.00")
        self.assertEqual(len(res.data["allocations"]), 1)
        self.assertEqual(res.data["customer_name"], "Api Customer")

    def test_retrieve_and_list(self):
        created = self.client.post(PAYMENTS_URL, self._payload(), format="json").data

        detail = self.client.get(f"{PAYMENTS_URL}{created['id']}/")
        listing = self.client.get(PAYMENTS_URL, {"status": "completed"})

        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(detail.data["payment_number"], created["payment_number"])
        self.assertEqual(listing.data["count"], 1)

    def test_methods_endpoint(self):
        res = self.client.get(f"{PAYMENTS_URL}methods/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertNotIn("refund", [m["code"] for m in res.data])

    # -----------------------------
    # Error envelope
    # -----------------------------

    def test_over_allocation_maps_to_invariant_error(self):
        payload = self._payload(amount="50.00")

        res = self.client.post(PAYMENTS_URL, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "ALLOCATION_EXCEEDS_AMOUNT")
        self.assertFalse(Payment.objects.exists())

    def test_unknown_payment_is_404(self):
        res = self.client.get(f"{PAYMENTS_URL}{uuid.uuid4()}/")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "PAYMENT_NOT_FOUND")

    def test_deleting_allocated_completed_payment_is_409(self):
        created = self.client.post(PAYMENTS_URL, self._payload(), format="json").data

        res = self.client.delete(f"{PAYMENTS_URL}{created['id']}/")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "CANNOT_DELETE_COMPLETED_PAYMENT")

    def test_malformed_input_stays_drf_native(self):
        res = self.client.post(PAYMENTS_URL, {"amount": "abc"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("customer_id", res.data)

    # -----------------------------
    # Update / refund / approve / stats
    # -----------------------------

    def test_patch_replaces_allocations(self):
        created = self.client.post(PAYMENTS_URL, self._payload(), format="json").data

        res = self.client.patch(
            f"{PAYMENTS_URL}{created['id']}/",
            {
                "allocations": [
                    {
                        "order_id": str(uuid.uuid4()),
                        "order_type": "sale",
                        "allocated_amount": "100.00",
                    }
                ]
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["unallocated_amount"], "0.00")

    def test_refund_endpoint(self):
        created = self.client.post(PAYMENTS_URL, self._payload(), format="json").data

        res = self.client.post(
            f"{PAYMENTS_URL}{created['id']}/refund/",
            {"amount": "25.00", "reason": "Damaged goods"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["amount"], "-25.00")
        self.assertEqual(res.data["original_payment_number"], created["payment_number"])

    def test_approve_endpoint(self):
        created = self.client.post(
            PAYMENTS_URL,
            self._payload(payment_method="credit", allocations=[]),
            format="json",
        ).data
        self.assertEqual(created["status"], "pending")

        res = self.client.post(f"{PAYMENTS_URL}{created['id']}/approve/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "completed")

    def test_status_endpoint(self):
        created = self.client.post(
            PAYMENTS_URL,
            self._payload(payment_method="credit", allocations=[]),
            format="json",
        ).data

        res = self.client.post(
            f"{PAYMENTS_URL}{created['id']}/status/", {"status": "cancelled"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "cancelled")

    def test_stats_endpoint(self):
        self.client.post(PAYMENTS_URL, self._payload(), format="json")

        res = self.client.get(f"{PAYMENTS_URL}stats/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["total_payments"], 1)
        self.assertEqual(Decimal(res.data["total_amount"]), Decimal("100.00"))

    # -----------------------------
    # Query params
    # -----------------------------

    def test_list_filters_are_applied(self):
        created = self.client.post(PAYMENTS_URL, self._payload(), format="json").data

        mine = self.client.get(
            PAYMENTS_URL,
            {"customer_id": str(self.customer.id), "date_from": created["payment_date"]},
        )
        other = self.client.get(PAYMENTS_URL, {"customer_id": str(uuid.uuid4())})
        blank = self.client.get(PAYMENTS_URL, {"customer_id": "", "search": ""})

        self.assertEqual(mine.data["count"], 1)
        self.assertEqual(other.data["count"], 0)
        self.assertEqual(blank.status_code, status.HTTP_200_OK)
        self.assertEqual(blank.data["count"], 1)

    def test_malformed_filters_are_400(self):
        self.client.post(PAYMENTS_URL, self._payload(), format="json")

        for params in (
            {"date_from": "notadate"},
            {"date_to": "2026-13-45"},
            {"customer_id": "xyz"},
            {"status": "lost"},
            {"date_from": "2026-02-01", "date_to": "2026-01-01"},
        ):
            with self.subTest(params=params):
                listing = self.client.get(PAYMENTS_URL, params)
                stats = self.client.get(f"{PAYMENTS_URL}stats/", params)

                self.assertEqual(listing.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(stats.status_code, status.HTTP_400_BAD_REQUEST)

    # -----------------------------
    # Order-side reads
    # -----------------------------

    def test_order_allocations_endpoint(self):
        order_id = str(uuid.uuid4())
        line = {"order_id": order_id, "order_type": "invoice", "allocated_amount": "30.00"}
        first = self.client.post(
            PAYMENTS_URL, self._payload(allocations=[line]), format="json"
        ).data
        second = self.client.post(
            PAYMENTS_URL,
            self._payload(allocations=[dict(line, allocated_amount="25.00")]),
            format="json",
        ).data

        res = self.client.get(f"{PAYMENTS_URL}order-allocations/", {"order_id": order_id})
        wrong_type = self.client.get(
            f"{PAYMENTS_URL}order-allocations/",
            {"order_id": order_id, "order_type": "sale"},
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(res.data["total_allocated"]), Decimal("55.00"))
        self.assertEqual(
            [a["payment_number"] for a in res.data["allocations"]],
            [first["payment_number"], second["payment_number"]],
        )
        self.assertEqual(wrong_type.data["allocations"], [])
        self.assertEqual(Decimal(wrong_type.data["total_allocated"]), Decimal("0.00"))

    def test_order_allocations_requires_a_valid_order_id(self):
        missing = self.client.get(f"{PAYMENTS_URL}order-allocations/")
        bad = self.client.get(f"{PAYMENTS_URL}order-allocations/", {"order_id": "xyz"})
        bad_type = self.client.get(
            f"{PAYMENTS_URL}order-allocations/",
            {"order_id": str(uuid.uuid4()), "order_type": "quote"},
        )

        self.assertEqual(missing.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(bad_type.status_code, status.HTTP_400_BAD_REQUEST)

    def test_allocation_stats_endpoint(self):
        self.client.post(PAYMENTS_URL, self._payload(), format="json")

        res = self.client.get(f"{PAYMENTS_URL}allocation-stats/")
        bad = self.client.get(f"{PAYMENTS_URL}allocation-stats/", {"date_to": "never"})

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["total_allocations"], 1)
        self.assertEqual(Decimal(res.data["total_allocated"]), Decimal("60.00"))
        self.assertEqual(res.data["payments_with_allocations"], 1)
        self.assertEqual(res.data["orders_with_payments"], 1)
        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)
