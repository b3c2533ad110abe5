# returns/tests/test_returns_api.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from customers.models import Customer
from payments.models import Payment
from returns.models import Return
from sales.models import Sale, SaleItem

User = get_user_model()

RETURNS_URL = "/api/returns/"


class ReturnApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="supervisor", password="pass")
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

        self.customer = Customer.objects.create(code="C-RAPI", name="Api Buyer")
        self.sale = Sale.objects.create(
            customer=self.customer,
            total_amount=Decimal("50.00"),
            status=Sale.STATUS_COMPLETED,
        )
        self.item = SaleItem.objects.create(
            sale=self.sale,
            product_id="P-1",
            product_name="Widget",
            quantity=10,
            unit_price=Decimal("5.00"),
        )

    def _create(self, quantity=4):
        return self.client.post(
            RETURNS_URL,
            {
                "sale_id": str(self.sale.id),
                "reason": "defective",
                "items": [{"sale_item_id": str(self.item.id), "quantity_returned": quantity}],
            },
            format="json",
        )

    def test_requires_authentication(self):
        res = APIClient().get(RETURNS_URL)
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_return(self):
        res = self._create()

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["status"], "pending")
        self.assertEqual(res.data["total_amount"], "20.00")
        self.assertEqual(res.data["sale_number"], self.sale.sale_number)
        self.assertEqual(len(res.data["items"]), 1)
        self.assertEqual(Return.objects.get().created_by, self.user)

    def test_over_return_is_rejected_with_error_envelope(self):
        res = self._create(quantity=11)

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "QUANTITY_EXCEEDS_AVAILABLE")
        self.assertFalse(Return.objects.exists())

    def test_missing_items_stays_drf_native(self):
        res = self.client.post(
            RETURNS_URL, {"sale_id": str(self.sale.id), "reason": "other"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("items", res.data)

    def test_unknown_sale_is_404(self):
        res = self.client.post(
            RETURNS_URL,
            {
                "sale_id": str(uuid.uuid4()),
                "reason": "other",
                "items": [{"sale_item_id": str(self.item.id), "quantity_returned": 1}],
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "SALE_NOT_FOUND")

    def test_process_approves_and_links_refund(self):
        created = self._create().data

        res = self.client.post(
            f"{RETURNS_URL}{created['id']}/process/",
            {"status": "approved", "refund_amount": "20.00"},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], "completed")
        self.assertEqual(res.data["refund_status"], "processed")
        refund = Payment.objects.get()
        self.assertEqual(res.data["refund_payment_numbers"], [refund.payment_number])
        self.assertEqual(refund.created_by, self.user)

    def test_processing_twice_is_409(self):
        created = self._create().data
        url = f"{RETURNS_URL}{created['id']}/process/"
        self.client.post(url, {"status": "rejected"}, format="json")

        res = self.client.post(url, {"status": "approved"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "RETURN_NOT_PENDING")

    def test_locked_return_cannot_be_deleted(self):
        created = self._create().data
        self.client.post(
            f"{RETURNS_URL}{created['id']}/process/", {"status": "approved"}, format="json"
        )

        res = self.client.delete(f"{RETURNS_URL}{created['id']}/")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "RETURN_LOCKED")

    def test_patch_and_delete_pending_return(self):
        created = self._create().data

        patched = self.client.patch(
            f"{RETURNS_URL}{created['id']}/", {"notes": "Checked at counter"}, format="json"
        )
        deleted = self.client.delete(f"{RETURNS_URL}{created['id']}/")

        self.assertEqual(patched.status_code, status.HTTP_200_OK)
        self.assertEqual(patched.data["notes"], "Checked at counter")
        self.assertEqual(deleted.status_code, status.HTTP_204_NO_CONTENT)

    def test_list_and_stats(self):
        self._create()

        listing = self.client.get(RETURNS_URL, {"status": "pending"})
        stats = self.client.get(f"{RETURNS_URL}stats/")

        self.assertEqual(listing.data["count"], 1)
        self.assertEqual(stats.data["total_returns"], 1)
        self.assertEqual(stats.data["pending_returns"], 1)

    def test_list_filters_by_customer_and_date(self):
        created = self._create().data

        mine = self.client.get(
            RETURNS_URL,
            {"customer_id": str(self.customer.id), "date_from": created["return_date"]},
        )
        other = self.client.get(RETURNS_URL, {"customer_id": str(uuid.uuid4())})
        blank = self.client.get(RETURNS_URL, {"customer_id": "", "search": ""})

        self.assertEqual(mine.data["count"], 1)
        self.assertEqual(other.data["count"], 0)
        self.assertEqual(blank.status_code, status.HTTP_200_OK)
        self.assertEqual(blank.data["count"], 1)

    def test_malformed_filters_are_400(self):
        self._create()

        for params in (
            {"date_from": "notadate"},
            {"customer_id": "xyz"},
            {"sale_id": "123"},
            {"status": "lost"},
            {"date_from": "2026-02-01", "date_to": "2026-01-01"},
        ):
            with self.subTest(params=params):
                listing = self.client.get(RETURNS_URL, params)
                stats = self.client.get(f"{RETURNS_URL}stats/", params)

                self.assertEqual(listing.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(stats.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sale_returns_and_state_endpoints(self):
        first = self._create(quantity=4).data
        second = self._create(quantity=3).data

        sale_returns = self.client.get(f"{RETURNS_URL}sales/{self.sale.id}/")
        before = self.client.get(
            f"{RETURNS_URL}sales/{self.sale.id}/state/", {"return_id": second["id"]}
        )
        after = self.client.get(
            f"{RETURNS_URL}sales/{self.sale.id}/state-after/{second['id']}/"
        )

        self.assertEqual([r["id"] for r in sale_returns.data], [first["id"], second["id"]])
        self.assertEqual(before.status_code, status.HTTP_200_OK)
        self.assertEqual(before.data["items"][0]["quantity_remaining"], 6)
        self.assertEqual(after.data["items"][0]["quantity_remaining"], 3)

    def test_state_for_return_of_another_sale_is_404(self):
        created = self._create().data
        other_sale = Sale.objects.create(customer=self.customer, status=Sale.STATUS_COMPLETED)

        res = self.client.get(f"{RETURNS_URL}sales/{other_sale.id}/state-after/{created['id']}/")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["error"]["code"], "RETURN_NOT_FOUND")
