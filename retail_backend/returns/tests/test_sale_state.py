# returns/tests/test_sale_state.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.test import TestCase

from customers.models import Customer
from returns.models import Return
from returns.services import return_service
from returns.services.exceptions import ReturnNotFound
from returns.services.sale_state import (
    get_sale_state_after_return,
    get_sale_state_before_return,
)
from sales.models import Sale, SaleItem
from sales.services.sale_store import SaleNotFound


def _line(state, sale_item):
    return next(i for i in state["items"] if i["sale_item_id"] == str(sale_item.id))


class SaleStateTests(TestCase):
    """
    Before/after projections over the return history of one sale.
    """

    def setUp(self):
        self.customer = Customer.objects.create(code="C-ST", name="State Customer")
        self.sale = Sale.objects.create(
            customer=self.customer,
            total_amount=Decimal("70.00"),
            status=Sale.STATUS_COMPLETED,
        )
        self.widget = SaleItem.objects.create(
            sale=self.sale,
            product_id="P-1",
            product_name="Widget",
            quantity=10,
            unit_price=Decimal("5.00"),
        )
        self.gadget = SaleItem.objects.create(
            sale=self.sale,
            product_id="P-2",
            product_name="Gadget",
            quantity=2,
            unit_price=Decimal("10.00"),
        )

        self.first = self._create((self.widget, 4))
        self.second = self._create((self.widget, 3), (self.gadget, 1))

    def _create(self, *lines):
        return return_service.create_return(
            return_data={"sale_id": self.sale.id},
            items=[
                {"sale_item_id": item.id, "quantity_returned": qty} for item, qty in lines
            ],
        )

    def test_before_first_return_is_the_original_sale(self):
        state = get_sale_state_before_return(self.sale.id, self.first.id)

        self.assertEqual(state["returns"], [])
        self.assertEqual(_line(state, self.widget)["quantity_remaining"], 10)
        self.assertEqual(state["totals"]["quantity_returned"], 0)
        self.assertEqual(state["totals"]["original_amount"], Decimal("70.00"))
        self.assertEqual(state["totals"]["remaining_amount"], Decimal("70.00"))

    def test_before_second_return_counts_only_earlier_returns(self):
        state = get_sale_state_before_return(self.sale.id, self.second.id)

        self.assertEqual(
            [r["return_number"] for r in state["returns"]], [self.first.return_number]
        )
        self.assertEqual(_line(state, self.widget)["quantity_returned"], 4)
        self.assertEqual(_line(state, self.gadget)["quantity_returned"], 0)

    def test_after_is_before_plus_target(self):
        before = get_sale_state_before_return(self.sale.id, self.second.id)
        after = get_sale_state_after_return(self.sale.id, self.second.id)

        self.assertEqual(len(after["returns"]), len(before["returns"]) + 1)
        self.assertEqual(after["returns"][-1]["id"], str(self.second.id))
        self.assertEqual(
            _line(after, self.widget)["quantity_returned"],
            _line(before, self.widget)["quantity_returned"] + 3,
        )
        self.assertEqual(_line(after, self.widget)["quantity_remaining"], 3)
        self.assertEqual(_line(after, self.gadget)["remaining_amount"], Decimal("10.00"))
        self.assertEqual(after["totals"]["returned_amount"], Decimal("45.00"))

    def test_without_target_every_return_is_counted(self):
        state = get_sale_state_before_return(self.sale.id)

        self.assertEqual(len(state["returns"]), 2)
        self.assertEqual(state["totals"]["quantity_returned"], 8)
        self.assertEqual(state["totals"]["quantity_remaining"], 4)

    def test_projection_is_idempotent(self):
        first = get_sale_state_after_return(self.sale.id, self.first.id)
        second = get_sale_state_after_return(self.sale.id, self.first.id)

        self.assertEqual(first, second)

    def test_rejected_returns_are_listed_but_not_counted(self):
        return_service.process_return(return_id=self.first.id, status=Return.STATUS_REJECTED)

        state = get_sale_state_after_return(self.sale.id, self.second.id)

        self.assertEqual(len(state["returns"]), 2)
        self.assertEqual(state["returns"][0]["status"], Return.STATUS_REJECTED)
        self.assertEqual(_line(state, self.widget)["quantity_returned"], 3)

    def test_after_a_rejected_return_overlays_its_items(self):
        return_service.process_return(return_id=self.second.id, status=Return.STATUS_REJECTED)

        before = get_sale_state_before_return(self.sale.id, self.second.id)
        after = get_sale_state_after_return(self.sale.id, self.second.id)
        now = get_sale_state_before_return(self.sale.id)

        self.assertEqual(_line(before, self.widget)["quantity_returned"], 4)
        self.assertEqual(_line(after, self.widget)["quantity_returned"], 7)
        self.assertEqual(_line(after, self.gadget)["quantity_returned"], 1)
        self.assertEqual(after["returns"][-1]["status"], Return.STATUS_REJECTED)
        self.assertEqual(now["totals"]["quantity_returned"], 4)

    def test_equal_timestamps_fall_back_to_id(self):
        Return.objects.filter(pk=self.first.pk).update(return_number="RET-202601-9999")
        Return.objects.filter(pk=self.second.pk).update(
            return_number="RET-202601-10000", created_at=self.first.created_at
        )
        earlier, later = sorted([self.first, self.second], key=lambda r: r.id)

        before_later = get_sale_state_before_return(self.sale.id, later.id)
        before_earlier = get_sale_state_before_return(self.sale.id, earlier.id)
        everything = get_sale_state_before_return(self.sale.id)

        self.assertEqual([r["id"] for r in before_later["returns"]], [str(earlier.id)])
        self.assertEqual(before_earlier["returns"], [])
        self.assertEqual(
            [r["id"] for r in everything["returns"]], [str(earlier.id), str(later.id)]
        )

    def test_projection_never_mutates_the_sale(self):
        get_sale_state_after_return(self.sale.id, self.second.id)

        self.widget.refresh_from_db()
        self.sale.refresh_from_db()
        self.assertEqual(self.widget.quantity, 10)
        self.assertEqual(self.sale.total_amount, Decimal("70.00"))

    def test_return_of_another_sale_is_not_found(self):
        other_sale = Sale.objects.create(customer=self.customer, status=Sale.STATUS_COMPLETED)
        SaleItem.objects.create(
            sale=other_sale, product_id="P-9", quantity=1, unit_price=Decimal("1.00")
        )

        with self.assertRaises(ReturnNotFound):
            get_sale_state_after_return(other_sale.id, self.first.id)

    def test_unknown_ids(self):
        with self.assertRaises(SaleNotFound):
            get_sale_state_before_return(uuid.uuid4())
        with self.assertRaises(ReturnNotFound):
            get_sale_state_after_return(self.sale.id, uuid.uuid4())
