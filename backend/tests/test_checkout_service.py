# Overview: Pytest coverage for all-or-nothing order checkout.

import pytest

from bazaar.errors import InsufficientStock, InvalidChoice, InvalidQuantity, NotFound
from bazaar.models import InventoryLedgerEntry, Product
from bazaar.services import catalog_service, checkout_service
from bazaar.services.checkout_service import CheckoutItem


def _order_entries(db_session, reference_id):
    return (
        db_session.query(InventoryLedgerEntry)
        .filter_by(reference_id=reference_id)
        .order_by(InventoryLedgerEntry.id)
        .all()
    )


class TestCheckout:
    def test_one_entry_per_line_same_reference(self, db_session, make_product):
        a = make_product(10)
        b = make_product(5)

        entries = checkout_service.checkout(
            [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 5}],
            "ORD-1001",
        )

        assert [e.product_id for e in entries] == [a.id, b.id]
        assert all(e.reference_id == "ORD-1001" for e in entries)
        assert all(e.change_type == "DEDUCTION" for e in entries)
        assert all(e.reason == "ONLINE_SALE" for e in entries)
        assert db_session.get(Product, a.id).stock == 8
        assert db_session.get(Product, b.id).stock == 0
        assert len(_order_entries(db_session, "ORD-1001")) == 2

    def test_short_item_fails_whole_order(self, db_session, make_product):
        """A has plenty, B only 5: nothing is deducted from either."""
        a = make_product(10)
        b = make_product(5)

        with pytest.raises(InsufficientStock) as exc:
            checkout_service.checkout(
                [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 9999}],
                "ORD-1002",
            )

        assert exc.value.product_id == b.id
        assert exc.value.details["items"] == [{
            "product_id": b.id,
            "product_name": b.name,
            "requested": 9999,
            "available": 5,
        }]
        assert db_session.get(Product, a.id).stock == 10
        assert db_session.get(Product, b.id).stock == 5
        assert _order_entries(db_session, "ORD-1002") == []

    def test_every_short_item_reported(self, db_session, make_product):
        a = make_product(1)
        b = make_product(1)

        with pytest.raises(InsufficientStock) as exc:
            checkout_service.checkout(
                [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 3}],
                "ORD-1003",
            )

        assert [i["product_id"] for i in exc.value.details["items"]] == [a.id, b.id]

    def test_repeated_product_lines_are_summed(self, db_session, make_product):
        a = make_product(10)

        with pytest.raises(InsufficientStock) as exc:
            checkout_service.checkout(
                [{"product_id": a.id, "quantity": 6}, {"product_id": a.id, "quantity": 6}],
                "ORD-1004",
            )

        assert exc.value.requested == 12
        assert db_session.get(Product, a.id).stock == 10

    def test_repeated_product_lines_each_get_an_entry(self, db_session, make_product):
        a = make_product(10)

        entries = checkout_service.checkout(
            [CheckoutItem(a.id, 3), CheckoutItem(a.id, 4)],
            "ORD-1005",
            reason="OFFLINE_SALE",
        )

        assert [(e.quantity_before, e.quantity_after) for e in entries] == [(10, 7), (7, 3)]
        assert entries[0].notes == "Order ORD-1005 line 1"
        assert entries[1].notes == "Order ORD-1005 line 2"

    def test_unknown_product_fails_whole_order(self, db_session, make_product):
        a = make_product(10)

        with pytest.raises(NotFound):
            checkout_service.checkout(
                [{"product_id": a.id, "quantity": 1}, {"product_id": 99999, "quantity": 1}],
                "ORD-1006",
            )

        assert db_session.get(Product, a.id).stock == 10

    def test_deactivated_product_fails_whole_order(self, db_session, make_product):
        a = make_product(10)
        b = make_product(10)
        catalog_service.deactivate_product(b.id)

        with pytest.raises(NotFound):
            checkout_service.checkout(
                [{"product_id": a.id, "quantity": 1}, {"product_id": b.id, "quantity": 1}],
                "ORD-1007",
            )

        assert _order_entries(db_session, "ORD-1007") == []

    def test_empty_order_rejected(self, db_session):
        with pytest.raises(InvalidQuantity):
            checkout_service.checkout([], "ORD-1008")

    def test_zero_quantity_line_rejected(self, db_session, make_product):
        a = make_product(10)
        with pytest.raises(InvalidQuantity):
            checkout_service.checkout([{"product_id": a.id, "quantity": 0}], "ORD-1009")

    def test_non_sale_reason_rejected(self, db_session, make_product):
        a = make_product(10)
        with pytest.raises(InvalidChoice):
            checkout_service.checkout(
                [{"product_id": a.id, "quantity": 1}], "ORD-1010", reason="RESERVATION"
            )

    def test_checkout_raises_low_stock_alert(self, db_session, make_product):
        from bazaar.services import low_stock_service

        a = make_product(12, threshold=10)
        checkout_service.checkout([{"product_id": a.id, "quantity": 4}], "ORD-1011")

        alert = low_stock_service.get_open_alert(a.id)
        assert alert is not None
        assert alert.current_stock == 8
