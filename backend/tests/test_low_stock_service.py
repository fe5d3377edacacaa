# Overview: Pytest coverage for low-stock alert raising, deduplication and acknowledgement.

import pytest

from bazaar.errors import NotFound
from bazaar.models import LowStockAlert
from bazaar.services import ledger_service, low_stock_service


def _alerts(db_session, product_id, *, open_only=True):
    q = db_session.query(LowStockAlert).filter_by(product_id=product_id)
    if open_only:
        q = q.filter_by(acknowledged=False)
    return q.all()


class TestAlertRule:
    def test_crossing_below_threshold_raises_one_alert(self, db_session, make_product):
        """12 -> 8 with threshold 10: one alert with current_stock 8."""
        product = make_product(12, threshold=10)
        assert _alerts(db_session, product.id) == []

        ledger_service.adjust_stock(product.id, 8, "Cycle count", "Recount")

        alerts = _alerts(db_session, product.id)
        assert len(alerts) == 1
        assert alerts[0].current_stock == 8
        assert alerts[0].threshold == 10
        assert alerts[0].product_name == product.name

    def test_no_second_alert_while_unacknowledged(self, db_session, make_product):
        product = make_product(12, threshold=10)

        ledger_service.adjust_stock(product.id, 8, "Cycle count", "Recount")
        ledger_service.adjust_stock(product.id, 6, "Cycle count", "Recount again")

        alerts = _alerts(db_session, product.id)
        assert len(alerts) == 1
        assert alerts[0].current_stock == 8

    def test_out_of_stock_is_not_low_stock(self, db_session, make_product):
        product = make_product(12, threshold=10)

        ledger_service.deduct_stock(product.id, 12, "ONLINE_SALE", "ORD-1")

        assert _alerts(db_session, product.id) == []

    def test_at_threshold_is_not_low(self, db_session, make_product):
        product = make_product(12, threshold=10)

        ledger_service.deduct_stock(product.id, 2, "ONLINE_SALE", "ORD-1")

        assert _alerts(db_session, product.id) == []

    def test_opening_stock_below_threshold_alerts(self, db_session, make_product):
        product = make_product(3, threshold=10)

        assert len(_alerts(db_session, product.id)) == 1

    def test_restock_does_not_clear_open_alert(self, db_session, make_product):
        product = make_product(5, threshold=10)

        ledger_service.add_stock(product.id, 50, "Restock")

        assert len(_alerts(db_session, product.id)) == 1

    def test_new_alert_after_acknowledgement(self, db_session, make_product):
        product = make_product(5, threshold=10)
        first = _alerts(db_session, product.id)[0]

        low_stock_service.acknowledge_alert(first.id, user_id="manager-1")
        ledger_service.deduct_stock(product.id, 1, "ONLINE_SALE", "ORD-1")

        open_alerts = _alerts(db_session, product.id)
        assert len(open_alerts) == 1
        assert open_alerts[0].id != first.id
        assert open_alerts[0].current_stock == 4


class TestAcknowledge:
    def test_acknowledge_marks_alert(self, db_session, make_product):
        product = make_product(5, threshold=10)
        alert = _alerts(db_session, product.id)[0]

        acked = low_stock_service.acknowledge_alert(alert.id, user_id="manager-1")

        assert acked.acknowledged is True
        assert acked.acknowledged_by == "manager-1"
        assert acked.acknowledged_at is not None
        assert _alerts(db_session, product.id) == []

    def test_acknowledge_does_not_touch_stock(self, db_session, make_product):
        product = make_product(5, threshold=10)
        alert = _alerts(db_session, product.id)[0]
        entries_before = len(ledger_service.get_ledger_by_product(product.id))

        low_stock_service.acknowledge_alert(alert.id)

        assert len(ledger_service.get_ledger_by_product(product.id)) == entries_before
        assert ledger_service.reconcile_stock(product.id)["live_stock"] == 5

    def test_acknowledge_twice_is_idempotent(self, db_session, make_product):
        product = make_product(5, threshold=10)
        alert = _alerts(db_session, product.id)[0]

        first = low_stock_service.acknowledge_alert(alert.id, user_id="manager-1")
        first_at = first.acknowledged_at
        second = low_stock_service.acknowledge_alert(alert.id, user_id="manager-2")

        assert second.acknowledged_by == "manager-1"
        assert second.acknowledged_at == first_at

    def test_unknown_alert(self, db_session):
        with pytest.raises(NotFound):
            low_stock_service.acknowledge_alert(99999)


class TestListAlerts:
    def test_open_alerts_only_by_default(self, db_session, make_product):
        a = make_product(5, threshold=10)
        b = make_product(4, threshold=10)
        low_stock_service.acknowledge_alert(_alerts(db_session, a.id)[0].id)

        listed = low_stock_service.list_alerts()
        assert [alert.product_id for alert in listed] == [b.id]

        listed_all = low_stock_service.list_alerts(include_acknowledged=True)
        assert {alert.product_id for alert in listed_all} == {a.id, b.id}

    def test_filter_by_seller(self, db_session, make_product):
        make_product(5, threshold=10, seller_id="seller-1")
        theirs = make_product(5, threshold=10, seller_id="seller-2")

        listed = low_stock_service.list_alerts(seller_id="seller-2")
        assert [alert.product_id for alert in listed] == [theirs.id]
