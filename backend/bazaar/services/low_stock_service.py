# Overview: Service-layer operations for low-stock alerts; encapsulates business logic and database work.

"""
Low-stock monitor.

Rule, evaluated for the affected product after every ledger mutation and
inside the same transaction:

    0 < stock < threshold  AND  no unacknowledged alert for the product
        -> create one alert
    otherwise
        -> no-op

Out-of-stock (stock == 0) does not raise a low-stock alert. Restocking above
the threshold does not clear an open alert; only acknowledge_alert() does.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import NotFound
from ..models import LowStockAlert, Product
from bazaar.time_utils import utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry


def get_open_alert(product_id: int) -> LowStockAlert | None:
    return (
        db.session.query(LowStockAlert)
        .filter_by(product_id=product_id, acknowledged=False)
        .order_by(LowStockAlert.id.desc())
        .first()
    )


def evaluate_low_stock(product: Product) -> LowStockAlert | None:
    """
    Apply the low-stock rule to a product whose stock was just changed.

    Caller must hold the product lock and commit. Returns the new alert, or None.
    """
    threshold = product.low_stock_threshold
    if not (0 < product.stock < threshold):
        return None

    if get_open_alert(product.id) is not None:
        return None

    alert = LowStockAlert(
        product_id=product.id,
        product_name=product.name,
        current_stock=product.stock,
        threshold=threshold,
        created_at=utcnow(),
        acknowledged=False,
    )
    db.session.add(alert)
    db.session.flush()

    current_app.logger.warning(
        "LOW STOCK ALERT: %s - only %d units remaining (threshold %d)",
        product.name, product.stock, threshold,
    )
    return alert


def acknowledge_alert(alert_id: int, *, user_id: str | None = None) -> LowStockAlert:
    """
    Mark an alert as seen. Does not touch stock or the ledger.

    Acknowledging an already-acknowledged alert returns it unchanged.
    """
    def _op():
        begin_write()
        alert = lock_for_update(db.session.query(LowStockAlert).filter_by(id=alert_id)).first()
        if alert is None:
            raise NotFound("LowStockAlert", alert_id)

        if not alert.acknowledged:
            alert.acknowledged = True
            alert.acknowledged_at = utcnow()
            alert.acknowledged_by = user_id

        db.session.commit()
        return alert

    return run_with_retry(_op)


def list_alerts(
    *,
    seller_id: str | None = None,
    product_id: int | None = None,
    include_acknowledged: bool = False,
    limit: int = 200,
) -> list[LowStockAlert]:
    q = db.session.query(LowStockAlert)
    if not include_acknowledged:
        q = q.filter(LowStockAlert.acknowledged.is_(False))
    if product_id is not None:
        q = q.filter(LowStockAlert.product_id == product_id)
    if seller_id is not None:
        q = q.join(Product, Product.id == LowStockAlert.product_id).filter(Product.seller_id == seller_id)

    return q.order_by(LowStockAlert.created_at.desc(), LowStockAlert.id.desc()).limit(limit).all()
