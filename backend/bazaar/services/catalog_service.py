# Overview: Service-layer operations for seller product records; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InvalidQuantity, MissingField
from ..models import ApprovalStatus, Product
from . import product_store
from .concurrency import begin_write, run_with_retry
from .ledger_service import _add_inner, _log_entry


def _non_negative(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantity(field, value, f"{field} must be an integer")
    if value < 0:
        raise InvalidQuantity(field, value, f"{field} cannot be negative")
    return value


def register_product(
    name: str,
    seller_id: str,
    *,
    initial_stock: int = 0,
    low_stock_threshold: int | None = None,
    user_id: str | None = None,
) -> Product:
    """
    Create a seller product, hidden from buyers until QA approves it.

    Opening stock is not written directly: the product starts at 0 and a
    STOCK_REPLENISHMENT entry brings it to initial_stock, so the ledger sums
    to the live stock from the first entry on.
    """
    if name is None or not str(name).strip():
        raise MissingField("name")
    if seller_id is None or not str(seller_id).strip():
        raise MissingField("seller_id")
    initial_stock = _non_negative(initial_stock, "initial_stock")
    if low_stock_threshold is None:
        low_stock_threshold = current_app.config.get("DEFAULT_LOW_STOCK_THRESHOLD", 10)
    low_stock_threshold = _non_negative(low_stock_threshold, "low_stock_threshold")

    def _op():
        begin_write()
        product = Product(
            name=str(name).strip(),
            seller_id=str(seller_id).strip(),
            stock=0,
            low_stock_threshold=low_stock_threshold,
            approval_status=ApprovalStatus.PENDING.value,
            is_active=True,
        )
        db.session.add(product)
        db.session.flush()

        entry = None
        if initial_stock > 0:
            entry = _add_inner(
                product,
                quantity=initial_stock,
                reference_id=str(product.id),
                user_id=user_id,
                notes="Initial stock for new product",
            )

        db.session.commit()
        return product, entry

    product, entry = run_with_retry(_op)
    current_app.logger.info(
        "Product %s registered for seller %s (opening stock %d)",
        product.id, product.seller_id, product.stock,
    )
    if entry is not None:
        _log_entry(entry)
    return product


def get_product(product_id: int) -> Product:
    # Deactivated products stay readable for audit
    return product_store.get_product(product_id, require_active=False)


def deactivate_product(product_id: int) -> Product:
    """
    Logical delete. Ledger and QA history stay; further stock mutations and QA
    submissions for the product fail with NotFound.
    """
    def _op():
        begin_write()
        product = product_store.get_product(product_id, lock=True, require_active=False)
        if product.is_active:
            product.is_active = False
            db.session.flush()
        db.session.commit()
        return product

    product = run_with_retry(_op)
    current_app.logger.info("Product %s deactivated", product.id)
    return product


def list_products(*, seller_id: str | None = None, include_inactive: bool = False) -> list[Product]:
    q = db.session.query(Product)
    if seller_id is not None:
        q = q.filter(Product.seller_id == seller_id)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.id).all()
