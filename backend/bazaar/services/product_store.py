# Overview: Access to the product record owned by the catalog; the only place product fields are written.

"""
Product record adapter.

The product row belongs to the catalog. The inventory and QA core reads it and
writes exactly two things back:

- stock            -> set_product_stock()    (called only by ledger_service)
- approval_status  -> set_product_approval() (called only by approval_sync)

Writes are flushed immediately so that a store-side rejection (constraint
violation, dropped connection) surfaces inside the caller's transaction as an
ExternalWriteFailure, before the caller commits anything.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import ExternalWriteFailure, NotFound
from ..models import Product, ApprovalStatus
from .concurrency import lock_for_update


def get_product(product_id: int, *, lock: bool = False, require_active: bool = True) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFound("Product", product_id)
    if require_active and not product.is_active:
        raise NotFound("Product", product_id)
    return product


def lock_products(product_ids) -> dict[int, Product]:
    """
    Lock several products at once, in id order to avoid lock-order deadlocks.

    Raises NotFound for the first missing or inactive id.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    rows = lock_for_update(
        db.session.query(Product).filter(Product.id.in_(ids)).order_by(Product.id)
    ).all()
    by_id = {p.id: p for p in rows}
    for product_id in ids:
        product = by_id.get(product_id)
        if product is None or not product.is_active:
            raise NotFound("Product", product_id)
    return by_id


def _flush(product_id: int, field: str) -> None:
    # A failed flush rolls back and expires the product, so only the id
    # captured before the write may be used here.
    try:
        db.session.flush()
    except (StaleDataError, OperationalError):
        # Concurrency conflicts are retried by run_with_retry
        raise
    except SQLAlchemyError as exc:
        current_app.logger.warning(
            "Product store rejected %s write for product %s: %s", field, product_id, exc
        )
        raise ExternalWriteFailure("Product", product_id, field, cause=exc) from exc


def set_product_stock(product: Product, value: int) -> None:
    product_id = product.id
    product.stock = value
    _flush(product_id, "stock")


def set_product_approval(
    product: Product,
    status: ApprovalStatus,
    *,
    rejection_reason: str | None = None,
) -> None:
    product_id = product.id
    product.approval_status = ApprovalStatus(status).value
    product.rejection_reason = rejection_reason
    _flush(product_id, "approval_status")
