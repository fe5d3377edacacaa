# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..errors import (
    InsufficientStock,
    InvalidChoice,
    InvalidQuantity,
    LedgerInvariantError,
    MissingField,
    MissingReason,
)
from ..models import (
    ChangeType,
    InventoryLedgerEntry,
    LedgerReason,
    Product,
    SALE_REASONS,
)
from bazaar.time_utils import utcnow
from . import product_store
from .concurrency import begin_write, run_with_retry
from .low_stock_service import evaluate_low_stock
"""
Stock Ledger Invariants (authoritative)

Storage model:
- Product.stock is a denormalized counter; InventoryLedgerEntry rows are the
  audit trail. For every product, stock == SUM(quantity_change) over its entries.
- Entries are append-only: created once, never updated or deleted.
- Commit order is the entry id; replaying a product's entries in id order
  reconstructs its stock and every entry's quantity_before equals the previous
  entry's quantity_after.

Write rules:
- stock is written only here, always together with exactly one new entry, in
  the same transaction. Either both commit or neither does.
- All validation (quantity, notes, sufficiency) happens before any write.
- Stock may never go negative.
- Each public mutation serializes on the product (begin_write + row lock +
  optimistic version) and re-checks its precondition inside that critical section.
- After each entry the low-stock rule is evaluated in the same transaction.
"""

SYSTEM_USER = "SYSTEM"


def _new_reference(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def _require_positive(value, field: str = "quantity") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantity(field, value, f"{field} must be an integer")
    if value <= 0:
        raise InvalidQuantity(field, value)
    return value


def _require_text(value, field: str) -> str:
    if value is None or not str(value).strip():
        raise MissingField(field)
    return str(value).strip()


def _sale_reason(reason) -> LedgerReason:
    try:
        parsed = LedgerReason(reason)
    except ValueError:
        parsed = None
    if parsed not in SALE_REASONS:
        raise InvalidChoice("reason", reason, {r.value for r in SALE_REASONS})
    return parsed


def _write_entry(
    product: Product,
    *,
    change_type: ChangeType,
    quantity_change: int,
    reason: LedgerReason,
    reference_id: str,
    user_id: str | None,
    notes: str | None,
) -> InventoryLedgerEntry:
    """
    Apply one stock change to a locked product and append its ledger entry.

    No validation of business preconditions here; callers check them first.
    Does not commit.
    """
    quantity_before = product.stock
    quantity_after = quantity_before + quantity_change
    if quantity_after < 0:
        raise LedgerInvariantError(
            f"{change_type.value} on product {product.id} would make stock negative "
            f"({quantity_before} {quantity_change:+d})"
        )

    product_store.set_product_stock(product, quantity_after)

    entry = InventoryLedgerEntry(
        product_id=product.id,
        product_name=product.name,
        change_type=change_type.value,
        quantity_before=quantity_before,
        quantity_change=quantity_change,
        quantity_after=quantity_after,
        reason=reason.value,
        reference_id=reference_id,
        user_id=user_id or SYSTEM_USER,
        notes=notes,
        occurred_at=utcnow(),
    )

    if entry.quantity_after != entry.quantity_before + entry.quantity_change:
        raise LedgerInvariantError(f"ledger entry for product {product.id} does not chain")
    if entry.quantity_after != product.stock:
        raise LedgerInvariantError(
            f"ledger entry for product {product.id} disagrees with live stock "
            f"({entry.quantity_after} != {product.stock})"
        )

    db.session.add(entry)
    db.session.flush()

    evaluate_low_stock(product)
    return entry


def _log_entry(entry: InventoryLedgerEntry) -> None:
    current_app.logger.info(
        "Stock %s: product=%s %d -> %d (%+d) reason=%s ref=%s ledger_id=%s",
        entry.change_type.lower(),
        entry.product_id,
        entry.quantity_before,
        entry.quantity_after,
        entry.quantity_change,
        entry.reason,
        entry.reference_id,
        entry.id,
    )


def _deduct_inner(
    product: Product,
    *,
    quantity: int,
    reason: LedgerReason,
    reference_id: str,
    user_id: str | None = None,
    notes: str | None = None,
) -> InventoryLedgerEntry:
    """Core DEDUCTION logic without locking, retry or commit.

    Called by both the public deduct_stock() and checkout_service.
    """
    if product.stock < quantity:
        raise InsufficientStock(
            product_id=product.id,
            product_name=product.name,
            available=product.stock,
            requested=quantity,
        )

    readable = reason.value.replace("_", " ").lower()
    return _write_entry(
        product,
        change_type=ChangeType.DEDUCTION,
        quantity_change=-quantity,
        reason=reason,
        reference_id=reference_id,
        user_id=user_id,
        notes=notes or f"Stock deducted for {readable}",
    )


def _add_inner(
    product: Product,
    *,
    quantity: int,
    reference_id: str,
    user_id: str | None = None,
    notes: str | None = None,
) -> InventoryLedgerEntry:
    """Core ADDITION logic without locking, retry or commit.

    Called by both the public add_stock() and catalog_service (opening stock).
    """
    return _write_entry(
        product,
        change_type=ChangeType.ADDITION,
        quantity_change=quantity,
        reason=LedgerReason.STOCK_REPLENISHMENT,
        reference_id=reference_id,
        user_id=user_id,
        notes=notes,
    )


def deduct_stock(
    product_id: int,
    quantity: int,
    reason,
    reference_id: str,
    *,
    notes: str | None = None,
    user_id: str | None = None,
) -> InventoryLedgerEntry:
    """
    Remove sold units from stock (online orders and offline/POS sales).

    Raises:
        InvalidQuantity: quantity is not a positive integer
        InvalidChoice: reason is not ONLINE_SALE or OFFLINE_SALE
        MissingField: reference_id is empty
        NotFound: product missing or deactivated
        InsufficientStock: stock < quantity (nothing written)
    """
    quantity = _require_positive(quantity)
    sale_reason = _sale_reason(reason)
    reference_id = _require_text(reference_id, "reference_id")

    def _op():
        begin_write()
        product = product_store.get_product(product_id, lock=True)
        entry = _deduct_inner(
            product,
            quantity=quantity,
            reason=sale_reason,
            reference_id=reference_id,
            user_id=user_id,
            notes=notes,
        )
        db.session.commit()
        return entry

    entry = run_with_retry(_op)
    _log_entry(entry)
    return entry


def add_stock(
    product_id: int,
    quantity: int,
    reason: str | None = None,
    *,
    notes: str | None = None,
    user_id: str | None = None,
    reference_id: str | None = None,
) -> InventoryLedgerEntry:
    """
    Replenish stock. The free-text reason is kept as the note when no notes are given.
    """
    quantity = _require_positive(quantity)
    reference_id = (reference_id or "").strip() or _new_reference("REPL")
    note = notes or reason or None

    def _op():
        begin_write()
        product = product_store.get_product(product_id, lock=True)
        entry = _add_inner(
            product,
            quantity=quantity,
            reference_id=reference_id,
            user_id=user_id,
            notes=note,
        )
        db.session.commit()
        return entry

    entry = run_with_retry(_op)
    _log_entry(entry)
    return entry


def adjust_stock(
    product_id: int,
    new_quantity: int,
    reason: str,
    notes: str,
    *,
    user_id: str | None = None,
) -> InventoryLedgerEntry:
    """
    Set stock to a counted value. Manual corrections must always be explained:
    empty notes fail with MissingReason and nothing is written.

    The entry's quantity_change is the signed difference to the previous stock;
    its note combines reason and notes as "<reason>: <notes>".
    """
    if isinstance(new_quantity, bool) or not isinstance(new_quantity, int):
        raise InvalidQuantity("new_quantity", new_quantity, "new_quantity must be an integer")
    if new_quantity < 0:
        raise InvalidQuantity("new_quantity", new_quantity, "Stock quantity cannot be negative")
    if notes is None or not str(notes).strip():
        raise MissingReason("notes", "Adjustment notes are required")

    reason_text = (reason or "").strip()
    combined = f"{reason_text}: {notes.strip()}" if reason_text else notes.strip()
    reference_id = _new_reference("ADJ")

    def _op():
        begin_write()
        product = product_store.get_product(product_id, lock=True)
        entry = _write_entry(
            product,
            change_type=ChangeType.ADJUSTMENT,
            quantity_change=new_quantity - product.stock,
            reason=LedgerReason.MANUAL_ADJUSTMENT,
            reference_id=reference_id,
            user_id=user_id,
            notes=combined,
        )
        db.session.commit()
        return entry

    entry = run_with_retry(_op)
    _log_entry(entry)
    return entry


def reserve_stock(
    product_id: int,
    quantity: int,
    order_id: str,
    *,
    user_id: str | None = None,
) -> InventoryLedgerEntry:
    """Hold stock for an order awaiting payment confirmation."""
    quantity = _require_positive(quantity)
    order_id = _require_text(order_id, "order_id")

    def _op():
        begin_write()
        product = product_store.get_product(product_id, lock=True)
        if product.stock < quantity:
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                available=product.stock,
                requested=quantity,
            )
        entry = _write_entry(
            product,
            change_type=ChangeType.RESERVATION,
            quantity_change=-quantity,
            reason=LedgerReason.RESERVATION,
            reference_id=order_id,
            user_id=user_id,
            notes=f"Stock reserved for order {order_id}",
        )
        db.session.commit()
        return entry

    entry = run_with_retry(_op)
    _log_entry(entry)
    return entry


def release_stock(
    product_id: int,
    quantity: int,
    order_id: str,
    *,
    user_id: str | None = None,
) -> InventoryLedgerEntry:
    """Give reserved stock back when an order is cancelled."""
    quantity = _require_positive(quantity)
    order_id = _require_text(order_id, "order_id")

    def _op():
        begin_write()
        product = product_store.get_product(product_id, lock=True)
        entry = _write_entry(
            product,
            change_type=ChangeType.RELEASE,
            quantity_change=quantity,
            reason=LedgerReason.ORDER_CANCELLATION,
            reference_id=order_id,
            user_id=user_id,
            notes=f"Stock released from cancelled order {order_id}",
        )
        db.session.commit()
        return entry

    entry = run_with_retry(_op)
    _log_entry(entry)
    return entry


def _clamp_limit(limit: int | None) -> int:
    if limit is None:
        limit = current_app.config.get("LEDGER_RECENT_LIMIT", 50)
    max_limit = current_app.config.get("LEDGER_MAX_LIMIT", 500)
    return max(1, min(int(limit), max_limit))


def get_ledger_by_product(product_id: int, *, limit: int | None = None) -> list[InventoryLedgerEntry]:
    """
    Audit trail for one product, newest first.

    Deactivated products keep a readable ledger.
    """
    product_store.get_product(product_id, require_active=False)

    q = (
        db.session.query(InventoryLedgerEntry)
        .filter_by(product_id=product_id)
        .order_by(InventoryLedgerEntry.id.desc())
    )
    if limit is not None:
        q = q.limit(_clamp_limit(limit))
    return q.all()


def get_recent_ledger_entries(limit: int | None = None, *, seller_id: str | None = None) -> list[InventoryLedgerEntry]:
    q = db.session.query(InventoryLedgerEntry)
    if seller_id is not None:
        q = q.join(Product, Product.id == InventoryLedgerEntry.product_id).filter(
            Product.seller_id == seller_id
        )
    return q.order_by(InventoryLedgerEntry.id.desc()).limit(_clamp_limit(limit)).all()


def reconcile_stock(product_id: int) -> dict:
    """
    Replay a product's ledger in commit order and compare with live stock.

    Also verifies that entries chain (each quantity_before equals the previous
    quantity_after, starting from 0).
    """
    product = product_store.get_product(product_id, require_active=False)

    entries = (
        db.session.query(InventoryLedgerEntry)
        .filter_by(product_id=product_id)
        .order_by(InventoryLedgerEntry.id.asc())
        .all()
    )

    running = 0
    broken_links = []
    for entry in entries:
        if entry.quantity_before != running:
            broken_links.append(entry.id)
        running += entry.quantity_change

    return {
        "product_id": product.id,
        "live_stock": product.stock,
        "ledger_stock": running,
        "entry_count": len(entries),
        "broken_links": broken_links,
        "consistent": running == product.stock and not broken_links,
    }


def reconcile_all(*, seller_id: str | None = None) -> list[dict]:
    q = db.session.query(Product.id)
    if seller_id is not None:
        q = q.filter(Product.seller_id == seller_id)
    return [reconcile_stock(product_id) for (product_id,) in q.order_by(Product.id).all()]
