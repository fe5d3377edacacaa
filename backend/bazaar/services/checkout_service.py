"""
Order checkout coordinator.

WHY: An order with several line items must either take stock for every line
or for none. Checking each line and deducting as we go would leave earlier
lines deducted when a later one runs short.

HOW:
1. Lock every product in the order (id order, one transaction).
2. Validate the whole order against the locked stock: quantities for the same
   product are summed before comparing.
3. Only then deduct once per line item, in caller order, all tagged with the
   same reference id. One ledger entry per line.
4. Commit once.

Validation and deduction share one critical section, so no other writer can
change stock between the check and the first deduction. A deduction failing
after validation passed is an internal invariant violation, never retried.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..errors import InsufficientStock, InvalidQuantity, LedgerInvariantError, MissingField
from ..models import InventoryLedgerEntry, LedgerReason
from . import product_store
from .concurrency import begin_write, run_with_retry
from .ledger_service import _deduct_inner, _require_positive, _require_text, _sale_reason


@dataclass(frozen=True)
class CheckoutItem:
    product_id: int
    quantity: int


def _coerce_items(items) -> list[CheckoutItem]:
    coerced = []
    for item in items or []:
        if isinstance(item, CheckoutItem):
            product_id, quantity = item.product_id, item.quantity
        else:
            product_id, quantity = item.get("product_id"), item.get("quantity")
        if product_id is None:
            raise MissingField("product_id")
        coerced.append(CheckoutItem(product_id=product_id, quantity=_require_positive(quantity)))
    if not coerced:
        raise InvalidQuantity("items", [], "Checkout requires at least one item")
    return coerced


def _validate_availability(items: list[CheckoutItem], products: dict) -> None:
    totals: dict[int, int] = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity

    insufficient = []
    for product_id, requested in totals.items():
        product = products[product_id]
        if product.stock < requested:
            insufficient.append({
                "product_id": product_id,
                "product_name": product.name,
                "requested": requested,
                "available": product.stock,
            })

    if insufficient:
        first = insufficient[0]
        raise InsufficientStock(
            product_id=first["product_id"],
            product_name=first["product_name"],
            available=first["available"],
            requested=first["requested"],
            items=insufficient,
        )


def checkout(
    items,
    reference_id: str,
    *,
    reason=LedgerReason.ONLINE_SALE,
    user_id: str | None = None,
) -> list[InventoryLedgerEntry]:
    """
    Deduct stock for every line item of an order, all or nothing.

    Args:
        items: sequence of {"product_id", "quantity"} mappings or CheckoutItem
        reference_id: order id shared by every ledger entry
        reason: ONLINE_SALE (default) or OFFLINE_SALE

    Returns:
        Ledger entries, one per line item, in caller order.

    Raises:
        InsufficientStock: any product cannot cover its total; nothing written
        NotFound: any product missing or deactivated; nothing written
    """
    lines = _coerce_items(items)
    reference_id = _require_text(reference_id, "reference_id")
    sale_reason = _sale_reason(reason)

    def _op():
        begin_write()
        products = product_store.lock_products(line.product_id for line in lines)

        _validate_availability(lines, products)

        entries = []
        for position, line in enumerate(lines, start=1):
            try:
                entry = _deduct_inner(
                    products[line.product_id],
                    quantity=line.quantity,
                    reason=sale_reason,
                    reference_id=reference_id,
                    user_id=user_id,
                    notes=f"Order {reference_id} line {position}",
                )
            except InsufficientStock as exc:
                raise LedgerInvariantError(
                    f"checkout {reference_id}: line {position} failed after validation"
                ) from exc
            entries.append(entry)

        db.session.commit()
        return entries

    entries = run_with_retry(_op)
    current_app.logger.info(
        "Checkout %s committed: %d line(s), ledger ids %s",
        reference_id, len(entries), [e.id for e in entries],
    )
    return entries
