# Overview: Flask API routes for stock ledger operations and low-stock alerts; parses input and returns JSON responses.

"""
Inventory ledger routes.

Every mutation appends exactly one ledger entry per product touched and
returns it together with the product's new stock. The acting user comes from
the X-User-Id header (see decorators.with_actor).

Status codes:
- 400: invalid payload, missing notes/reason, non-positive quantity
- 404: product (or alert) missing or deactivated
- 409: insufficient stock
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError, http_status
from ..services import checkout_service, ledger_service, low_stock_service, product_store
from ..validation import (
    PayloadPolicy,
    validate_payload,
    validate_checkout_items,
    parse_limit,
    ValidationError,
    INT,
    STR,
    LIST,
)
from ..decorators import with_actor


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

DEDUCT_POLICY = PayloadPolicy(
    fields={"quantity": INT, "reason": STR, "reference_id": STR, "notes": STR},
    required={"quantity", "reason", "reference_id"},
    max_lengths={"reference_id": 64},
)

ADD_POLICY = PayloadPolicy(
    fields={"quantity": INT, "reason": STR, "notes": STR, "reference_id": STR},
    required={"quantity"},
    max_lengths={"reference_id": 64},
)

ADJUST_POLICY = PayloadPolicy(
    fields={"new_quantity": INT, "reason": STR, "notes": STR},
    required={"new_quantity"},
)

RESERVATION_POLICY = PayloadPolicy(
    fields={"quantity": INT, "order_id": STR},
    required={"quantity", "order_id"},
    max_lengths={"order_id": 64},
)

CHECKOUT_POLICY = PayloadPolicy(
    fields={"items": LIST, "reference_id": STR, "reason": STR},
    required={"items", "reference_id"},
    max_lengths={"reference_id": 64},
)


def _entry_response(entry, status: int = 201):
    product = product_store.get_product(entry.product_id, require_active=False)
    return jsonify({"entry": entry.to_dict(), "stock": product.stock}), status


def _error_response(e: Exception, action: str):
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, DomainError):
        return jsonify(e.to_dict()), http_status(e)
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:product_id>/deduct")
@with_actor
def deduct_route(product_id: int):
    """
    Remove sold units (online or offline sale).

    Request body:
    {"quantity": 5, "reason": "OFFLINE_SALE", "reference_id": "ORD-1", "notes": "..."}
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=DEDUCT_POLICY)
        entry = ledger_service.deduct_stock(
            product_id,
            patch["quantity"],
            patch["reason"],
            patch["reference_id"],
            notes=patch.get("notes"),
            user_id=g.actor_id,
        )
        return _entry_response(entry)
    except Exception as e:
        return _error_response(e, "deduct stock")


@inventory_bp.post("/<int:product_id>/add")
@with_actor
def add_route(product_id: int):
    """Replenish stock. {"quantity": 10, "reason": "Supplier delivery"}"""
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=ADD_POLICY)
        entry = ledger_service.add_stock(
            product_id,
            patch["quantity"],
            patch.get("reason"),
            notes=patch.get("notes"),
            user_id=g.actor_id,
            reference_id=patch.get("reference_id"),
        )
        return _entry_response(entry)
    except Exception as e:
        return _error_response(e, "add stock")


@inventory_bp.post("/<int:product_id>/adjust")
@with_actor
def adjust_route(product_id: int):
    """
    Set stock to a counted value.

    Request body:
    {"new_quantity": 8, "reason": "Cycle count", "notes": "Two units damaged"}

    Empty notes are refused (400, code missing_reason).
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=ADJUST_POLICY)
        entry = ledger_service.adjust_stock(
            product_id,
            patch["new_quantity"],
            patch.get("reason"),
            patch.get("notes"),
            user_id=g.actor_id,
        )
        return _entry_response(entry)
    except Exception as e:
        return _error_response(e, "adjust stock")


@inventory_bp.post("/<int:product_id>/reserve")
@with_actor
def reserve_route(product_id: int):
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=RESERVATION_POLICY)
        entry = ledger_service.reserve_stock(
            product_id, patch["quantity"], patch["order_id"], user_id=g.actor_id
        )
        return _entry_response(entry)
    except Exception as e:
        return _error_response(e, "reserve stock")


@inventory_bp.post("/<int:product_id>/release")
@with_actor
def release_route(product_id: int):
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=RESERVATION_POLICY)
        entry = ledger_service.release_stock(
            product_id, patch["quantity"], patch["order_id"], user_id=g.actor_id
        )
        return _entry_response(entry)
    except Exception as e:
        return _error_response(e, "release stock")


@inventory_bp.post("/checkout")
@with_actor
def checkout_route():
    """
    Deduct stock for a whole order, all or nothing.

    Request body:
    {
        "reference_id": "ORD-1001",
        "reason": "ONLINE_SALE",             (optional)
        "items": [{"product_id": 1, "quantity": 2}, ...]
    }

    Returns:
        201: one ledger entry per line item
        409: some product cannot cover its quantity; details.items lists
             every short product, nothing was deducted
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=CHECKOUT_POLICY)
        items = validate_checkout_items(patch["items"])
        entries = checkout_service.checkout(
            items,
            patch["reference_id"],
            reason=patch.get("reason") or "ONLINE_SALE",
            user_id=g.actor_id,
        )
        return jsonify({
            "reference_id": patch["reference_id"],
            "entries": [e.to_dict() for e in entries],
        }), 201
    except Exception as e:
        return _error_response(e, "check out order")


@inventory_bp.get("/<int:product_id>/ledger")
def product_ledger_route(product_id: int):
    """Audit trail for one product, newest first. Optional ?limit=."""
    try:
        limit = parse_limit(request.args.get("limit"))
        entries = ledger_service.get_ledger_by_product(product_id, limit=limit)
        return jsonify({"product_id": product_id, "entries": [e.to_dict() for e in entries]}), 200
    except Exception as e:
        return _error_response(e, "load product ledger")


@inventory_bp.get("/ledger/recent")
def recent_ledger_route():
    try:
        limit = parse_limit(request.args.get("limit"))
        entries = ledger_service.get_recent_ledger_entries(
            limit, seller_id=request.args.get("seller_id")
        )
        return jsonify({"entries": [e.to_dict() for e in entries]}), 200
    except Exception as e:
        return _error_response(e, "load recent ledger entries")


@inventory_bp.get("/<int:product_id>/reconcile")
def reconcile_route(product_id: int):
    """Replay the ledger and compare with live stock."""
    try:
        return jsonify(ledger_service.reconcile_stock(product_id)), 200
    except Exception as e:
        return _error_response(e, "reconcile stock")


@inventory_bp.get("/alerts")
def list_alerts_route():
    include_acknowledged = request.args.get("include_acknowledged", "false").lower() == "true"
    try:
        alerts = low_stock_service.list_alerts(
            seller_id=request.args.get("seller_id"),
            product_id=request.args.get("product_id", type=int),
            include_acknowledged=include_acknowledged,
        )
        return jsonify({"alerts": [a.to_dict() for a in alerts]}), 200
    except Exception as e:
        return _error_response(e, "list low-stock alerts")


@inventory_bp.post("/alerts/<int:alert_id>/acknowledge")
@with_actor
def acknowledge_alert_route(alert_id: int):
    try:
        alert = low_stock_service.acknowledge_alert(alert_id, user_id=g.actor_id)
        return jsonify({"alert": alert.to_dict()}), 200
    except Exception as e:
        return _error_response(e, "acknowledge alert")
