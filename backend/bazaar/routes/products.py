# Overview: Flask API routes for seller product records; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError, http_status
from ..services import catalog_service
from ..validation import PayloadPolicy, validate_payload, ValidationError, INT, STR
from ..decorators import with_actor


products_bp = Blueprint("products", __name__, url_prefix="/api/products")

PRODUCT_CREATE_POLICY = PayloadPolicy(
    fields={"name": STR, "seller_id": STR, "initial_stock": INT, "low_stock_threshold": INT},
    required={"name", "seller_id"},
    max_lengths={"name": 255, "seller_id": 64},
)


@products_bp.post("")
@with_actor
def create_product_route():
    """
    Register a seller product.

    Request body:
    {
        "name": "Handwoven Basket",
        "seller_id": "seller-42",
        "initial_stock": 25,           (optional, default 0)
        "low_stock_threshold": 10      (optional, configured default)
    }

    Opening stock is recorded as a ledger entry. The product starts hidden
    (approval_status "pending") until QA verifies it.
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=PRODUCT_CREATE_POLICY)
        product = catalog_service.register_product(
            patch["name"],
            patch["seller_id"],
            initial_stock=patch.get("initial_stock") or 0,
            low_stock_threshold=patch.get("low_stock_threshold"),
            user_id=g.actor_id,
        )
        return jsonify({"product": product.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), http_status(e)
    except Exception:
        current_app.logger.exception("Failed to register product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("")
def list_products_route():
    seller_id = request.args.get("seller_id")
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"

    products = catalog_service.list_products(seller_id=seller_id, include_inactive=include_inactive)
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id)
        return jsonify({"product": product.to_dict()}), 200
    except DomainError as e:
        return jsonify(e.to_dict()), http_status(e)


@products_bp.delete("/<int:product_id>")
@with_actor
def deactivate_product_route(product_id: int):
    """
    Logical delete. The product and its ledger stay readable; stock
    mutations and QA submissions for it are refused from now on.
    """
    try:
        product = catalog_service.deactivate_product(product_id)
        return jsonify({"product": product.to_dict()}), 200

    except DomainError as e:
        return jsonify(e.to_dict()), http_status(e)
    except Exception:
        current_app.logger.exception("Failed to deactivate product")
        return jsonify({"error": "Internal server error"}), 500
