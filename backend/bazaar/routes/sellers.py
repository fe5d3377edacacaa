# Overview: Flask API routes for seller tiers (admin); parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError, http_status
from ..services import seller_service
from ..validation import PayloadPolicy, validate_payload, ValidationError, STR
from ..decorators import with_actor


sellers_bp = Blueprint("sellers", __name__, url_prefix="/api/sellers")

TIER_POLICY = PayloadPolicy(
    fields={"tier_level": STR},
    required={"tier_level"},
    max_lengths={"tier_level": 32},
)


@sellers_bp.get("/tiers")
def list_tiers_route():
    """Sellers with an explicit tier. ?trusted_only=true for the bypass list."""
    trusted_only = request.args.get("trusted_only", "false").lower() == "true"

    tiers = seller_service.list_seller_tiers(trusted_only=trusted_only)
    return jsonify({"tiers": [t.to_dict() for t in tiers]}), 200


@sellers_bp.get("/<seller_id>/tier")
def get_tier_route(seller_id: str):
    return jsonify({"tier": seller_service.tier_summary(seller_id)}), 200


@sellers_bp.put("/<seller_id>/tier")
@with_actor
def set_tier_route(seller_id: str):
    """
    Grant or revoke a seller tier.

    Request body:
    {"tier_level": "trusted_brand"}     (standard | trusted_brand | premium_outlet)

    trusted_brand and premium_outlet sellers skip QA review on their next
    submissions; setting standard revokes that.
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=TIER_POLICY)
        tier = seller_service.set_seller_tier(seller_id, patch["tier_level"], user_id=g.actor_id)
        return jsonify({"tier": tier.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except DomainError as e:
        return jsonify(e.to_dict()), http_status(e)
    except Exception:
        current_app.logger.exception("Failed to set seller tier")
        return jsonify({"error": "Internal server error"}), 500
