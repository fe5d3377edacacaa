# Overview: Flask API routes for the product QA pipeline; parses input and returns JSON responses.

# backend/bazaar/routes/qa.py
"""
QA approval routes (admin review pipeline).

Transition endpoints return 400 with code "invalid_transition" when the
assessment is not in the status the action requires; details carry the
current and required statuses so the admin UI can explain why.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import DomainError, http_status
from ..services import qa_service
from ..validation import PayloadPolicy, validate_payload, ValidationError, STR, INT
from ..decorators import with_actor


qa_bp = Blueprint("qa", __name__, url_prefix="/api/qa")

SUBMISSION_POLICY = PayloadPolicy(
    fields={"product_id": INT, "vendor": STR},
    required={"product_id"},
    max_lengths={"vendor": 255},
)

SAMPLE_POLICY = PayloadPolicy(
    fields={"logistics_method": STR},
    max_lengths={"logistics_method": 128},
)

DECISION_POLICY = PayloadPolicy(
    fields={"reason": STR, "stage": STR},
)


def _error_response(e: Exception, action: str):
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, DomainError):
        return jsonify(e.to_dict()), http_status(e)
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def _assessment_response(assessment, status: int = 200):
    return jsonify({
        "assessment": assessment.to_dict(),
        "product": assessment.product.to_dict(),
    }), status


@qa_bp.post("/assessments")
@with_actor
def submit_for_review_route():
    """
    Submit a product to the marketplace review pipeline.

    Request body:
    {"product_id": 1, "vendor": "Weaver Co."}

    Whether review is skipped is decided by the seller's tier (see
    routes/sellers.py), never by the request.

    Returns:
        201: assessment created (PENDING_DIGITAL_REVIEW, or ACTIVE_VERIFIED for trusted-tier sellers)
        404: product missing or deactivated
        409: product already has an active assessment
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=SUBMISSION_POLICY)
        assessment = qa_service.submit_for_review(
            patch["product_id"],
            patch.get("vendor"),
            user_id=g.actor_id,
        )
        return _assessment_response(assessment, 201)
    except Exception as e:
        return _error_response(e, "submit product for review")


@qa_bp.get("/assessments")
def list_assessments_route():
    """Admin queue. Optional ?status=PENDING_DIGITAL_REVIEW&seller_id=..."""
    try:
        assessments = qa_service.list_assessments(
            status=request.args.get("status") or None,
            seller_id=request.args.get("seller_id") or None,
        )
        return jsonify({"assessments": [a.to_dict() for a in assessments]}), 200
    except Exception as e:
        return _error_response(e, "list assessments")


@qa_bp.get("/assessments/<int:assessment_id>")
def get_assessment_by_id_route(assessment_id: int):
    try:
        return jsonify({"assessment": qa_service.get_assessment_by_id(assessment_id).to_dict()}), 200
    except Exception as e:
        return _error_response(e, "load assessment")


@qa_bp.get("/products/<int:product_id>/assessment")
def get_product_assessment_route(product_id: int):
    """Active assessment for the product, or its most recent one."""
    try:
        return jsonify({"assessment": qa_service.get_assessment(product_id).to_dict()}), 200
    except Exception as e:
        return _error_response(e, "load product assessment")


@qa_bp.get("/products/<int:product_id>/history")
def get_assessment_history_route(product_id: int):
    try:
        history = qa_service.get_assessment_history(product_id)
        return jsonify({"product_id": product_id, "assessments": [a.to_dict() for a in history]}), 200
    except Exception as e:
        return _error_response(e, "load assessment history")


@qa_bp.post("/assessments/<int:assessment_id>/approve-for-sample")
@with_actor
def approve_for_sample_route(assessment_id: int):
    """Digital review passed; the seller must now send a sample."""
    try:
        return _assessment_response(qa_service.approve_for_sample(assessment_id, user_id=g.actor_id))
    except Exception as e:
        return _error_response(e, "approve for sample")


@qa_bp.post("/assessments/<int:assessment_id>/submit-sample")
@with_actor
def submit_sample_route(assessment_id: int):
    """{"logistics_method": "Courier Pickup"}"""
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=SAMPLE_POLICY)
        return _assessment_response(
            qa_service.submit_sample(assessment_id, patch.get("logistics_method"), user_id=g.actor_id)
        )
    except Exception as e:
        return _error_response(e, "submit sample")


@qa_bp.post("/assessments/<int:assessment_id>/pass")
@with_actor
def pass_quality_check_route(assessment_id: int):
    try:
        return _assessment_response(qa_service.pass_quality_check(assessment_id, user_id=g.actor_id))
    except Exception as e:
        return _error_response(e, "pass quality check")


@qa_bp.post("/assessments/<int:assessment_id>/reject")
@with_actor
def reject_route(assessment_id: int):
    """
    Reject the product.

    Request body:
    {"reason": "Damaged unit", "stage": "physical"}   (stage optional)
    """
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=DECISION_POLICY)
        return _assessment_response(
            qa_service.reject(assessment_id, patch.get("reason"), patch.get("stage"), user_id=g.actor_id)
        )
    except Exception as e:
        return _error_response(e, "reject assessment")


@qa_bp.post("/assessments/<int:assessment_id>/request-revision")
@with_actor
def request_revision_route(assessment_id: int):
    try:
        patch = validate_payload(payload=request.get_json(silent=True), policy=DECISION_POLICY)
        return _assessment_response(
            qa_service.request_revision(
                assessment_id, patch.get("reason"), patch.get("stage"), user_id=g.actor_id
            )
        )
    except Exception as e:
        return _error_response(e, "request revision")


@qa_bp.post("/assessments/<int:assessment_id>/resubmit")
@with_actor
def resubmit_route(assessment_id: int):
    try:
        return _assessment_response(qa_service.resubmit(assessment_id, user_id=g.actor_id))
    except Exception as e:
        return _error_response(e, "resubmit assessment")
