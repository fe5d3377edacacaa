# Overview: Service-layer operations for the product QA lifecycle; encapsulates business logic and database work.

"""
Product QA Approval Service

================================================================================
PURPOSE: Gate buyer visibility of a product behind a multi-stage QA review
================================================================================

STATE MACHINE:

    PENDING_DIGITAL_REVIEW -> WAITING_FOR_SAMPLE -> IN_QUALITY_REVIEW -> ACTIVE_VERIFIED
              |                     |                     |
              +---------------------+---------------------+--> REJECTED
              +---------------------+---------------------+--> FOR_REVISION
                                                                   |
    PENDING_DIGITAL_REVIEW <---------------- resubmit -------------+

    PENDING_DIGITAL_REVIEW: admin reviews listing content
    WAITING_FOR_SAMPLE:     digital review passed, seller must ship a sample
    IN_QUALITY_REVIEW:      sample received, physical inspection
    ACTIVE_VERIFIED:        TERMINAL, product visible to buyers
    REJECTED:               TERMINAL, reachable from any non-terminal state
    FOR_REVISION:           seller must fix and resubmit; reachable from any
                            non-terminal state except itself

RULES:
1. Every transition checks the CURRENT status first; a mismatch raises
   InvalidTransition naming the required status. Nothing is written.
2. Terminal assessments accept no transition. A new submission creates a new
   assessment row; at most one non-terminal assessment exists per product.
3. Transitions that change buyer visibility write the product approval flag
   through approval_sync in the same transaction. If that write fails the
   transition is rolled back and reported as failed.
4. Sellers an admin has put on a bypass tier (seller_service) skip review:
   their submission is created directly as ACTIVE_VERIFIED and the product
   becomes visible. The tier is read under the product lock, never taken
   from the caller.
5. Every submission and transition records its actor in updated_by.

================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..errors import (
    AssessmentConflict,
    InvalidChoice,
    InvalidTransition,
    MissingField,
    MissingLogistics,
    MissingReason,
    NotFound,
)
from ..models import QAAssessment, QAStatus, RejectionStage, TERMINAL_STATUSES
from bazaar.time_utils import utcnow
from . import approval_sync, product_store, seller_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import SYSTEM_USER


NON_TERMINAL_STATUSES = frozenset(set(QAStatus) - TERMINAL_STATUSES)


@dataclass(frozen=True)
class Transition:
    allowed_from: frozenset
    target: QAStatus
    syncs_approval: bool


# Exhaustive transition table; anything not listed here is invalid.
TRANSITIONS = {
    "approve_for_sample": Transition(
        allowed_from=frozenset({QAStatus.PENDING_DIGITAL_REVIEW}),
        target=QAStatus.WAITING_FOR_SAMPLE,
        syncs_approval=True,
    ),
    "submit_sample": Transition(
        allowed_from=frozenset({QAStatus.WAITING_FOR_SAMPLE}),
        target=QAStatus.IN_QUALITY_REVIEW,
        syncs_approval=False,
    ),
    "pass_quality_check": Transition(
        allowed_from=frozenset({QAStatus.IN_QUALITY_REVIEW}),
        target=QAStatus.ACTIVE_VERIFIED,
        syncs_approval=True,
    ),
    "reject": Transition(
        allowed_from=NON_TERMINAL_STATUSES,
        target=QAStatus.REJECTED,
        syncs_approval=True,
    ),
    "request_revision": Transition(
        allowed_from=NON_TERMINAL_STATUSES - {QAStatus.FOR_REVISION},
        target=QAStatus.FOR_REVISION,
        syncs_approval=True,
    ),
    "resubmit": Transition(
        allowed_from=frozenset({QAStatus.FOR_REVISION}),
        target=QAStatus.PENDING_DIGITAL_REVIEW,
        syncs_approval=True,
    ),
}

# Stage a rejection/revision is attributed to when the caller does not say
_DEFAULT_STAGE = {
    QAStatus.PENDING_DIGITAL_REVIEW: RejectionStage.DIGITAL,
    QAStatus.WAITING_FOR_SAMPLE: RejectionStage.DIGITAL,
    QAStatus.FOR_REVISION: RejectionStage.DIGITAL,
    QAStatus.IN_QUALITY_REVIEW: RejectionStage.PHYSICAL,
}


def can_transition(from_status, operation: str) -> bool:
    transition = TRANSITIONS[operation]
    return QAStatus(from_status) in transition.allowed_from


def _parse_status(status) -> QAStatus:
    try:
        return QAStatus(status)
    except ValueError:
        raise InvalidChoice("status", status, {s.value for s in QAStatus}) from None


def _parse_stage(stage) -> RejectionStage | None:
    if stage is None or (isinstance(stage, str) and not stage.strip()):
        return None
    try:
        return RejectionStage(stage)
    except ValueError:
        raise InvalidChoice("stage", stage, {s.value for s in RejectionStage}) from None


def _active_assessment(product_id: int) -> QAAssessment | None:
    return (
        db.session.query(QAAssessment)
        .filter(
            QAAssessment.product_id == product_id,
            QAAssessment.status.in_([s.value for s in NON_TERMINAL_STATUSES]),
        )
        .order_by(QAAssessment.id.desc())
        .first()
    )


def _apply_transition(assessment_id: int, operation: str, mutate, user_id: str | None = None) -> QAAssessment:
    """
    Lock, validate, mutate and (optionally) sync one assessment transition.

    `mutate(assessment, current_status, now)` sets the operation-specific fields.
    """
    transition = TRANSITIONS[operation]

    def _op():
        begin_write()
        assessment = lock_for_update(
            db.session.query(QAAssessment).filter_by(id=assessment_id)
        ).first()
        if assessment is None:
            raise NotFound("QAAssessment", assessment_id)

        current = QAStatus(assessment.status)
        if current not in transition.allowed_from:
            raise InvalidTransition(
                assessment_id=assessment.id,
                current_status=current.value,
                attempted_status=transition.target.value,
                required_status=sorted(s.value for s in transition.allowed_from),
            )

        product = product_store.get_product(assessment.product_id, lock=True, require_active=False)

        mutate(assessment, current, utcnow())
        assessment.status = transition.target.value
        assessment.updated_by = user_id or SYSTEM_USER
        db.session.flush()

        if transition.syncs_approval:
            approval_sync.sync_product_approval(assessment, product)

        db.session.commit()
        return assessment

    assessment = run_with_retry(_op)
    current_app.logger.info(
        "QA assessment %s (product %s): %s -> %s by %s",
        assessment.id, assessment.product_id, operation, assessment.status, assessment.updated_by,
    )
    return assessment


def submit_for_review(
    product_id: int,
    vendor: str,
    *,
    user_id: str | None = None,
) -> QAAssessment:
    """
    Open a QA assessment for a product submitted to the marketplace.

    Sellers on a bypass tier get an ACTIVE_VERIFIED assessment straight away.

    Raises:
        MissingField: vendor is empty
        NotFound: product missing or deactivated
        AssessmentConflict: the product already has a non-terminal assessment
    """
    if vendor is None or not str(vendor).strip():
        raise MissingField("vendor")
    vendor = str(vendor).strip()

    def _op():
        begin_write()
        product = product_store.get_product(product_id, lock=True)

        active = _active_assessment(product.id)
        if active is not None:
            raise AssessmentConflict(product.id, active.id, active.status)

        now = utcnow()
        assessment = QAAssessment(
            product_id=product.id,
            seller_id=product.seller_id,
            vendor=vendor,
            submitted_at=now,
            updated_by=user_id or SYSTEM_USER,
        )
        if seller_service.bypasses_assessment(product.seller_id):
            assessment.status = QAStatus.ACTIVE_VERIFIED.value
            assessment.approved_at = now
            assessment.verified_at = now
        else:
            assessment.status = QAStatus.PENDING_DIGITAL_REVIEW.value

        db.session.add(assessment)
        db.session.flush()

        approval_sync.sync_product_approval(assessment, product)

        db.session.commit()
        return assessment

    assessment = run_with_retry(_op)
    current_app.logger.info(
        "QA assessment %s opened for product %s (%s)%s",
        assessment.id, assessment.product_id, assessment.status,
        " via trusted-brand bypass" if assessment.status == QAStatus.ACTIVE_VERIFIED.value else "",
    )
    return assessment


def approve_for_sample(assessment_id: int, *, user_id: str | None = None) -> QAAssessment:
    """Digital review passed: PENDING_DIGITAL_REVIEW -> WAITING_FOR_SAMPLE. Product stays hidden."""
    def _mutate(assessment, current, now):
        assessment.approved_at = now

    return _apply_transition(assessment_id, "approve_for_sample", _mutate, user_id)


def submit_sample(assessment_id: int, logistics_method: str, *, user_id: str | None = None) -> QAAssessment:
    """Seller shipped the sample: WAITING_FOR_SAMPLE -> IN_QUALITY_REVIEW."""
    if logistics_method is None or not str(logistics_method).strip():
        raise MissingLogistics()
    logistics_method = str(logistics_method).strip()

    def _mutate(assessment, current, now):
        assessment.logistics_method = logistics_method

    return _apply_transition(assessment_id, "submit_sample", _mutate, user_id)


def pass_quality_check(assessment_id: int, *, user_id: str | None = None) -> QAAssessment:
    """Physical QA passed: IN_QUALITY_REVIEW -> ACTIVE_VERIFIED. Product becomes buyer-visible."""
    def _mutate(assessment, current, now):
        assessment.verified_at = now

    return _apply_transition(assessment_id, "pass_quality_check", _mutate, user_id)


def reject(assessment_id: int, reason: str, stage=None, *, user_id: str | None = None) -> QAAssessment:
    """
    Reject from any non-terminal status. Terminal for this assessment.

    `stage` is 'digital' or 'physical'; when omitted it is derived from the
    status being left (IN_QUALITY_REVIEW is physical, earlier steps digital).
    """
    if reason is None or not str(reason).strip():
        raise MissingReason("reason", "Rejection reason is required")
    reason = str(reason).strip()
    parsed_stage = _parse_stage(stage)

    def _mutate(assessment, current, now):
        assessment.rejected_at = now
        assessment.rejection_reason = reason
        assessment.rejection_stage = (parsed_stage or _DEFAULT_STAGE[current]).value

    return _apply_transition(assessment_id, "reject", _mutate, user_id)


def request_revision(assessment_id: int, reason: str, stage=None, *, user_id: str | None = None) -> QAAssessment:
    """Send back to the seller for changes. The product stays hidden."""
    if reason is None or not str(reason).strip():
        raise MissingReason("reason", "Revision reason is required")
    reason = str(reason).strip()
    parsed_stage = _parse_stage(stage)

    def _mutate(assessment, current, now):
        assessment.revision_requested_at = now
        assessment.rejection_reason = reason
        assessment.rejection_stage = (parsed_stage or _DEFAULT_STAGE[current]).value

    return _apply_transition(assessment_id, "request_revision", _mutate, user_id)


def resubmit(assessment_id: int, *, user_id: str | None = None) -> QAAssessment:
    """Seller addressed the revision: FOR_REVISION -> PENDING_DIGITAL_REVIEW."""
    def _mutate(assessment, current, now):
        assessment.submitted_at = now
        assessment.rejection_reason = None
        assessment.rejection_stage = None

    return _apply_transition(assessment_id, "resubmit", _mutate, user_id)


def get_assessment_by_id(assessment_id: int) -> QAAssessment:
    assessment = db.session.query(QAAssessment).filter_by(id=assessment_id).first()
    if assessment is None:
        raise NotFound("QAAssessment", assessment_id)
    return assessment


def get_assessment(product_id: int) -> QAAssessment:
    """
    The product's active assessment, or its most recent one when none is active.
    """
    assessment = _active_assessment(product_id)
    if assessment is None:
        assessment = (
            db.session.query(QAAssessment)
            .filter_by(product_id=product_id)
            .order_by(QAAssessment.id.desc())
            .first()
        )
    if assessment is None:
        raise NotFound("QAAssessment for product", product_id)
    return assessment


def get_assessment_history(product_id: int) -> list[QAAssessment]:
    return (
        db.session.query(QAAssessment)
        .filter_by(product_id=product_id)
        .order_by(QAAssessment.id.desc())
        .all()
    )


def list_assessments(
    *,
    status=None,
    seller_id: str | None = None,
    limit: int = 200,
) -> list[QAAssessment]:
    """
    Admin queue view.

    USAGE:
    - Digital review queue: list_assessments(status="PENDING_DIGITAL_REVIEW")
    - Samples in transit:   list_assessments(status="WAITING_FOR_SAMPLE")
    - A seller's history:   list_assessments(seller_id="...")
    """
    q = db.session.query(QAAssessment)
    if status is not None:
        q = q.filter(QAAssessment.status == _parse_status(status).value)
    if seller_id is not None:
        q = q.filter(QAAssessment.seller_id == seller_id)

    return q.order_by(QAAssessment.submitted_at.desc(), QAAssessment.id.desc()).limit(limit).all()
