# Overview: Propagates QA assessment state into the product's buyer-visible approval flag.

"""
Approval sync bridge.

A QA transition and the product approval write it implies are one unit of
work: qa_service calls sync_product_approval() inside the transaction that
changes the assessment, before committing. If the product write fails the
whole transition is rolled back, so QA state and buyer visibility never
disagree.

Mapping:
    ACTIVE_VERIFIED                         -> approved (buyer-visible)
    REJECTED                                -> rejected
    PENDING_DIGITAL_REVIEW, WAITING_FOR_SAMPLE,
    IN_QUALITY_REVIEW, FOR_REVISION         -> pending  (hidden)
"""

from __future__ import annotations

from ..models import ApprovalStatus, Product, QAAssessment, QAStatus
from . import product_store


APPROVAL_BY_QA_STATUS = {
    QAStatus.PENDING_DIGITAL_REVIEW: ApprovalStatus.PENDING,
    QAStatus.WAITING_FOR_SAMPLE: ApprovalStatus.PENDING,
    QAStatus.IN_QUALITY_REVIEW: ApprovalStatus.PENDING,
    QAStatus.FOR_REVISION: ApprovalStatus.PENDING,
    QAStatus.ACTIVE_VERIFIED: ApprovalStatus.APPROVED,
    QAStatus.REJECTED: ApprovalStatus.REJECTED,
}

# Statuses whose reason is shown to the seller on the product record
_REASON_CARRYING = frozenset({QAStatus.REJECTED, QAStatus.FOR_REVISION})


def approval_for(status) -> ApprovalStatus:
    return APPROVAL_BY_QA_STATUS[QAStatus(status)]


def sync_product_approval(assessment: QAAssessment, product: Product) -> ApprovalStatus:
    """
    Write the approval status implied by the assessment onto its product.

    Caller holds the product lock and owns the transaction. Raises
    ExternalWriteFailure if the product store rejects the write.
    """
    status = QAStatus(assessment.status)
    approval = APPROVAL_BY_QA_STATUS[status]
    reason = assessment.rejection_reason if status in _REASON_CARRYING else None

    product_store.set_product_approval(product, approval, rejection_reason=reason)
    return approval
