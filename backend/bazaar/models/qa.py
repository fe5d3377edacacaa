from __future__ import annotations

import enum

from ..extensions import db
from bazaar.time_utils import to_utc_z


class QAStatus(str, enum.Enum):
    PENDING_DIGITAL_REVIEW = "PENDING_DIGITAL_REVIEW"  # admin checks listing content
    WAITING_FOR_SAMPLE = "WAITING_FOR_SAMPLE"  # seller must ship a sample
    IN_QUALITY_REVIEW = "IN_QUALITY_REVIEW"  # sample with admin (physical QA)
    ACTIVE_VERIFIED = "ACTIVE_VERIFIED"  # live and verified
    FOR_REVISION = "FOR_REVISION"  # seller must revise and resubmit
    REJECTED = "REJECTED"


TERMINAL_STATUSES = frozenset({QAStatus.ACTIVE_VERIFIED, QAStatus.REJECTED})


class RejectionStage(str, enum.Enum):
    DIGITAL = "digital"
    PHYSICAL = "physical"


class QAAssessment(db.Model):
    """
    One product's pass through the approval pipeline.

    A product may accumulate several assessments over time but at most one is
    non-terminal. ACTIVE_VERIFIED and REJECTED are permanent for the instance;
    a new submission creates a new row instead of reopening an old one.
    """
    __tablename__ = "qa_assessments"
    __table_args__ = (
        db.Index("ix_qa_product_status", "product_id", "status"),
        db.Index("ix_qa_seller_status", "seller_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    seller_id = db.Column(db.String(64), nullable=False)

    # Seller display name shown in the admin queue
    vendor = db.Column(db.String(255), nullable=False)

    status = db.Column(
        db.String(32),
        nullable=False,
        default=QAStatus.PENDING_DIGITAL_REVIEW.value,
        index=True,
    )

    # Set once when the sample ships
    logistics_method = db.Column(db.String(128), nullable=True)

    rejection_reason = db.Column(db.Text, nullable=True)
    rejection_stage = db.Column(db.String(16), nullable=True)

    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revision_requested_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Actor of the latest submission or transition
    updated_by = db.Column(db.String(64), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("qa_assessments", lazy="dynamic"))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_terminal(self) -> bool:
        return QAStatus(self.status) in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return f"<QAAssessment id={self.id} product_id={self.product_id} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "seller_id": self.seller_id,
            "vendor": self.vendor,
            "status": self.status,
            "is_terminal": self.is_terminal,
            "logistics_method": self.logistics_method,
            "rejection_reason": self.rejection_reason,
            "rejection_stage": self.rejection_stage,
            "submitted_at": to_utc_z(self.submitted_at),
            "approved_at": to_utc_z(self.approved_at),
            "verified_at": to_utc_z(self.verified_at),
            "rejected_at": to_utc_z(self.rejected_at),
            "revision_requested_at": to_utc_z(self.revision_requested_at),
            "updated_by": self.updated_by,
        }
