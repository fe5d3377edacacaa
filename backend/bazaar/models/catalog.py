from __future__ import annotations

import enum

from ..extensions import db
from bazaar.time_utils import to_utc_z


class ApprovalStatus(str, enum.Enum):
    """Buyer-visible approval flag on the product record."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECLASSIFIED = "reclassified"


class Product(db.Model):
    """
    Seller product record, reduced to the fields the inventory and QA core touch.

    STOCK:
    - `stock` is a denormalized counter kept equal to the sum of the product's
      ledger entries. It is written ONLY by ledger_service; nothing else may
      assign it.
    - `version_id` is an optimistic-lock column. Two writers that read the same
      version cannot both commit; the loser gets StaleDataError and retries.

    VISIBILITY:
    - Buyers only see products whose approval_status is 'approved'.
    - approval_status is written by the QA approval sync, never by sellers.

    DELETION:
    - Products are never hard-deleted while ledger entries reference them;
      is_active=False is the logical delete.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_seller_active", "seller_id", "is_active"),
        db.Index("ix_products_approval", "approval_status"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Opaque identifier owned by the seller accounts service
    seller_id = db.Column(db.String(64), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)

    stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    approval_status = db.Column(
        db.String(16),
        nullable=False,
        default=ApprovalStatus.PENDING.value,
    )
    rejection_reason = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock} seller_id={self.seller_id!r}>"

    @property
    def is_visible_to_buyers(self) -> bool:
        return self.is_active and self.approval_status == ApprovalStatus.APPROVED.value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "name": self.name,
            "stock": self.stock,
            "low_stock_threshold": self.low_stock_threshold,
            "approval_status": self.approval_status,
            "rejection_reason": self.rejection_reason,
            "is_active": self.is_active,
            "is_visible_to_buyers": self.is_visible_to_buyers,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SellerTierLevel(str, enum.Enum):
    STANDARD = "standard"
    TRUSTED_BRAND = "trusted_brand"
    PREMIUM_OUTLET = "premium_outlet"


# Tiers whose submissions skip QA review
BYPASS_TIERS = frozenset({SellerTierLevel.TRUSTED_BRAND, SellerTierLevel.PREMIUM_OUTLET})


class SellerTier(db.Model):
    """
    Marketplace standing of a seller, set by admins only.

    Sellers without a row are STANDARD. bypasses_assessment is derived from
    tier_level when the tier is written; a submission skips QA only when both
    agree (see is_trusted).
    """
    __tablename__ = "seller_tiers"
    __table_args__ = (
        db.UniqueConstraint("seller_id", name="uq_seller_tiers_seller"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.String(64), nullable=False)

    tier_level = db.Column(db.String(32), nullable=False, default=SellerTierLevel.STANDARD.value)
    bypasses_assessment = db.Column(db.Boolean, nullable=False, default=False)

    # Admin who last changed the tier
    updated_by = db.Column(db.String(64), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    @property
    def is_trusted(self) -> bool:
        return self.bypasses_assessment and SellerTierLevel(self.tier_level) in BYPASS_TIERS

    def __repr__(self) -> str:
        return f"<SellerTier seller_id={self.seller_id!r} tier_level={self.tier_level}>"

    def to_dict(self) -> dict:
        return {
            "seller_id": self.seller_id,
            "tier_level": self.tier_level,
            "bypasses_assessment": self.bypasses_assessment,
            "is_trusted": self.is_trusted,
            "updated_by": self.updated_by,
            "updated_at": to_utc_z(self.updated_at),
        }
