from __future__ import annotations

import enum

from ..extensions import db
from bazaar.time_utils import to_utc_z


class ChangeType(str, enum.Enum):
    DEDUCTION = "DEDUCTION"
    ADDITION = "ADDITION"
    ADJUSTMENT = "ADJUSTMENT"
    RESERVATION = "RESERVATION"
    RELEASE = "RELEASE"


class LedgerReason(str, enum.Enum):
    ONLINE_SALE = "ONLINE_SALE"
    OFFLINE_SALE = "OFFLINE_SALE"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"
    STOCK_REPLENISHMENT = "STOCK_REPLENISHMENT"
    ORDER_CANCELLATION = "ORDER_CANCELLATION"
    RESERVATION = "RESERVATION"


# Reasons a plain deduction may carry (sales channels)
SALE_REASONS = frozenset({LedgerReason.ONLINE_SALE, LedgerReason.OFFLINE_SALE})


class InventoryLedgerEntry(db.Model):
    """
    Immutable record of one stock change.

    INVARIANTS (enforced by ledger_service at write time):
    - quantity_after == quantity_before + quantity_change
    - quantity_after equals the product's live stock at commit
    - entries are never updated or deleted

    Commit order is the autoincrement id; replaying a product's entries by id
    reconstructs its stock.
    """
    __tablename__ = "inventory_ledger_entries"
    __table_args__ = (
        db.Index("ix_ledger_product_id_order", "product_id", "id"),
        db.Index("ix_ledger_reference", "reference_id"),
        db.CheckConstraint(
            "quantity_after = quantity_before + quantity_change",
            name="ck_ledger_quantity_chain",
        ),
        db.CheckConstraint("quantity_after >= 0", name="ck_ledger_after_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Snapshot of the name at the time of the change
    product_name = db.Column(db.String(255), nullable=False)

    change_type = db.Column(db.String(16), nullable=False, index=True)

    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_change = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(32), nullable=False)

    # Order id, adjustment id or replenishment id
    reference_id = db.Column(db.String(64), nullable=False)

    # Seller/admin id or 'SYSTEM'
    user_id = db.Column(db.String(64), nullable=False, default="SYSTEM")

    notes = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    product = db.relationship("Product", backref=db.backref("ledger_entries", lazy="dynamic"))

    def __repr__(self) -> str:
        return (
            f"<InventoryLedgerEntry id={self.id} product_id={self.product_id} "
            f"{self.change_type} {self.quantity_before}->{self.quantity_after}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": to_utc_z(self.occurred_at),
            "product_id": self.product_id,
            "product_name": self.product_name,
            "change_type": self.change_type,
            "quantity_before": self.quantity_before,
            "quantity_change": self.quantity_change,
            "quantity_after": self.quantity_after,
            "reason": self.reason,
            "reference_id": self.reference_id,
            "user_id": self.user_id,
            "notes": self.notes,
        }


class LowStockAlert(db.Model):
    """
    Deduplicated notice that a product fell below its threshold.

    At most one unacknowledged alert per product. Alerts are only cleared by
    explicit acknowledgement; a later restock does not clear them.
    """
    __tablename__ = "low_stock_alerts"
    __table_args__ = (
        db.Index("ix_alerts_product_ack", "product_id", "acknowledged"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    current_stock = db.Column(db.Integer, nullable=False)
    threshold = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    acknowledged = db.Column(db.Boolean, nullable=False, default=False)
    acknowledged_at = db.Column(db.DateTime(timezone=True), nullable=True)
    acknowledged_by = db.Column(db.String(64), nullable=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "current_stock": self.current_stock,
            "threshold": self.threshold,
            "timestamp": to_utc_z(self.created_at),
            "acknowledged": self.acknowledged,
            "acknowledged_at": to_utc_z(self.acknowledged_at) if self.acknowledged_at else None,
            "acknowledged_by": self.acknowledged_by,
        }
