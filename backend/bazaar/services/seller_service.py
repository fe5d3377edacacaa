# Overview: Service-layer operations for seller marketplace tiers; encapsulates business logic and database work.

"""
Seller tiers.

Trusted-brand standing belongs to the seller and is granted by an admin; it is
never taken from a submission payload. qa_service reads it under the product
lock when a product is submitted for review.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InvalidChoice, MissingField
from ..models import BYPASS_TIERS, SellerTier, SellerTierLevel
from bazaar.time_utils import utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry


def _parse_tier(tier_level) -> SellerTierLevel:
    try:
        return SellerTierLevel(tier_level)
    except ValueError:
        raise InvalidChoice("tier_level", tier_level, {t.value for t in SellerTierLevel}) from None


def get_seller_tier(seller_id: str) -> SellerTier | None:
    return db.session.query(SellerTier).filter_by(seller_id=seller_id).first()


def bypasses_assessment(seller_id: str) -> bool:
    tier = get_seller_tier(seller_id)
    return tier is not None and tier.is_trusted


def tier_summary(seller_id: str) -> dict:
    """Tier as shown to admins; sellers without a row read as standard."""
    tier = get_seller_tier(seller_id)
    if tier is not None:
        return tier.to_dict()
    return {
        "seller_id": seller_id,
        "tier_level": SellerTierLevel.STANDARD.value,
        "bypasses_assessment": False,
        "is_trusted": False,
        "updated_by": None,
        "updated_at": None,
    }


def set_seller_tier(seller_id: str, tier_level, *, user_id: str | None = None) -> SellerTier:
    """
    Grant or revoke a tier (upsert per seller).

    Setting STANDARD revokes the QA bypass. Products already verified keep
    their approval; only later submissions are affected.
    """
    if seller_id is None or not str(seller_id).strip():
        raise MissingField("seller_id")
    seller_id = str(seller_id).strip()
    level = _parse_tier(tier_level)

    def _op():
        begin_write()
        tier = lock_for_update(db.session.query(SellerTier).filter_by(seller_id=seller_id)).first()
        if tier is None:
            tier = SellerTier(seller_id=seller_id)
            db.session.add(tier)

        tier.tier_level = level.value
        tier.bypasses_assessment = level in BYPASS_TIERS
        tier.updated_by = user_id
        tier.updated_at = utcnow()

        db.session.commit()
        return tier

    tier = run_with_retry(_op)
    current_app.logger.info(
        "Seller %s tier set to %s by %s (QA bypass %s)",
        tier.seller_id, tier.tier_level, user_id or "SYSTEM",
        "on" if tier.bypasses_assessment else "off",
    )
    return tier


def list_seller_tiers(*, trusted_only: bool = False) -> list[SellerTier]:
    q = db.session.query(SellerTier)
    if trusted_only:
        q = q.filter(
            SellerTier.bypasses_assessment.is_(True),
            SellerTier.tier_level.in_([t.value for t in BYPASS_TIERS]),
        )
    return q.order_by(SellerTier.seller_id).all()
