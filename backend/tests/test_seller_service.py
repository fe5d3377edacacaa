# Overview: Pytest coverage for admin-granted seller tiers.

import pytest

from bazaar.errors import InvalidChoice, MissingField
from bazaar.models import SellerTier
from bazaar.services import seller_service


class TestSellerTiers:
    def test_sellers_default_to_standard(self, db_session):
        assert seller_service.get_seller_tier("seller-1") is None
        assert seller_service.bypasses_assessment("seller-1") is False
        assert seller_service.tier_summary("seller-1")["tier_level"] == "standard"

    def test_trusted_brand_bypasses(self, db_session):
        tier = seller_service.set_seller_tier("seller-1", "trusted_brand", user_id="admin-1")

        assert tier.bypasses_assessment is True
        assert tier.updated_by == "admin-1"
        assert tier.updated_at is not None
        assert seller_service.bypasses_assessment("seller-1") is True

    def test_premium_outlet_bypasses(self, db_session):
        seller_service.set_seller_tier("seller-1", "premium_outlet")

        assert seller_service.bypasses_assessment("seller-1") is True

    def test_set_is_an_upsert(self, db_session):
        seller_service.set_seller_tier("seller-1", "trusted_brand")
        seller_service.set_seller_tier("seller-1", "standard")

        assert db_session.query(SellerTier).filter_by(seller_id="seller-1").count() == 1
        assert seller_service.bypasses_assessment("seller-1") is False

    def test_flag_without_bypass_tier_does_not_bypass(self, db_session):
        """A row edited by hand to bypass while standard is not trusted."""
        tier = seller_service.set_seller_tier("seller-1", "standard")
        db_session.query(SellerTier).filter_by(id=tier.id).update({"bypasses_assessment": True})
        db_session.commit()

        assert seller_service.bypasses_assessment("seller-1") is False

    def test_unknown_tier(self, db_session):
        with pytest.raises(InvalidChoice):
            seller_service.set_seller_tier("seller-1", "gold")

        assert seller_service.get_seller_tier("seller-1") is None

    def test_seller_required(self, db_session):
        with pytest.raises(MissingField):
            seller_service.set_seller_tier("  ", "trusted_brand")

    def test_list_trusted_only(self, db_session):
        seller_service.set_seller_tier("seller-a", "trusted_brand")
        seller_service.set_seller_tier("seller-b", "standard")
        seller_service.set_seller_tier("seller-c", "premium_outlet")

        trusted = seller_service.list_seller_tiers(trusted_only=True)
        assert [t.seller_id for t in trusted] == ["seller-a", "seller-c"]
        assert len(seller_service.list_seller_tiers()) == 3
