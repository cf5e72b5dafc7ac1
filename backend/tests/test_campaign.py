import pytest

from pointhub.errors import CampaignInactive, CampaignNotFound, ValidationError
from pointhub.extensions import db
from pointhub.models import Campaign
from pointhub.services.campaign_service import (
    ensure_default_campaign,
    get_campaign,
    require_active_campaign,
    require_campaign,
    update_campaign,
)


def test_missing_campaign(db_session):
    assert get_campaign() is None
    with pytest.raises(CampaignNotFound):
        require_campaign()


def test_default_campaign_from_config(app, db_session):
    campaign = ensure_default_campaign()

    assert campaign.accrual_per == app.config["POINTHUB_DEFAULT_ACCRUAL_PER"]
    assert campaign.discount_cap_pct == 50
    assert campaign.expiry_days == 90
    assert campaign.is_active is True

    # Idempotent
    assert ensure_default_campaign().id == campaign.id
    assert db.session.query(Campaign).count() == 1


def test_update_campaign(campaign):
    updated = update_campaign({"accrual_per": "5000", "discount_cap_pct": 30, "is_active": "false"})

    assert updated.accrual_per == 5000
    assert updated.discount_cap_pct == 30
    assert updated.is_active is False
    assert get_campaign().id == campaign.id


@pytest.mark.parametrize("patch", [
    {"accrual_per": 0},
    {"discount_cap_pct": 101},
    {"discount_cap_pct": -1},
    {"expiry_days": 0},
    {"redeem_value": -5},
    {"accrual_per": 1.5},
    {"is_active": "maybe"},
    {"unknown": 1},
])
def test_update_campaign_validation(campaign, patch):
    with pytest.raises(ValidationError):
        update_campaign(patch)


def test_inactive_campaign_blocks_issuance(campaign):
    update_campaign({"is_active": False})
    with pytest.raises(CampaignInactive):
        require_active_campaign()
    # Pricing still reads the inactive campaign
    assert require_campaign().id == campaign.id
