# Overview: Service-layer operations for the loyalty campaign record.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import CampaignInactive, CampaignNotFound
from ..models import Campaign
from ..validation import ModelValidationPolicy, enforce_rules_campaign, validate_payload
from .concurrency import run_with_retry


CAMPAIGN_POLICY = ModelValidationPolicy(
    writable_fields={"name", "accrual_per", "redeem_value", "discount_cap_pct", "expiry_days", "is_active"},
)


def get_campaign() -> Campaign | None:
    """Active campaign, falling back to the most recent record when none is active."""
    campaign = (
        db.session.query(Campaign)
        .filter_by(is_active=True)
        .order_by(Campaign.id.desc())
        .first()
    )
    if campaign:
        return campaign
    return db.session.query(Campaign).order_by(Campaign.id.desc()).first()


def require_campaign() -> Campaign:
    campaign = get_campaign()
    if not campaign:
        raise CampaignNotFound("Campaign not initialized")
    return campaign


def require_active_campaign(campaign: Campaign | None = None) -> Campaign:
    """
    Campaign for voucher issuance/redemption; the stored one unless given.

    Inactive campaigns block issuance unless POINTHUB_REQUIRE_ACTIVE_CAMPAIGN is off.
    """
    campaign = campaign or require_campaign()
    if not campaign.is_active and current_app.config.get("POINTHUB_REQUIRE_ACTIVE_CAMPAIGN", True):
        raise CampaignInactive(f"Campaign '{campaign.name}' is not active")
    return campaign


def ensure_default_campaign() -> Campaign:
    """Create the campaign from app config defaults if none exists (idempotent)."""
    campaign = get_campaign()
    if campaign:
        return campaign

    cfg = current_app.config
    patch = {
        "accrual_per": cfg["POINTHUB_DEFAULT_ACCRUAL_PER"],
        "redeem_value": cfg["POINTHUB_DEFAULT_REDEEM_VALUE"],
        "discount_cap_pct": cfg["POINTHUB_DEFAULT_DISCOUNT_CAP_PCT"],
        "expiry_days": cfg["POINTHUB_DEFAULT_EXPIRY_DAYS"],
    }
    enforce_rules_campaign(patch)

    campaign = Campaign(name="Default Campaign", is_active=True, **patch)
    db.session.add(campaign)
    db.session.commit()
    current_app.logger.info("Created default campaign %s", campaign.to_dict())
    return campaign


def update_campaign(data: dict) -> Campaign:
    """Apply a validated partial update to the campaign."""
    patch = validate_payload(model=Campaign, payload=data, policy=CAMPAIGN_POLICY, partial=True)
    enforce_rules_campaign(patch)

    def _op():
        campaign = require_campaign()
        for key, value in patch.items():
            setattr(campaign, key, value)
        db.session.commit()
        return campaign

    campaign = run_with_retry(_op)
    current_app.logger.info("Campaign %s updated: %s", campaign.id, sorted(patch))
    return campaign
