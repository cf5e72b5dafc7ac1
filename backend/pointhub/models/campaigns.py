from __future__ import annotations

from ..extensions import db


class Campaign(db.Model):
    """
    Loyalty rules in force. Exactly one campaign is expected to exist.

    accrual_per: rupiah spent per point earned (> 0)
    discount_cap_pct: max share of the subtotal a voucher may discount
    expiry_days: voucher lifetime from issuance
    redeem_value: informational points value shown to admins
    """
    __tablename__ = "campaigns"
    __table_args__ = (
        db.CheckConstraint("accrual_per > 0", name="ck_campaigns_accrual_positive"),
        db.CheckConstraint("discount_cap_pct BETWEEN 0 AND 100", name="ck_campaigns_cap_range"),
        db.CheckConstraint("expiry_days > 0", name="ck_campaigns_expiry_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, default="Default Campaign")
    accrual_per = db.Column(db.Integer, nullable=False, default=10000)
    redeem_value = db.Column(db.Integer, nullable=False, default=500)
    discount_cap_pct = db.Column(db.Integer, nullable=False, default=50)
    expiry_days = db.Column(db.Integer, nullable=False, default=90)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "accrual_per": self.accrual_per,
            "redeem_value": self.redeem_value,
            "discount_cap_pct": self.discount_cap_pct,
            "expiry_days": self.expiry_days,
            "is_active": self.is_active,
        }
