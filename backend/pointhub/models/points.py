from __future__ import annotations

from ..extensions import db
from pointhub.time_utils import to_utc_z


POINTS_EARN = "EARN"
POINTS_REDEEM = "REDEEM"
POINTS_ADJUST = "ADJUST"


class PointsTransaction(db.Model):
    """
    Append-only ledger of point balance changes.

    TRANSACTION TYPES:
    - EARN: points credited when an order is paid
    - REDEEM: points spent on a voucher
    - ADJUST: manual correction by an admin

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "points_transactions"
    __table_args__ = (
        db.Index("ix_points_txns_user_occurred", "user_id", "occurred_at"),
        # One EARN per order keeps payment crediting exactly-once
        db.UniqueConstraint("order_id", "transaction_type", name="uq_points_txns_order_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)  # EARN, REDEEM, ADJUST
    points = db.Column(db.Integer, nullable=False)  # Positive for earn, negative for redeem
    balance_after = db.Column(db.Integer, nullable=False)

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    voucher_id = db.Column(db.Integer, db.ForeignKey("vouchers.id"), nullable=True, index=True)
    reason = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    user = db.relationship("User", backref=db.backref("points_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "transaction_type": self.transaction_type,
            "points": self.points,
            "balance_after": self.balance_after,
            "order_id": self.order_id,
            "voucher_id": self.voucher_id,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }
