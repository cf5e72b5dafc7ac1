from __future__ import annotations

from datetime import datetime

from ..extensions import db
from pointhub.time_utils import to_utc_z, utcnow


VOUCHER_STATUS_ACTIVE = "ACTIVE"
VOUCHER_STATUS_USED = "USED"
VOUCHER_STATUS_EXPIRED = "EXPIRED"


class Voucher(db.Model):
    """
    Fixed-value voucher owned by a user.

    Only USED is ever written (stored_status, column "status"). The public
    `status` is derived from expires_at at read time: services stamp the
    reading clock with observed_at(now), otherwise the wall clock is used.
    Reads never rewrite the row.
    """
    __tablename__ = "vouchers"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_vouchers_code"),
        db.Index("ix_vouchers_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    value_rp = db.Column(db.Integer, nullable=False)
    min_spend_rp = db.Column(db.Integer, nullable=False)

    # ACTIVE until consumed, then USED; EXPIRED is never stored
    stored_status = db.Column("status", db.String(16), nullable=False, default=VOUCHER_STATUS_ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, unique=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("vouchers", lazy=True))
    order = db.relationship("Order", backref=db.backref("voucher", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    # Clock reading of the last service read; not persisted
    _observed_at = None

    def observed_at(self, now: datetime) -> "Voucher":
        self._observed_at = now
        return self

    def effective_status(self, now: datetime) -> str:
        if self.stored_status == VOUCHER_STATUS_USED:
            return VOUCHER_STATUS_USED
        if self.expires_at < now:
            return VOUCHER_STATUS_EXPIRED
        return VOUCHER_STATUS_ACTIVE

    @property
    def status(self) -> str:
        return self.effective_status(self._observed_at or utcnow())

    def to_dict(self, now: datetime | None = None) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "user_id": self.user_id,
            "value_rp": self.value_rp,
            "min_spend_rp": self.min_spend_rp,
            "status": self.effective_status(now) if now is not None else self.status,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
            "used_at": to_utc_z(self.used_at),
            "order_id": self.order_id,
        }
