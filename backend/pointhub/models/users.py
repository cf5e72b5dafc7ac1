from __future__ import annotations

from ..extensions import db
from pointhub.time_utils import to_utc_z


class User(db.Model):
    """
    Accounts for shoppers, POS cashiers and admins.

    Email is stored lower-cased so the unique constraint is case-insensitive.
    points_balance only changes through the points ledger (points_service).
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.CheckConstraint("points_balance >= 0", name="ck_users_points_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default="user", index=True)  # admin, pos, user
    points_balance = db.Column(db.Integer, nullable=False, default=0)

    # Outlet the POS terminal belongs to (pos role only)
    outlet_id = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "points_balance": self.points_balance,
            "outlet_id": self.outlet_id,
            "created_at": to_utc_z(self.created_at),
        }
