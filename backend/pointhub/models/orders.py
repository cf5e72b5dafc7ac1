from __future__ import annotations

from ..extensions import db
from pointhub.time_utils import to_utc_z


ORDER_STATUS_PENDING = "PENDING"
ORDER_STATUS_PAID = "PAID"
ORDER_STATUS_CANCELLED = "CANCELLED"


class Order(db.Model):
    """
    Checkout snapshot.

    Financial fields (subtotal, voucher_discount, total, points_earned) are
    frozen at checkout and never recalculated, even if the campaign changes.
    Only the payment/cancel transitions mutate an order afterwards.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Actor that ran the checkout (differs from user_id for POS sales)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    subtotal = db.Column(db.Integer, nullable=False)
    voucher_discount = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False)
    points_earned = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)
    voucher_code = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "created_by_user_id": self.created_by_user_id,
            "subtotal": self.subtotal,
            "voucher_discount": self.voucher_discount,
            "total": self.total,
            "points_earned": self.points_earned,
            "status": self.status,
            "voucher_code": self.voucher_code,
            "created_at": to_utc_z(self.created_at),
            "paid_at": to_utc_z(self.paid_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Line of an order; name and price are copied from the cart, never updated."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    order = db.relationship("Order", back_populates="items")

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "price": self.price,
            "quantity": self.quantity,
            "line_total": self.line_total,
        }
