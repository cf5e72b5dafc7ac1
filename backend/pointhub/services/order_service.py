# Overview: Service-layer operations for checkout and the order payment state machine.

"""
Checkout & Order State Machine

STATES:
    PENDING -> PAID        confirm_payment (terminal success)
    PENDING -> CANCELLED   cancel_order (terminal)

DESIGN PRINCIPLES:
- Checkout prices the cart with the same function the preview uses, then
  freezes the result into the order. Later campaign changes never touch it.
- A voucher applied at checkout is consumed at checkout, in the same
  transaction that creates the order.
- Payment confirmation is idempotent: a PAID order is returned unchanged and
  points are credited exactly once, whatever the number of deliveries.
- Confirmation is an external trigger and may arrive late or never; a
  PENDING order has no timeout.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from flask import current_app

from ..context import EngineContext, resolve
from ..errors import (
    NoActiveUser,
    OrderNotCancellable,
    OrderNotFound,
    OrderNotPayable,
    ValidationError,
)
from ..extensions import db
from ..models import Order, OrderItem, Voucher
from ..models.orders import ORDER_STATUS_CANCELLED, ORDER_STATUS_PAID, ORDER_STATUS_PENDING
from .campaign_service import require_campaign
from .concurrency import begin_write, lock_for_update, run_with_retry
from .points_service import credit_points, lock_user
from .pricing_service import CartItem, PricePreview, preview_price, validate_cart_items
from .voucher_service import (
    VoucherApplication,
    _consume_locked,
    evaluate_voucher,
    normalize_code,
    require_applicable,
)


VALID_ORDER_STATUSES = (ORDER_STATUS_PENDING, ORDER_STATUS_PAID, ORDER_STATUS_CANCELLED)

# Roles allowed to check out on behalf of another user
ROLES_SELLING_FOR_CUSTOMERS = ("pos", "admin")


# =============================================================================
# PRICING
# =============================================================================

def _price_cart(
    items: list[CartItem],
    voucher: Voucher | None,
    code: str,
    campaign,
    now: datetime,
) -> tuple[PricePreview, VoucherApplication | None]:
    application = None
    voucher_value_rp = None
    if code:
        subtotal = sum(item.line_total for item in items)
        application = evaluate_voucher(voucher, subtotal, now, code=code)
        voucher_value_rp = application.value_rp
    return preview_price(items, voucher_value_rp, campaign), application


def preview_checkout(
    cart: Iterable[CartItem],
    voucher_code: str | None = None,
    *,
    ctx: EngineContext | None = None,
) -> PricePreview:
    """Price a cart exactly as checkout would, without writing anything."""
    preview, _ = quote_checkout(cart, voucher_code, ctx=ctx)
    return preview


def quote_checkout(
    cart: Iterable[CartItem],
    voucher_code: str | None = None,
    *,
    ctx: EngineContext | None = None,
) -> tuple[PricePreview, VoucherApplication | None]:
    """Preview plus the voucher outcome (why a code did or did not apply)."""
    ctx = resolve(ctx)
    items = validate_cart_items(cart)
    campaign = require_campaign()
    code = normalize_code(voucher_code)
    voucher = db.session.query(Voucher).filter_by(code=code).first() if code else None
    return _price_cart(items, voucher, code, campaign, ctx.now())


# =============================================================================
# CHECKOUT
# =============================================================================

def _resolve_order_owner(actor, customer_id: int | None):
    if customer_id is None or customer_id == actor.id:
        return lock_user(actor.id)
    if actor.role not in ROLES_SELLING_FOR_CUSTOMERS:
        raise ValidationError("Only pos or admin users may check out for another customer")
    return lock_user(customer_id)


def checkout(
    cart: Iterable[CartItem],
    voucher_code: str | None = None,
    *,
    ctx: EngineContext,
    customer_id: int | None = None,
    strict_voucher: bool = False,
) -> Order:
    """
    Create a PENDING order from a cart.

    The voucher, when it applies (ACTIVE and min spend met), is discounted
    and consumed for the new order. A voucher that does not apply gives no
    discount; with strict_voucher=True it raises the matching typed error.
    """
    ctx = resolve(ctx)
    actor = ctx.user
    if actor is None:
        raise NoActiveUser("No user logged in")

    items = validate_cart_items(cart)
    if not items:
        raise ValidationError("Cart is empty")

    code = normalize_code(voucher_code)

    def _op():
        begin_write()
        owner = _resolve_order_owner(actor, customer_id)
        campaign = require_campaign()
        now = ctx.now()

        voucher = None
        if code:
            voucher = lock_for_update(db.session.query(Voucher).filter_by(code=code)).first()

        preview, application = _price_cart(items, voucher, code, campaign, now)
        if strict_voucher and application is not None:
            require_applicable(application)

        applied = application is not None and application.applicable
        order = Order(
            user_id=owner.id,
            created_by_user_id=actor.id,
            subtotal=preview.subtotal,
            voucher_discount=preview.voucher_discount,
            total=preview.total,
            points_earned=preview.points_to_earn,
            status=ORDER_STATUS_PENDING,
            voucher_code=code if applied else None,
            created_at=now,
        )
        db.session.add(order)
        db.session.flush()

        for item in items:
            db.session.add(OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                product_name=item.product_name,
                price=item.price,
                quantity=item.quantity,
            ))

        if applied:
            _consume_locked(voucher, order.id, now)

        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Order %s created for user %s: total=%d points=%d voucher=%s",
        order.id, order.user_id, order.total, order.points_earned, order.voucher_code,
    )
    return order


# =============================================================================
# PAYMENT
# =============================================================================

def _lock_order(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if not order:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def confirm_payment(order_id: int, *, ctx: EngineContext | None = None) -> Order:
    """
    Mark an order PAID and credit its points.

    Idempotent: an already PAID order comes back unchanged with no second
    credit. The status flip and the credit commit together.
    """
    ctx = resolve(ctx)

    def _op():
        begin_write()
        order = _lock_order(order_id)
        if order.status == ORDER_STATUS_PAID:
            db.session.rollback()
            return order, False
        if order.status != ORDER_STATUS_PENDING:
            raise OrderNotPayable(f"Cannot pay order with status {order.status}")

        now = ctx.now()
        order.status = ORDER_STATUS_PAID
        order.paid_at = now

        user = lock_user(order.user_id)
        credit_points(
            user,
            order.points_earned,
            occurred_at=now,
            order_id=order.id,
            reason=f"Order {order.id} paid",
        )
        db.session.commit()
        return order, True

    order, transitioned = run_with_retry(_op)
    if transitioned:
        current_app.logger.info("Order %s paid; credited %d points to user %s",
                                order.id, order.points_earned, order.user_id)
    else:
        current_app.logger.info("Order %s already paid; confirmation ignored", order.id)
    return order


def cancel_order(order_id: int, *, ctx: EngineContext | None = None) -> Order:
    """PENDING -> CANCELLED. A voucher consumed by the order stays USED."""
    ctx = resolve(ctx)

    def _op():
        begin_write()
        order = _lock_order(order_id)
        if order.status == ORDER_STATUS_CANCELLED:
            db.session.rollback()
            return order
        if order.status != ORDER_STATUS_PENDING:
            raise OrderNotCancellable(f"Cannot cancel order with status {order.status}")

        order.status = ORDER_STATUS_CANCELLED
        order.cancelled_at = ctx.now()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s cancelled", order.id)
    return order


# =============================================================================
# QUERIES
# =============================================================================

def get_order(order_id: int) -> Order | None:
    return db.session.query(Order).filter_by(id=order_id).first()


def list_orders(user_id: int | None = None, status: str | None = None) -> list[Order]:
    q = db.session.query(Order)
    if user_id is not None:
        q = q.filter_by(user_id=user_id)
    if status:
        status = status.upper()
        if status not in VALID_ORDER_STATUSES:
            raise ValidationError(f"Invalid order status: {status}. Must be one of {list(VALID_ORDER_STATUSES)}")
        q = q.filter_by(status=status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


def get_order_items(order_id: int) -> list[OrderItem]:
    return db.session.query(OrderItem).filter_by(order_id=order_id).order_by(OrderItem.id).all()
