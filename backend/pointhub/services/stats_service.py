# Overview: Read-only loyalty statistics and admin reporting.

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, time, timedelta

from sqlalchemy import func

from ..context import EngineContext, resolve
from ..errors import ValidationError
from ..extensions import db
from ..models import Order, User, Voucher
from ..models.orders import ORDER_STATUS_PAID
from ..models.vouchers import VOUCHER_STATUS_USED
from ..time_utils import utc_date
from .user_service import require_user
from .voucher_service import VOUCHER_TIERS, VoucherTier


@dataclass(frozen=True)
class VoucherProgress:
    current_points: int
    points_needed: int
    percent_complete: float
    next_tier: VoucherTier

    def to_dict(self) -> dict:
        return {
            "current_points": self.current_points,
            "points_needed": self.points_needed,
            "percent_complete": self.percent_complete,
            "next_tier": self.next_tier.to_dict(),
        }


@dataclass(frozen=True)
class UserStats:
    points_balance: int
    total_orders: int
    lifetime_spent: int
    next_voucher_progress: VoucherProgress

    def to_dict(self) -> dict:
        data = asdict(self)
        data["next_voucher_progress"] = self.next_voucher_progress.to_dict()
        return data


def calculate_next_voucher_progress(current_points: int) -> VoucherProgress:
    """
    Progress toward the cheapest tier the balance cannot yet afford.

    Once the balance covers the most expensive tier, report 100% against it.
    """
    tiers = sorted(VOUCHER_TIERS, key=lambda t: t.points_cost)
    next_tier = next((t for t in tiers if current_points < t.points_cost), None)

    if next_tier is None:
        highest = tiers[-1]
        return VoucherProgress(
            current_points=current_points,
            points_needed=highest.points_cost,
            percent_complete=100.0,
            next_tier=highest,
        )

    return VoucherProgress(
        current_points=current_points,
        points_needed=next_tier.points_cost,
        percent_complete=current_points * 100 / next_tier.points_cost,
        next_tier=next_tier,
    )


def get_points(user_id: int) -> int:
    return require_user(user_id).points_balance


def get_user_stats(user_id: int) -> UserStats:
    """Balance plus lifetime figures; only PAID orders count."""
    user = require_user(user_id)

    total_orders, lifetime_spent = (
        db.session.query(func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
        .filter(Order.user_id == user.id, Order.status == ORDER_STATUS_PAID)
        .one()
    )

    return UserStats(
        points_balance=user.points_balance,
        total_orders=int(total_orders),
        lifetime_spent=int(lifetime_spent),
        next_voucher_progress=calculate_next_voucher_progress(user.points_balance),
    )


def get_dashboard_kpis() -> dict:
    paid_count, total_revenue = (
        db.session.query(func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
        .filter(Order.status == ORDER_STATUS_PAID)
        .one()
    )
    active_users = db.session.query(func.count(User.id)).filter(User.role == "user").scalar()
    vouchers_redeemed = (
        db.session.query(func.count(Voucher.id)).filter(Voucher.stored_status == VOUCHER_STATUS_USED).scalar()
    )

    total_revenue = int(total_revenue)
    return {
        "total_revenue": total_revenue,
        "active_users": int(active_users or 0),
        "vouchers_redeemed": int(vouchers_redeemed or 0),
        "avg_transaction": total_revenue // paid_count if paid_count else 0,
    }


def get_revenue_data(days: int, *, ctx: EngineContext | None = None) -> list[dict]:
    """Daily PAID revenue (by paid_at, UTC) for the last `days` days, oldest first."""
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise ValidationError("days must be a positive integer")

    ctx = resolve(ctx)
    today = utc_date(ctx.now())
    start = today - timedelta(days=days - 1)

    revenue_by_day = {start + timedelta(days=i): 0 for i in range(days)}
    paid_orders = (
        db.session.query(Order.paid_at, Order.total)
        .filter(Order.status == ORDER_STATUS_PAID, Order.paid_at >= datetime.combine(start, time.min))
        .all()
    )
    for paid_at, total in paid_orders:
        day = utc_date(paid_at)
        if day in revenue_by_day:
            revenue_by_day[day] += total

    return [{"date": day.isoformat(), "revenue": revenue} for day, revenue in revenue_by_day.items()]
