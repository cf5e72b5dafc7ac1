# Overview: Service-layer operations for point balances and the points ledger.

"""
Points Ledger Service

INVARIANTS:
- users.points_balance never goes negative
- every balance change appends exactly one PointsTransaction
- callers own the transaction: these helpers flush but never commit, so a
  debit and whatever it pays for (a voucher) persist together or not at all
"""

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import InsufficientPoints, UserNotFound, ValidationError
from ..models import PointsTransaction, User
from ..models.points import POINTS_ADJUST, POINTS_EARN, POINTS_REDEEM
from .concurrency import begin_write, lock_for_update, run_with_retry


def lock_user(user_id: int) -> User:
    user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
    if not user:
        raise UserNotFound(f"User {user_id} not found")
    return user


def _append(user: User, transaction_type: str, points: int, occurred_at: datetime, **refs) -> PointsTransaction:
    txn = PointsTransaction(
        user_id=user.id,
        transaction_type=transaction_type,
        points=points,
        balance_after=user.points_balance,
        occurred_at=occurred_at,
        **refs,
    )
    db.session.add(txn)
    db.session.flush()
    return txn


def credit_points(user: User, points: int, *, occurred_at: datetime, order_id: int | None = None,
                  reason: str | None = None) -> PointsTransaction:
    if points < 0:
        raise ValidationError("Cannot credit a negative number of points")
    user.points_balance += points
    return _append(user, POINTS_EARN, points, occurred_at, order_id=order_id, reason=reason)


def debit_points(user: User, points: int, *, occurred_at: datetime, voucher_id: int | None = None,
                 reason: str | None = None) -> PointsTransaction:
    if points <= 0:
        raise ValidationError("Points to debit must be positive")
    if user.points_balance < points:
        raise InsufficientPoints(
            "Insufficient points",
            details={"points_balance": user.points_balance, "points_required": points},
        )
    user.points_balance -= points
    return _append(user, POINTS_REDEEM, -points, occurred_at, voucher_id=voucher_id, reason=reason)


def adjust_points(user_id: int, delta: int, reason: str, *, occurred_at: datetime) -> PointsTransaction:
    """Manual admin correction; committed on its own."""
    if delta == 0:
        raise ValidationError("Adjustment must be non-zero")
    if not reason or not reason.strip():
        raise ValidationError("Adjustment reason is required")

    def _op():
        begin_write()
        user = lock_user(user_id)
        if user.points_balance + delta < 0:
            raise InsufficientPoints(
                "Adjustment would make the balance negative",
                details={"points_balance": user.points_balance, "delta": delta},
            )
        user.points_balance += delta
        txn = _append(user, POINTS_ADJUST, delta, occurred_at, reason=reason.strip())
        db.session.commit()
        return txn

    return run_with_retry(_op)


def get_points_history(user_id: int, limit: int = 50) -> list[PointsTransaction]:
    return (
        db.session.query(PointsTransaction)
        .filter_by(user_id=user_id)
        .order_by(PointsTransaction.occurred_at.desc(), PointsTransaction.id.desc())
        .limit(limit)
        .all()
    )
