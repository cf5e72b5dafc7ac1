# Overview: Service-layer operations for vouchers; issuance, redemption, validation, consumption.

"""
Voucher Lifecycle Service

STATES:
    ACTIVE -> USED      consumed by exactly one order (terminal)
    ACTIVE -> EXPIRED   expires_at has passed (terminal, derived)

Only USED is written to the row. EXPIRED is computed from expires_at every
time a voucher is read, so reads never write and a voucher past its expiry
can never look ACTIVE again.

CONCURRENCY:
- codes are unique at the database level; a collision re-runs the operation
- redemption debits points and inserts the voucher in one transaction
- consumption is a compare-and-swap on ACTIVE guarded by the version column
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..context import EngineContext, resolve
from ..errors import (
    AlreadyUsed,
    ConflictError,
    InvalidTier,
    MinSpendNotMet,
    ValidationError,
    VoucherCodeCollision,
    VoucherExpired,
    VoucherNotFound,
)
from ..extensions import db
from ..models import User, Voucher
from ..models.vouchers import VOUCHER_STATUS_ACTIVE, VOUCHER_STATUS_EXPIRED, VOUCHER_STATUS_USED
from .campaign_service import require_active_campaign
from .concurrency import begin_write, lock_for_update, run_with_retry
from .points_service import debit_points, lock_user


VOUCHER_CODE_PREFIX = "VCH-"
VOUCHER_CODE_LENGTH = 8
VOUCHER_CODE_ALPHABET = string.ascii_uppercase + string.digits

MIN_SPEND_FLOOR_RP = 50000
MIN_SPEND_MULTIPLIER = 2

VALID_VOUCHER_STATUSES = (VOUCHER_STATUS_ACTIVE, VOUCHER_STATUS_USED, VOUCHER_STATUS_EXPIRED)

# Reasons a voucher does not apply at checkout
REASON_NOT_FOUND = "NOT_FOUND"
REASON_USED = "USED"
REASON_EXPIRED = "EXPIRED"
REASON_MIN_SPEND_NOT_MET = "MIN_SPEND_NOT_MET"


# =============================================================================
# TIER CATALOG
# =============================================================================

@dataclass(frozen=True)
class VoucherTier:
    points_cost: int
    value_rp: int

    @property
    def min_spend_rp(self) -> int:
        return calculate_min_spend(self.value_rp)

    def to_dict(self) -> dict:
        return {
            "points_cost": self.points_cost,
            "value_rp": self.value_rp,
            "min_spend_rp": self.min_spend_rp,
        }


VOUCHER_TIERS: tuple[VoucherTier, ...] = (
    VoucherTier(points_cost=100, value_rp=50000),
    VoucherTier(points_cost=200, value_rp=100000),
    VoucherTier(points_cost=500, value_rp=300000),
)


def find_tier(points_cost: int) -> VoucherTier | None:
    for tier in VOUCHER_TIERS:
        if tier.points_cost == points_cost:
            return tier
    return None


# =============================================================================
# RULES
# =============================================================================

def calculate_min_spend(value_rp: int) -> int:
    return max(MIN_SPEND_FLOOR_RP, value_rp * MIN_SPEND_MULTIPLIER)


def calculate_expiry(created_at: datetime, expiry_days: int) -> datetime:
    return created_at + timedelta(days=expiry_days)


def generate_voucher_code(rng) -> str:
    suffix = "".join(rng.choice(VOUCHER_CODE_ALPHABET) for _ in range(VOUCHER_CODE_LENGTH))
    return VOUCHER_CODE_PREFIX + suffix


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


@dataclass(frozen=True)
class VoucherApplication:
    """Outcome of trying a voucher against a subtotal."""
    code: str
    voucher: Voucher | None
    applicable: bool
    reason: str | None = None

    @property
    def value_rp(self) -> int:
        return self.voucher.value_rp if self.applicable and self.voucher else 0

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "applicable": self.applicable,
            "reason": self.reason,
            "value_rp": self.value_rp,
            "min_spend_rp": self.voucher.min_spend_rp if self.voucher else None,
        }


def evaluate_voucher(voucher: Voucher | None, subtotal: int, now: datetime, code: str = "") -> VoucherApplication:
    """A voucher applies when it is ACTIVE right now and subtotal meets min spend."""
    if voucher is None:
        return VoucherApplication(code=code, voucher=None, applicable=False, reason=REASON_NOT_FOUND)
    voucher.observed_at(now)

    status = voucher.effective_status(now)
    if status == VOUCHER_STATUS_USED:
        return VoucherApplication(code=voucher.code, voucher=voucher, applicable=False, reason=REASON_USED)
    if status == VOUCHER_STATUS_EXPIRED:
        return VoucherApplication(code=voucher.code, voucher=voucher, applicable=False, reason=REASON_EXPIRED)
    if subtotal < voucher.min_spend_rp:
        return VoucherApplication(
            code=voucher.code, voucher=voucher, applicable=False, reason=REASON_MIN_SPEND_NOT_MET
        )
    return VoucherApplication(code=voucher.code, voucher=voucher, applicable=True)


# =============================================================================
# QUERIES
# =============================================================================

def validate_voucher(code: str, *, ctx: EngineContext | None = None) -> Voucher | None:
    """
    Look a voucher up by code; None when unknown.

    The returned voucher reports its status as of ctx.now(): a voucher past
    expires_at reads EXPIRED without the row being rewritten.
    """
    ctx = resolve(ctx)
    code = normalize_code(code)
    if not code:
        return None
    voucher = db.session.query(Voucher).filter_by(code=code).first()
    return voucher.observed_at(ctx.now()) if voucher else None


def get_voucher_status(code: str, *, ctx: EngineContext | None = None) -> str | None:
    ctx = resolve(ctx)
    voucher = validate_voucher(code, ctx=ctx)
    return voucher.status if voucher else None


def apply_to_checkout(code: str, subtotal: int, *, ctx: EngineContext | None = None) -> VoucherApplication:
    ctx = resolve(ctx)
    voucher = validate_voucher(code, ctx=ctx)
    return evaluate_voucher(voucher, subtotal, ctx.now(), code=normalize_code(code))


def list_vouchers(user_id: int | None = None, status: str | None = None, *,
                  ctx: EngineContext | None = None) -> list[Voucher]:
    """Vouchers filtered by owner and derived status, newest first."""
    ctx = resolve(ctx)
    now = ctx.now()

    q = db.session.query(Voucher)
    if user_id is not None:
        q = q.filter(Voucher.user_id == user_id)

    if status:
        status = status.upper()
        if status not in VALID_VOUCHER_STATUSES:
            raise ValidationError(f"Invalid voucher status: {status}. Must be one of {list(VALID_VOUCHER_STATUSES)}")
        if status == VOUCHER_STATUS_USED:
            q = q.filter(Voucher.stored_status == VOUCHER_STATUS_USED)
        elif status == VOUCHER_STATUS_EXPIRED:
            q = q.filter(Voucher.stored_status != VOUCHER_STATUS_USED, Voucher.expires_at < now)
        else:
            q = q.filter(Voucher.stored_status != VOUCHER_STATUS_USED, Voucher.expires_at >= now)

    vouchers = q.order_by(Voucher.created_at.desc(), Voucher.id.desc()).all()
    return [voucher.observed_at(now) for voucher in vouchers]


# =============================================================================
# ISSUANCE
# =============================================================================

def _issue_locked(user: User, value_rp: int, campaign, ctx: EngineContext) -> Voucher:
    """Insert a voucher inside the caller's transaction (flush, no commit)."""
    if isinstance(value_rp, bool) or not isinstance(value_rp, int) or value_rp <= 0:
        raise ValidationError("Voucher value must be a positive integer")

    attempts = current_app.config.get("POINTHUB_VOUCHER_CODE_ATTEMPTS", 10)
    code = None
    for _ in range(attempts):
        candidate = generate_voucher_code(ctx.rng)
        if not db.session.query(Voucher.id).filter_by(code=candidate).first():
            code = candidate
            break
    if code is None:
        raise ConflictError("Could not generate a unique voucher code")

    now = ctx.now()
    voucher = Voucher(
        code=code,
        user_id=user.id,
        value_rp=value_rp,
        min_spend_rp=calculate_min_spend(value_rp),
        stored_status=VOUCHER_STATUS_ACTIVE,
        created_at=now,
        expires_at=calculate_expiry(now, campaign.expiry_days),
    )
    db.session.add(voucher)
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Another writer committed the same code between check and insert
        raise VoucherCodeCollision(f"Voucher code {code} already taken") from exc
    return voucher.observed_at(now)


def issue_voucher(user_id: int, value_rp: int, campaign=None, *, ctx: EngineContext | None = None) -> Voucher:
    """Issue a voucher of value_rp to a user (admin grant, no points spent)."""
    ctx = resolve(ctx)

    def _op():
        begin_write()
        active_campaign = require_active_campaign(campaign)
        user = lock_user(user_id)
        voucher = _issue_locked(user, value_rp, active_campaign, ctx)
        db.session.commit()
        return voucher

    voucher = run_with_retry(_op, retry_on=(VoucherCodeCollision,))
    current_app.logger.info("Issued voucher %s (Rp %d) to user %s", voucher.code, voucher.value_rp, user_id)
    return voucher


def redeem_voucher(user_id: int, points_cost: int, *, ctx: EngineContext | None = None) -> Voucher:
    """
    Exchange points for a voucher of the matching tier.

    The debit and the voucher insert commit together; any failure rolls both back.
    """
    ctx = resolve(ctx)
    tier = find_tier(points_cost)
    if tier is None:
        raise InvalidTier(
            f"Invalid points cost: {points_cost}",
            details={"valid_costs": [t.points_cost for t in VOUCHER_TIERS]},
        )

    def _op():
        begin_write()
        campaign = require_active_campaign()
        user = lock_user(user_id)
        txn = debit_points(user, tier.points_cost, occurred_at=ctx.now(), reason=f"Redeem tier {tier.points_cost}")
        voucher = _issue_locked(user, tier.value_rp, campaign, ctx)
        # Link the ledger row to the voucher it paid for
        txn.voucher_id = voucher.id
        db.session.commit()
        return voucher

    voucher = run_with_retry(_op, retry_on=(VoucherCodeCollision,))
    current_app.logger.info(
        "User %s redeemed %d points for voucher %s", user_id, tier.points_cost, voucher.code
    )
    return voucher


# =============================================================================
# CONSUMPTION
# =============================================================================

def _consume_locked(voucher: Voucher, order_id: int, now: datetime) -> Voucher:
    status = voucher.effective_status(now)
    if status == VOUCHER_STATUS_USED:
        raise AlreadyUsed(
            f"Voucher {voucher.code} was already used",
            details={"order_id": voucher.order_id},
        )
    if status == VOUCHER_STATUS_EXPIRED:
        raise VoucherExpired(f"Voucher {voucher.code} has expired")

    voucher.stored_status = VOUCHER_STATUS_USED
    voucher.used_at = now
    voucher.order_id = order_id
    db.session.flush()
    return voucher.observed_at(now)


def lock_voucher(code: str) -> Voucher:
    voucher = lock_for_update(db.session.query(Voucher).filter_by(code=normalize_code(code))).first()
    if not voucher:
        raise VoucherNotFound(f"Voucher {code} not found")
    return voucher


def consume_voucher(code: str, order_id: int, *, ctx: EngineContext | None = None) -> Voucher:
    """Mark an ACTIVE voucher as USED by order_id."""
    ctx = resolve(ctx)

    def _op():
        begin_write()
        voucher = _consume_locked(lock_voucher(code), order_id, ctx.now())
        db.session.commit()
        return voucher

    voucher = run_with_retry(_op)
    current_app.logger.info("Voucher %s consumed by order %s", voucher.code, order_id)
    return voucher


def require_applicable(application: VoucherApplication) -> Voucher:
    """Raise the typed error matching a non-applicable voucher."""
    if application.applicable:
        return application.voucher
    if application.reason == REASON_NOT_FOUND:
        raise VoucherNotFound(f"Voucher {application.code} not found")
    if application.reason == REASON_USED:
        raise AlreadyUsed(f"Voucher {application.code} was already used")
    if application.reason == REASON_EXPIRED:
        raise VoucherExpired(f"Voucher {application.code} has expired")
    raise MinSpendNotMet(
        f"Voucher {application.code} requires a minimum spend of Rp {application.voucher.min_spend_rp}",
        details={"min_spend_rp": application.voucher.min_spend_rp},
    )
