# Overview: Flask CLI command groups for bootstrap, campaign admin and manual order triggers.

# backend/pointhub/cli.py
# Commands Legend (run from the repository root):
# - flask --app pointhub system init-db
#   Create all tables (use Flask-Migrate for schema upgrades).
# - flask --app pointhub system seed [--reset --yes]
#   Idempotent demo bootstrap: campaign, demo users, products.
#
# Campaign:
# - flask --app pointhub campaign show
# - flask --app pointhub campaign update --accrual-per 10000 --discount-cap-pct 50 --expiry-days 90 --active/--inactive
#
# Orders (payment confirmation is an external trigger; this is the manual one):
# - flask --app pointhub orders list [--user-email hanif@demo.io] [--status PENDING]
# - flask --app pointhub orders mark-paid 12
# - flask --app pointhub orders cancel 12
#
# Vouchers:
# - flask --app pointhub vouchers list [--user-email hanif@demo.io] [--status ACTIVE]
# - flask --app pointhub vouchers issue hanif@demo.io 50000
# - flask --app pointhub vouchers redeem hanif@demo.io 100
#
# Users:
# - flask --app pointhub users stats hanif@demo.io
# - flask --app pointhub users adjust-points hanif@demo.io 25 --reason "Goodwill"

import click
from flask.cli import with_appcontext

from .context import EngineContext
from .errors import PointHubError, UserNotFound
from .extensions import db
from .money import format_rupiah
from .services import (
    campaign_service,
    order_service,
    points_service,
    seed_service,
    stats_service,
    user_service,
    voucher_service,
)


def _user_by_email(email: str):
    user = user_service.get_user_by_email(email)
    if not user:
        raise click.ClickException(str(UserNotFound(f"User {email} not found")))
    return user


def _run(func, *args, **kwargs):
    """Call a service and surface typed errors as CLI failures."""
    try:
        return func(*args, **kwargs)
    except PointHubError as exc:
        raise click.ClickException(f"[{exc.code}] {exc.message}")


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and demo data commands."""


@system_group.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables."""
    db.create_all()
    click.echo("Database tables created.")


@system_group.command('seed')
@click.option('--reset', is_flag=True, help='Delete all data before seeding.')
@click.option('--yes', is_flag=True, help='Confirm destructive reset.')
@with_appcontext
def seed_command(reset, yes):
    """Seed the demo campaign, users and products."""
    if reset:
        if not yes:
            raise click.ClickException("--reset deletes all data; pass --yes to confirm")
        created = seed_service.reset_demo_data()
    else:
        created = seed_service.seed_demo_data()
    click.echo(f"Created {created['users']} users and {created['products']} products.")
    for user in seed_service.demo_accounts():
        click.echo(f"  {user.role:<6} {user.email:<20} password={seed_service.DEMO_PASSWORD} points={user.points_balance}")


# =============================================================================
# CAMPAIGN
# =============================================================================

@click.group('campaign')
def campaign_group():
    """Loyalty campaign rules."""


@campaign_group.command('show')
@with_appcontext
def campaign_show_command():
    campaign = _run(campaign_service.require_campaign)
    for key, value in campaign.to_dict().items():
        click.echo(f"{key}: {value}")


@campaign_group.command('update')
@click.option('--name')
@click.option('--accrual-per', type=int, help='Rupiah spent per point earned.')
@click.option('--redeem-value', type=int)
@click.option('--discount-cap-pct', type=int, help='Max voucher discount as % of subtotal.')
@click.option('--expiry-days', type=int, help='Voucher lifetime in days.')
@click.option('--active/--inactive', 'is_active', default=None)
@with_appcontext
def campaign_update_command(name, accrual_per, redeem_value, discount_cap_pct, expiry_days, is_active):
    patch = {
        key: value
        for key, value in {
            "name": name,
            "accrual_per": accrual_per,
            "redeem_value": redeem_value,
            "discount_cap_pct": discount_cap_pct,
            "expiry_days": expiry_days,
            "is_active": is_active,
        }.items()
        if value is not None
    }
    if not patch:
        raise click.ClickException("Nothing to update")
    campaign = _run(campaign_service.update_campaign, patch)
    click.echo(f"Campaign updated: {campaign.to_dict()}")


# =============================================================================
# ORDERS
# =============================================================================

@click.group('orders')
def orders_group():
    """Order inspection and manual payment triggers."""


@orders_group.command('list')
@click.option('--user-email')
@click.option('--status')
@click.option('--limit', default=20, show_default=True)
@with_appcontext
def orders_list_command(user_email, status, limit):
    user_id = _user_by_email(user_email).id if user_email else None
    orders = _run(order_service.list_orders, user_id=user_id, status=status)
    for order in orders[:limit]:
        click.echo(
            f"#{order.id:<5} user={order.user_id:<4} {order.status:<9} "
            f"total={format_rupiah(order.total):>14} points={order.points_earned}"
        )


@orders_group.command('mark-paid')
@click.argument('order_id', type=int)
@with_appcontext
def orders_mark_paid_command(order_id):
    """Confirm payment for an order (safe to repeat)."""
    order = _run(order_service.confirm_payment, order_id, ctx=EngineContext())
    click.echo(f"Order #{order.id} is {order.status}; {order.points_earned} points credited to user {order.user_id}.")


@orders_group.command('cancel')
@click.argument('order_id', type=int)
@with_appcontext
def orders_cancel_command(order_id):
    order = _run(order_service.cancel_order, order_id, ctx=EngineContext())
    click.echo(f"Order #{order.id} is {order.status}.")


# =============================================================================
# VOUCHERS
# =============================================================================

@click.group('vouchers')
def vouchers_group():
    """Voucher listing, grants and redemption."""


@vouchers_group.command('list')
@click.option('--user-email')
@click.option('--status', type=click.Choice(['ACTIVE', 'USED', 'EXPIRED'], case_sensitive=False))
@with_appcontext
def vouchers_list_command(user_email, status):
    ctx = EngineContext()
    user_id = _user_by_email(user_email).id if user_email else None
    vouchers = _run(voucher_service.list_vouchers, user_id=user_id, status=status, ctx=ctx)
    now = ctx.now()
    for voucher in vouchers:
        click.echo(
            f"{voucher.code}  user={voucher.user_id:<4} {voucher.effective_status(now):<8} "
            f"value={format_rupiah(voucher.value_rp):>12} min_spend={format_rupiah(voucher.min_spend_rp)}"
        )


@vouchers_group.command('issue')
@click.argument('email')
@click.argument('value_rp', type=int)
@with_appcontext
def vouchers_issue_command(email, value_rp):
    """Grant a voucher without spending points."""
    user = _user_by_email(email)
    voucher = _run(voucher_service.issue_voucher, user.id, value_rp, ctx=EngineContext())
    click.echo(f"Issued {voucher.code} ({format_rupiah(voucher.value_rp)}) to {user.email}.")


@vouchers_group.command('redeem')
@click.argument('email')
@click.argument('points_cost', type=int)
@with_appcontext
def vouchers_redeem_command(email, points_cost):
    user = _user_by_email(email)
    voucher = _run(voucher_service.redeem_voucher, user.id, points_cost, ctx=EngineContext())
    click.echo(f"Redeemed {points_cost} points for {voucher.code} ({format_rupiah(voucher.value_rp)}).")


@vouchers_group.command('tiers')
def vouchers_tiers_command():
    for tier in voucher_service.VOUCHER_TIERS:
        click.echo(
            f"{tier.points_cost:>4} points -> {format_rupiah(tier.value_rp)} "
            f"(min spend {format_rupiah(tier.min_spend_rp)})"
        )


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and point adjustments."""


@users_group.command('stats')
@click.argument('email')
@with_appcontext
def users_stats_command(email):
    user = _user_by_email(email)
    stats = _run(stats_service.get_user_stats, user.id)
    progress = stats.next_voucher_progress
    click.echo(f"{user.email} ({user.role})")
    click.echo(f"  points balance: {stats.points_balance}")
    click.echo(f"  paid orders:    {stats.total_orders}")
    click.echo(f"  lifetime spent: {format_rupiah(stats.lifetime_spent)}")
    click.echo(
        f"  next voucher:   {progress.current_points}/{progress.points_needed} "
        f"({progress.percent_complete:.0f}%)"
    )


@users_group.command('adjust-points')
@click.argument('email')
@click.argument('delta', type=int)
@click.option('--reason', required=True)
@with_appcontext
def users_adjust_points_command(email, delta, reason):
    user = _user_by_email(email)
    txn = _run(points_service.adjust_points, user.id, delta, reason, occurred_at=EngineContext().now())
    click.echo(f"Adjusted {user.email} by {delta}; balance is now {txn.balance_after}.")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(campaign_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(vouchers_group)
    app.cli.add_command(users_group)
