from datetime import timedelta

import pytest

from pointhub.errors import UserNotFound, ValidationError
from pointhub.services.catalog_service import build_cart_item
from pointhub.services.order_service import checkout, confirm_payment
from pointhub.services.stats_service import (
    calculate_next_voucher_progress,
    get_dashboard_kpis,
    get_revenue_data,
    get_user_stats,
)
from pointhub.services.voucher_service import redeem_voucher


def test_progress_toward_next_tier():
    progress = calculate_next_voucher_progress(150)
    assert progress.next_tier.points_cost == 200
    assert progress.points_needed == 200
    assert progress.percent_complete == 75.0


def test_progress_from_zero():
    progress = calculate_next_voucher_progress(0)
    assert progress.next_tier.points_cost == 100
    assert progress.percent_complete == 0.0


def test_progress_at_exact_tier_cost_moves_to_next_tier():
    assert calculate_next_voucher_progress(100).next_tier.points_cost == 200


def test_progress_caps_at_highest_tier():
    progress = calculate_next_voucher_progress(650)
    assert progress.next_tier.points_cost == 500
    assert progress.percent_complete == 100.0
    assert progress.to_dict()["next_tier"]["value_rp"] == 300000


def test_user_stats_count_paid_orders_only(campaign, shopper, shopper_ctx, products):
    paid = checkout([build_cart_item(products[1].id)], ctx=shopper_ctx)
    checkout([build_cart_item(products[0].id)], ctx=shopper_ctx)
    confirm_payment(paid.id, ctx=shopper_ctx)

    stats = get_user_stats(shopper.id)
    assert stats.points_balance == 165
    assert stats.total_orders == 1
    assert stats.lifetime_spent == 150000
    assert stats.next_voucher_progress.next_tier.points_cost == 200
    assert stats.to_dict()["next_voucher_progress"]["current_points"] == 165


def test_user_stats_for_new_user(other_shopper):
    stats = get_user_stats(other_shopper.id)
    assert stats.total_orders == 0
    assert stats.lifetime_spent == 0


def test_user_stats_unknown_user(db_session):
    with pytest.raises(UserNotFound):
        get_user_stats(12345)


def test_dashboard_kpis(campaign, shopper, other_shopper, cashier, shopper_ctx, products):
    voucher = redeem_voucher(shopper.id, 100, ctx=shopper_ctx)
    first = checkout([build_cart_item(products[1].id)], voucher.code, ctx=shopper_ctx)
    second = checkout([build_cart_item(products[2].id)], ctx=shopper_ctx.for_user(other_shopper))
    checkout([build_cart_item(products[0].id)], ctx=shopper_ctx)
    confirm_payment(first.id, ctx=shopper_ctx)
    confirm_payment(second.id, ctx=shopper_ctx)

    kpis = get_dashboard_kpis()
    assert kpis == {
        "total_revenue": 145000,
        "active_users": 2,
        "vouchers_redeemed": 1,
        "avg_transaction": 72500,
    }


def test_dashboard_kpis_empty(db_session):
    assert get_dashboard_kpis()["avg_transaction"] == 0


def test_revenue_series_by_paid_date(campaign, shopper_ctx, products, clock):
    today = clock().date()
    early = checkout([build_cart_item(products[1].id)], ctx=shopper_ctx)
    confirm_payment(early.id, ctx=shopper_ctx)

    clock.advance(timedelta(days=2))
    late = checkout([build_cart_item(products[0].id)], ctx=shopper_ctx)
    checkout([build_cart_item(products[2].id)], ctx=shopper_ctx)
    confirm_payment(late.id, ctx=shopper_ctx)

    series = get_revenue_data(3, ctx=shopper_ctx)
    assert series == [
        {"date": today.isoformat(), "revenue": 150000},
        {"date": (today + timedelta(days=1)).isoformat(), "revenue": 0},
        {"date": (today + timedelta(days=2)).isoformat(), "revenue": 28000},
    ]

    assert [point["revenue"] for point in get_revenue_data(1, ctx=shopper_ctx)] == [28000]


def test_revenue_series_rejects_bad_window(db_session, ctx):
    with pytest.raises(ValidationError):
        get_revenue_data(0, ctx=ctx)
