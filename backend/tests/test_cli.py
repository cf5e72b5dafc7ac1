"""
Flask CLI commands, invoked through the test CLI runner.
"""

import pytest

from pointhub.context import EngineContext
from pointhub.models import Product, User
from pointhub.services.catalog_service import build_cart_item
from pointhub.services.order_service import checkout
from pointhub.services.stats_service import get_points


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def seeded(runner, db_session):
    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0, result.output
    return result


def test_seed_is_idempotent(runner, seeded, db_session):
    assert "Created 3 users and 8 products." in seeded.output
    assert "hanif@demo.io" in seeded.output

    again = runner.invoke(args=["system", "seed"])
    assert "Created 0 users and 0 products." in again.output
    assert db_session.query(User).count() == 3
    assert db_session.query(Product).count() == 8


def test_seed_reset_requires_confirmation(runner, seeded):
    result = runner.invoke(args=["system", "seed", "--reset"])
    assert result.exit_code != 0
    assert "--yes" in result.output


def test_tiers(runner):
    result = runner.invoke(args=["vouchers", "tiers"])
    assert " 100 points -> Rp 50.000 (min spend Rp 100.000)" in result.output
    assert " 500 points -> Rp 300.000 (min spend Rp 600.000)" in result.output


def test_campaign_show_and_update(runner, seeded):
    result = runner.invoke(args=["campaign", "update", "--accrual-per", "5000", "--inactive"])
    assert result.exit_code == 0, result.output

    shown = runner.invoke(args=["campaign", "show"])
    assert "accrual_per: 5000" in shown.output
    assert "is_active: False" in shown.output


def test_redeem_and_list(runner, seeded):
    result = runner.invoke(args=["vouchers", "redeem", "hanif@demo.io", "100"])
    assert result.exit_code == 0, result.output
    assert "Redeemed 100 points" in result.output

    listed = runner.invoke(args=["vouchers", "list", "--user-email", "hanif@demo.io", "--status", "active"])
    assert "VCH-" in listed.output
    assert "value=   Rp 50.000" in listed.output


def test_redeem_invalid_tier_reports_code(runner, seeded):
    result = runner.invoke(args=["vouchers", "redeem", "hanif@demo.io", "300"])
    assert result.exit_code != 0
    assert "[INVALID_TIER]" in result.output


def test_unknown_email(runner, seeded):
    result = runner.invoke(args=["users", "stats", "nobody@demo.io"])
    assert result.exit_code != 0
    assert "not found" in result.output


def test_mark_paid_is_safe_to_repeat(runner, seeded, db_session):
    hanif = db_session.query(User).filter_by(email="hanif@demo.io").one()
    tumbler = db_session.query(Product).filter_by(name="Tumbler PointHub").one()
    order = checkout([build_cart_item(tumbler.id)], ctx=EngineContext(user=hanif))

    for _ in range(2):
        result = runner.invoke(args=["orders", "mark-paid", str(order.id)])
        assert result.exit_code == 0, result.output
        assert "is PAID; 15 points" in result.output

    assert get_points(hanif.id) == 165

    stats = runner.invoke(args=["users", "stats", "hanif@demo.io"])
    assert "paid orders:    1" in stats.output
    assert "lifetime spent: Rp 150.000" in stats.output


def test_adjust_points(runner, seeded):
    result = runner.invoke(args=["users", "adjust-points", "--reason", "Correction", "--", "hanif@demo.io", "-50"])
    assert result.exit_code == 0, result.output
    assert "balance is now 100" in result.output
