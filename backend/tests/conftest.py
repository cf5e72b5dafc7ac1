"""
Pytest fixtures for PointHub backend tests.

Provides the application, a wiped database per test, the default campaign,
demo accounts, catalog products and a frozen-clock EngineContext.
"""

import random
from datetime import datetime

import pytest

from pointhub import create_app
from pointhub.context import EngineContext
from pointhub.extensions import db
from pointhub.models import Campaign, Product
from pointhub.services.user_service import register_user


FROZEN_NOW = datetime(2026, 3, 1, 9, 30, 0)


class FrozenClock:
    """Naive-UTC clock the tests can move forward."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta) -> None:
        self.current = self.current + delta


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def campaign(db_session):
    campaign = Campaign(
        name="Default Campaign",
        accrual_per=10000,
        redeem_value=500,
        discount_cap_pct=50,
        expiry_days=90,
        is_active=True,
    )
    db_session.add(campaign)
    db_session.commit()
    return campaign


@pytest.fixture(scope='function')
def shopper(db_session):
    """Regular user with the demo opening balance of 150 points."""
    return register_user("hanif@demo.io", "password", role="user", points_balance=150)


@pytest.fixture(scope='function')
def other_shopper(db_session):
    return register_user("sari@demo.io", "password", role="user")


@pytest.fixture(scope='function')
def cashier(db_session):
    return register_user("pos@demo.io", "password", role="pos", outlet_id="outlet-jakarta-a")


@pytest.fixture(scope='function')
def admin(db_session):
    return register_user("admin@demo.io", "password", role="admin")


@pytest.fixture(scope='function')
def products(db_session):
    items = [
        Product(name="Kopi Susu Gula Aren", price=28000, stock=120, category="Beverages"),
        Product(name="Tumbler PointHub", price=150000, stock=25, category="Merchandise"),
        Product(name="Nasi Goreng Spesial", price=45000, stock=60, category="Food"),
    ]
    db_session.add_all(items)
    db_session.commit()
    return items


@pytest.fixture(scope='function')
def clock():
    return FrozenClock(FROZEN_NOW)


@pytest.fixture(scope='function')
def ctx(clock):
    """Anonymous context with a frozen clock and seeded code generator."""
    return EngineContext(user=None, clock=clock, rng=random.Random(1234))


@pytest.fixture(scope='function')
def shopper_ctx(ctx, shopper):
    return ctx.for_user(shopper)
