# Overview: Demo data bootstrap and reset for local development.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, User
from .campaign_service import ensure_default_campaign
from .user_service import get_user_by_email, register_user


DEMO_PASSWORD = "password"

DEMO_USERS = [
    {"email": "admin@demo.io", "role": "admin", "points_balance": 0, "outlet_id": None},
    {"email": "pos@demo.io", "role": "pos", "points_balance": 0, "outlet_id": "outlet-jakarta-a"},
    {"email": "hanif@demo.io", "role": "user", "points_balance": 150, "outlet_id": None},
]

DEMO_PRODUCTS = [
    {"name": "Kopi Susu Gula Aren", "price": 28000, "stock": 120, "category": "Beverages"},
    {"name": "Es Teh Manis", "price": 12000, "stock": 200, "category": "Beverages"},
    {"name": "Nasi Goreng Spesial", "price": 45000, "stock": 60, "category": "Food"},
    {"name": "Mie Ayam Bakso", "price": 35000, "stock": 80, "category": "Food"},
    {"name": "Roti Bakar Cokelat Keju", "price": 25000, "stock": 50, "category": "Snacks"},
    {"name": "Tumbler PointHub", "price": 150000, "stock": 25, "category": "Merchandise"},
    {"name": "Kaos PointHub", "price": 120000, "stock": 40, "category": "Merchandise"},
    {"name": "Biji Kopi Arabika Gayo 250g", "price": 95000, "stock": 30, "category": "Groceries"},
]


def seed_demo_data() -> dict:
    """
    Idempotent bootstrap: campaign, demo users and products.

    Returns counts of records created on this run.
    """
    created = {"users": 0, "products": 0}
    ensure_default_campaign()

    for account in DEMO_USERS:
        if get_user_by_email(account["email"]):
            continue
        register_user(
            email=account["email"],
            password=DEMO_PASSWORD,
            role=account["role"],
            outlet_id=account["outlet_id"],
            points_balance=account["points_balance"],
        )
        created["users"] += 1

    if db.session.query(Product.id).first() is None:
        for fields in DEMO_PRODUCTS:
            db.session.add(Product(**fields))
            created["products"] += 1
        db.session.commit()

    current_app.logger.info("Seeded demo data: %s", created)
    return created


def wipe_all_data() -> None:
    """DEV/TEST only: delete every row, children first."""
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()


def reset_demo_data() -> dict:
    wipe_all_data()
    return seed_demo_data()


def demo_accounts() -> list[User]:
    emails = [account["email"] for account in DEMO_USERS]
    return db.session.query(User).filter(User.email.in_(emails)).order_by(User.id).all()
