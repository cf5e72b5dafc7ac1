# backend/pointhub/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, default))


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pointhub.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pointhub.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Campaign defaults, used when the campaign record is first created
    POINTHUB_DEFAULT_ACCRUAL_PER = _env_int("POINTHUB_DEFAULT_ACCRUAL_PER", 10000)
    POINTHUB_DEFAULT_REDEEM_VALUE = _env_int("POINTHUB_DEFAULT_REDEEM_VALUE", 500)
    POINTHUB_DEFAULT_DISCOUNT_CAP_PCT = _env_int("POINTHUB_DEFAULT_DISCOUNT_CAP_PCT", 50)
    POINTHUB_DEFAULT_EXPIRY_DAYS = _env_int("POINTHUB_DEFAULT_EXPIRY_DAYS", 90)

    # Voucher issuance/redemption is refused while the campaign is inactive
    POINTHUB_REQUIRE_ACTIVE_CAMPAIGN = os.environ.get("POINTHUB_REQUIRE_ACTIVE_CAMPAIGN", "true").lower() == "true"

    # Fresh codes drawn before giving up on a unique voucher code
    POINTHUB_VOUCHER_CODE_ATTEMPTS = _env_int("POINTHUB_VOUCHER_CODE_ATTEMPTS", 10)

    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Level for app.logger (voucher/order transitions are logged at INFO)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
