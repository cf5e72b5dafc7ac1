from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text

from .errors import ValidationError


# Rp 999.999.999 per unit keeps price * quantity well inside integer columns
MAX_PRICE_RP = 999_999_999

VALID_ROLES = ("admin", "pos", "user")

_INT_PATTERN = re.compile(r"^-?\d+$")
_BOOL_STRINGS = {"true": True, "1": True, "false": False, "0": False}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Which fields a caller may write on a model:
    - writable_fields: allowlist; anything else is rejected outright
    - required_on_create: must be present when partial=False
    """
    writable_fields: frozenset[str] | set[str]
    required_on_create: frozenset[str] | set[str] = field(default_factory=frozenset)


def _coerce_int(key: str, value: Any) -> int:
    # bool is an int subclass; True is not a price
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number of rupiah, not a decimal")
    if isinstance(value, str) and _INT_PATTERN.match(value.strip()):
        return int(value.strip())
    raise ValidationError(f"{key} must be a plain integer")


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOL_STRINGS:
        return _BOOL_STRINGS[value.strip().lower()]
    raise ValidationError(f"{key} must be a boolean")


def _coerce_column(column, value: Any) -> Any:
    if isinstance(column.type, Integer):
        return _coerce_int(column.key, value)
    if isinstance(column.type, Boolean):
        return _coerce_bool(column.key, value)
    if isinstance(column.type, (String, Text)):
        text = str(value).strip()
        if not text and not column.nullable:
            raise ValidationError(f"{column.key} cannot be blank")
        length = getattr(column.type, "length", None)
        if length and len(text) > length:
            raise ValidationError(f"{column.key} exceeds max length {length}")
        return text
    return value


def validate_payload(*, model, payload: dict | None, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Turn a caller-supplied dict into a clean patch for `model`.

    Keys are checked against the policy allowlist and the mapped columns,
    values are coerced by column type (strict integers, booleans, trimmed
    strings bounded by String(n)). partial=False additionally enforces
    required_on_create. Returns only the validated keys.
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload")

    if not partial:
        missing = sorted(set(policy.required_on_create) - set(payload))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {column.key: column for column in model.__mapper__.columns}
    patch: dict = {}
    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce_column(column, raw)
    return patch


def enforce_rules_product(patch: dict) -> None:
    price = patch.get("price")
    if price is not None and not 0 <= price <= MAX_PRICE_RP:
        raise ValidationError(f"price must be between 0 and {MAX_PRICE_RP}")

    stock = patch.get("stock")
    if stock is not None and stock < 0:
        raise ValidationError("stock must be >= 0")


def enforce_rules_campaign(patch: dict) -> None:
    # accrual_per divides every order total
    if "accrual_per" in patch and patch["accrual_per"] <= 0:
        raise ValidationError("accrual_per must be > 0")
    if "discount_cap_pct" in patch and not 0 <= patch["discount_cap_pct"] <= 100:
        raise ValidationError("discount_cap_pct must be between 0 and 100")
    if "expiry_days" in patch and patch["expiry_days"] <= 0:
        raise ValidationError("expiry_days must be > 0")
    if "redeem_value" in patch and patch["redeem_value"] < 0:
        raise ValidationError("redeem_value must be >= 0")


def enforce_rules_user(patch: dict, *, current_role: str | None = None) -> None:
    """Normalizes email in place; outlet_id only makes sense for POS accounts."""
    if "email" in patch:
        patch["email"] = normalize_email(patch["email"])
        if "@" not in patch["email"]:
            raise ValidationError("email must be a valid address")

    if "role" in patch and patch["role"] not in VALID_ROLES:
        raise ValidationError(f"Invalid role: {patch['role']}. Must be one of {list(VALID_ROLES)}")

    if patch.get("outlet_id") and patch.get("role", current_role) != "pos":
        raise ValidationError("outlet_id is only allowed for pos users")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()
