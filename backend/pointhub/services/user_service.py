# Overview: Service-layer operations for users; registration, credential check, lookup.

"""
User Directory Service

Credential check only: no sessions or tokens live here. The caller turns the
returned User into an EngineContext for subsequent operations.

SECURITY NOTES:
- Passwords hashed with bcrypt (rounds from BCRYPT_ROUNDS)
- Emails are trimmed and lower-cased; lookups are case-insensitive
- Unknown email and wrong password fail with the same message
"""

from __future__ import annotations

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import EmailAlreadyRegistered, InvalidCredentials, UserNotFound, ValidationError
from ..extensions import db
from ..models import User
from ..validation import ModelValidationPolicy, enforce_rules_user, normalize_email, validate_payload
from .concurrency import run_with_retry


MIN_PASSWORD_LENGTH = 8

USER_POLICY = ModelValidationPolicy(writable_fields={"email", "role", "outlet_id"})


def validate_password_strength(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """Hash password using bcrypt; strength is validated first."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def get_user(user_id: int) -> User | None:
    return db.session.query(User).filter_by(id=user_id).first()


def require_user(user_id: int) -> User:
    user = get_user(user_id)
    if not user:
        raise UserNotFound(f"User {user_id} not found")
    return user


def get_user_by_email(email: str) -> User | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.session.query(User).filter(db.func.lower(User.email) == normalized).first()


def list_users(role: str | None = None) -> list[User]:
    q = db.session.query(User)
    if role:
        q = q.filter_by(role=role)
    return q.order_by(User.id).all()


def register_user(email: str, password: str, role: str = "user", outlet_id: str | None = None,
                  points_balance: int = 0) -> User:
    """
    Create an account.

    points_balance is only for seeding opening balances; it is not
    written to the points ledger.
    """
    patch = validate_payload(
        model=User,
        payload={"email": email, "role": role, "outlet_id": outlet_id},
        policy=USER_POLICY,
        partial=False,
    )
    enforce_rules_user(patch)

    if get_user_by_email(patch["email"]):
        raise EmailAlreadyRegistered("Email already registered", details={"email": patch["email"]})

    user = User(
        email=patch["email"],
        password_hash=hash_password(password),
        role=patch["role"],
        outlet_id=patch.get("outlet_id"),
        points_balance=points_balance,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise EmailAlreadyRegistered("Email already registered", details={"email": patch["email"]}) from exc

    current_app.logger.info("Registered %s user %s", user.role, user.email)
    return user


def authenticate(email: str, password: str) -> User:
    user = get_user_by_email(email)
    if not user or not verify_password(password or "", user.password_hash):
        raise InvalidCredentials("Invalid email or password")
    return user


def update_user(user_id: int, data: dict) -> User:
    """Update profile fields; points_balance is not writable here."""
    patch = validate_payload(model=User, payload=data, policy=USER_POLICY, partial=True)

    def _op():
        user = require_user(user_id)
        enforce_rules_user(patch, current_role=user.role)
        if "email" in patch and patch["email"] != user.email:
            existing = get_user_by_email(patch["email"])
            if existing and existing.id != user.id:
                raise EmailAlreadyRegistered("Email already registered", details={"email": patch["email"]})
        for key, value in patch.items():
            setattr(user, key, value)
        db.session.commit()
        return user

    return run_with_retry(_op)
