import pytest

from pointhub.errors import EmailAlreadyRegistered, InvalidCredentials, ValidationError
from pointhub.services.user_service import (
    authenticate,
    get_user,
    get_user_by_email,
    list_users,
    register_user,
    update_user,
    verify_password,
)


def test_register_normalizes_email_and_hashes_password(db_session):
    user = register_user("  Budi@Demo.IO ", "rahasia123")

    assert user.email == "budi@demo.io"
    assert user.role == "user"
    assert user.points_balance == 0
    assert user.password_hash != "rahasia123"
    assert verify_password("rahasia123", user.password_hash)


def test_register_duplicate_email_is_case_insensitive(shopper):
    with pytest.raises(EmailAlreadyRegistered):
        register_user("HANIF@demo.io", "password")


@pytest.mark.parametrize("kwargs", [
    {"email": "budi@demo.io", "password": "short"},
    {"email": "not-an-email", "password": "password"},
    {"email": "budi@demo.io", "password": "password", "role": "superuser"},
    {"email": "budi@demo.io", "password": "password", "outlet_id": "outlet-1"},
])
def test_register_rejects_invalid_input(db_session, kwargs):
    with pytest.raises(ValidationError):
        register_user(**kwargs)


def test_authenticate(shopper):
    assert authenticate("Hanif@demo.io", "password").id == shopper.id


def test_authenticate_failures_share_message(shopper):
    with pytest.raises(InvalidCredentials) as wrong_password:
        authenticate("hanif@demo.io", "wrong-password")
    with pytest.raises(InvalidCredentials) as unknown_email:
        authenticate("nobody@demo.io", "password")
    assert wrong_password.value.message == unknown_email.value.message


def test_lookups_return_none(db_session):
    assert get_user(999) is None
    assert get_user_by_email("ghost@demo.io") is None
    assert get_user_by_email("") is None


def test_list_users_by_role(shopper, other_shopper, cashier, admin):
    assert [u.email for u in list_users(role="user")] == ["hanif@demo.io", "sari@demo.io"]
    assert len(list_users()) == 4


def test_update_user(cashier):
    updated = update_user(cashier.id, {"outlet_id": "outlet-bandung-b", "email": "Kasir@Demo.io"})
    assert updated.outlet_id == "outlet-bandung-b"
    assert updated.email == "kasir@demo.io"


def test_update_user_cannot_touch_balance(shopper):
    with pytest.raises(ValidationError):
        update_user(shopper.id, {"points_balance": 9999})


def test_update_user_email_conflict(shopper, other_shopper):
    with pytest.raises(EmailAlreadyRegistered):
        update_user(other_shopper.id, {"email": "hanif@demo.io"})


def test_outlet_requires_pos_role(shopper):
    with pytest.raises(ValidationError):
        update_user(shopper.id, {"outlet_id": "outlet-1"})
