from datetime import datetime

import pytest

from pointhub.errors import InsufficientPoints, UserNotFound, ValidationError
from pointhub.models.points import POINTS_ADJUST
from pointhub.services.points_service import adjust_points, get_points_history
from pointhub.services.stats_service import get_points


WHEN = datetime(2026, 3, 1, 12, 0, 0)


def test_adjust_points_appends_ledger(shopper):
    txn = adjust_points(shopper.id, 25, " Goodwill ", occurred_at=WHEN)

    assert txn.transaction_type == POINTS_ADJUST
    assert txn.points == 25
    assert txn.balance_after == 175
    assert txn.reason == "Goodwill"
    assert get_points(shopper.id) == 175


def test_adjust_points_cannot_go_negative(shopper):
    with pytest.raises(InsufficientPoints):
        adjust_points(shopper.id, -151, "Correction", occurred_at=WHEN)
    assert get_points(shopper.id) == 150


@pytest.mark.parametrize("delta,reason", [(0, "Nothing"), (10, ""), (10, "   ")])
def test_adjust_points_validation(shopper, delta, reason):
    with pytest.raises(ValidationError):
        adjust_points(shopper.id, delta, reason, occurred_at=WHEN)


def test_adjust_unknown_user(db_session):
    with pytest.raises(UserNotFound):
        adjust_points(404, 10, "Typo", occurred_at=WHEN)


def test_points_history_newest_first(shopper):
    adjust_points(shopper.id, 10, "First", occurred_at=WHEN)
    adjust_points(shopper.id, -5, "Second", occurred_at=WHEN.replace(hour=13))

    history = get_points_history(shopper.id)
    assert [t.reason for t in history] == ["Second", "First"]
    assert [t.balance_after for t in history] == [155, 160]
    assert history[0].to_dict()["occurred_at"].endswith("Z")
