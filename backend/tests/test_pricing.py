"""
Pricing engine rules: subtotal, capped voucher discount, total and points.
"""

import pytest

from pointhub.errors import ValidationError
from pointhub.models import Campaign
from pointhub.services.pricing_service import (
    CartItem,
    calculate_points_earned,
    calculate_subtotal,
    calculate_voucher_discount,
    preview_price,
)


def _campaign(**overrides):
    values = dict(accrual_per=10000, discount_cap_pct=50, expiry_days=90, redeem_value=500, is_active=True)
    values.update(overrides)
    return Campaign(**values)


def _item(price, quantity=1, product_id=1):
    return CartItem(product_id=product_id, product_name=f"Item {product_id}", price=price, quantity=quantity)


def test_subtotal_sums_price_times_quantity():
    cart = [_item(28000, 2, 1), _item(45000, 1, 2)]
    assert calculate_subtotal(cart) == 101000


def test_discount_is_capped_by_percentage_of_subtotal():
    preview = preview_price([_item(100000)], 80000, _campaign())
    assert preview.subtotal == 100000
    assert preview.voucher_discount == 50000
    assert preview.discount_capped is True
    assert preview.total == 50000
    assert preview.points_to_earn == 5


def test_discount_below_cap_is_not_capped():
    discount, capped = calculate_voucher_discount(200000, 50000, 50)
    assert discount == 50000
    assert capped is False


def test_points_floor_total_by_accrual():
    assert calculate_points_earned(55000, 10000) == 5
    assert calculate_points_earned(9999, 10000) == 0


def test_preview_without_voucher():
    preview = preview_price([_item(55000)], None, _campaign())
    assert preview.voucher_discount == 0
    assert preview.discount_capped is False
    assert preview.total == 55000
    assert preview.points_to_earn == 5


def test_zero_voucher_value_gives_no_discount():
    preview = preview_price([_item(55000)], 0, _campaign())
    assert preview.voucher_discount == 0
    assert preview.total == 55000


def test_empty_cart_prices_to_zero():
    preview = preview_price([], 50000, _campaign())
    assert preview.subtotal == 0
    assert preview.voucher_discount == 0
    assert preview.total == 0
    assert preview.points_to_earn == 0


def test_zero_cap_disables_discount():
    preview = preview_price([_item(100000)], 50000, _campaign(discount_cap_pct=0))
    assert preview.voucher_discount == 0
    assert preview.discount_capped is True
    assert preview.total == 100000


def test_total_is_never_negative():
    preview = preview_price([_item(1000)], 300000, _campaign(discount_cap_pct=100))
    assert preview.voucher_discount == 1000
    assert preview.total == 0


def test_preview_is_deterministic():
    cart = [_item(28000, 3), _item(150000, 1, 2)]
    campaign = _campaign()
    assert preview_price(cart, 100000, campaign) == preview_price(cart, 100000, campaign)


@pytest.mark.parametrize("price,quantity", [(1000, 0), (1000, -1), (-5, 1), (10.5, 1)])
def test_invalid_cart_lines_are_rejected(price, quantity):
    with pytest.raises(ValidationError):
        calculate_subtotal([_item(price, quantity)])


def test_cart_item_from_dict_requires_fields():
    item = CartItem.from_dict({"product_id": 3, "product_name": "Es Teh", "price": 12000, "quantity": 2})
    assert item.line_total == 24000
    assert item.to_dict()["product_name"] == "Es Teh"

    with pytest.raises(ValidationError):
        CartItem.from_dict({"product_id": 3, "price": 12000})
