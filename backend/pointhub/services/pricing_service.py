# Overview: Pure checkout pricing; subtotal, capped voucher discount, total, points.

"""
Pricing Engine

WHY: The preview a shopper sees and the totals frozen into an order must be
identical. Both go through preview_price() with the same inputs, and the
function has no side effects, reads no clock and touches no database.

RULES:
- subtotal = sum(price * quantity)
- discount = min(voucher value, floor(subtotal * discount_cap_pct / 100))
- total = subtotal - discount
- points = floor(total / accrual_per)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from ..errors import ValidationError
from ..money import floor_div, percent_of


@dataclass(frozen=True)
class CartItem:
    """Client-held cart line; name and price are snapshots taken at add-time."""
    product_id: int
    product_name: str
    price: int
    quantity: int

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        try:
            return cls(
                product_id=data["product_id"],
                product_name=data["product_name"],
                price=data["price"],
                quantity=data["quantity"],
            )
        except KeyError as exc:
            raise ValidationError(f"Cart item missing field: {exc.args[0]}")


@dataclass(frozen=True)
class PricePreview:
    subtotal: int
    voucher_discount: int
    total: int
    discount_capped: bool
    points_to_earn: int

    def to_dict(self) -> dict:
        return asdict(self)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_cart_items(cart_items: Iterable[CartItem]) -> list[CartItem]:
    items = list(cart_items)
    for item in items:
        if not _is_int(item.price) or item.price < 0:
            raise ValidationError(
                f"Invalid price for {item.product_name!r}: must be a non-negative integer",
                details={"product_id": item.product_id},
            )
        if not _is_int(item.quantity) or item.quantity < 1:
            raise ValidationError(
                f"Invalid quantity for {item.product_name!r}: must be at least 1",
                details={"product_id": item.product_id},
            )
    return items


def calculate_subtotal(cart_items: Iterable[CartItem]) -> int:
    return sum(item.line_total for item in validate_cart_items(cart_items))


def calculate_voucher_discount(subtotal: int, voucher_value_rp: int, discount_cap_pct: int) -> tuple[int, bool]:
    """Return (discount, capped)."""
    max_discount = percent_of(subtotal, discount_cap_pct)
    discount = min(voucher_value_rp, max_discount)
    return discount, discount < voucher_value_rp


def calculate_points_earned(total: int, accrual_per: int) -> int:
    return floor_div(total, accrual_per)


def preview_price(cart_items: Iterable[CartItem], voucher_value_rp: int | None, campaign) -> PricePreview:
    """
    Price a cart against the campaign rules.

    campaign only needs discount_cap_pct and accrual_per attributes.
    accrual_per > 0 is a campaign invariant and is not re-checked here.
    """
    subtotal = calculate_subtotal(cart_items)

    voucher_discount = 0
    discount_capped = False
    if voucher_value_rp and voucher_value_rp > 0:
        voucher_discount, discount_capped = calculate_voucher_discount(
            subtotal, voucher_value_rp, campaign.discount_cap_pct
        )

    total = subtotal - voucher_discount
    return PricePreview(
        subtotal=subtotal,
        voucher_discount=voucher_discount,
        total=total,
        discount_capped=discount_capped,
        points_to_earn=calculate_points_earned(total, campaign.accrual_per),
    )
