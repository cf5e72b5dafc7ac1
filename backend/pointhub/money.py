"""
Integer-rupiah helpers.

Rupiah has no fractional unit in practice, so every amount in PointHub is an
``int``. Division always floors, and only integer arithmetic is used so that
no float rounding leaks into totals or point counts.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal


def percent_of(amount: int, pct: int) -> int:
    """floor(amount * pct / 100) without going through floats."""
    return (amount * pct) // 100


def floor_div(amount: int, per: int) -> int:
    if per <= 0:
        raise ValueError("divisor must be positive")
    return amount // per


def _group_thousands(amount: int) -> str:
    return f"{amount:,}".replace(",", ".")


def format_rupiah(amount: int) -> str:
    """150000 -> 'Rp 150.000' (id-ID grouping, no decimals)."""
    sign = "-" if amount < 0 else ""
    return f"{sign}Rp {_group_thousands(abs(amount))}"


def format_rupiah_compact(amount: int) -> str:
    """Short labels for dashboards: 'Rp 1.5jt', 'Rp 150rb'. Halves round up."""
    if amount >= 1_000_000:
        millions = (Decimal(amount) / 1_000_000).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return f"Rp {millions}jt"
    if amount >= 1_000:
        thousands = (Decimal(amount) / 1_000).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return f"Rp {thousands}rb"
    return format_rupiah(amount)


def parse_rupiah(value: str) -> int:
    """Keep the digits only; 'Rp 150.000' -> 150000, '' -> 0."""
    digits = re.sub(r"[^0-9]", "", value or "")
    return int(digits) if digits else 0
