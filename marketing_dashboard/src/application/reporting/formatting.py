"""Number formatting for the dashboard table and charts."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any

CURRENCY_SYMBOL = "₹"
_DECIMAL_CONTEXT = Context(prec=64)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    number = float(value)
    return number == 0 or math.isnan(number)


def half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def group_en_in(value: float, max_fraction_digits: int = 3) -> str:
    """Digit grouping in the en-IN style: 1234567.5 -> '12,34,567.5'."""
    if not math.isfinite(value):
        return str(value)
    step = Decimal(1).scaleb(-max_fraction_digits)
    rounded = Decimal(repr(abs(value))).quantize(step, rounding=ROUND_HALF_UP, context=_DECIMAL_CONTEXT)
    text = format(rounded, "f")
    integer_part, _, fraction = text.partition(".")
    fraction = fraction.rstrip("0")
    is_zero = not integer_part.strip("0") and not fraction
    sign = "-" if value < 0 and not is_zero else ""
    grouped = _group_indian(integer_part)
    if fraction:
        return f"{sign}{grouped}.{fraction}"
    return f"{sign}{grouped}"


def fmt_money(value: float | None) -> str:
    if _is_blank(value):
        return "-"
    amount = float(value)  # type: ignore[arg-type]
    if amount >= 1_000_000:
        return f"{CURRENCY_SYMBOL}{amount / 1_000_000:.2f} M"
    if amount >= 1_000:
        return f"{CURRENCY_SYMBOL}{amount / 1_000:.2f} K"
    return f"{CURRENCY_SYMBOL}{amount:.2f}"


def fmt_number(value: float | None) -> str:
    if _is_blank(value):
        return "-"
    return group_en_in(float(value))  # type: ignore[arg-type]


def fmt_pct(value: float | None) -> str:
    if _is_blank(value):
        return "-"
    return f"{float(value):.2f}%"  # type: ignore[arg-type]


# Chart axis and tooltip formatters render zero as a value, never as '-'.


def fmt_axis_millions(value: float | None) -> str:
    if _is_blank(value):
        return "0"
    return f"{float(value) / 1_000_000:.2f}M"  # type: ignore[arg-type]


def fmt_axis_count(value: float | None) -> str:
    if _is_blank(value):
        return "0"
    return group_en_in(half_up(float(value)), max_fraction_digits=0)  # type: ignore[arg-type]


def fmt_axis_pct(value: float | None) -> str:
    if _is_blank(value):
        return "0%"
    return f"{float(value):.2f}%"  # type: ignore[arg-type]


def fmt_share_pct(value: float | None) -> str:
    number = 0.0 if value is None else float(value)
    if math.isnan(number):
        number = 0.0
    return f"{number:.2f}%"
