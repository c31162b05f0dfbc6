"""Rounding, parsing and display rules for money amounts."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from shopbill.app.core.config import settings

Q = Decimal("0.0001")
DISPLAY_Q = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Quantize to storage precision (4 places, half-up)."""
    return Decimal(str(value)).quantize(Q, rounding=ROUND_HALF_UP)


def parse_amount(raw: object) -> Decimal | None:
    """Interpret operator input as an amount.

    Returns None for anything that is not a finite number, so callers can
    treat "not a number" uniformly whether it came from JSON or a text box.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    if not value.is_finite():
        return None
    return value


def total_after_discount(subtotal: Decimal, discount: Decimal) -> Decimal:
    """Amount owed; a discount larger than the subtotal clamps to zero."""
    return max(ZERO, subtotal - discount)


def _group_indian(digits: str) -> str:
    # 1234567 -> 12,34,567
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


def format_currency(amount: object, symbol: str | None = None) -> str:
    """Render an amount for display: ``₹1,23,456.5``.

    Uses Indian digit grouping and between zero and two fraction digits.
    Missing or non-numeric input renders as zero.
    """
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    value = parse_amount(amount)
    if value is None:
        return f"{symbol}0"

    rounded = value.quantize(DISPLAY_Q, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    integer, _, fraction = f"{abs(rounded):.2f}".partition(".")
    fraction = fraction.rstrip("0")
    text = f"{sign}{symbol}{_group_indian(integer)}"
    if fraction:
        text += f".{fraction}"
    return text
