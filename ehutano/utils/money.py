# FILE: ehutano/utils/money.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

MONEY = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY, rounding=ROUND_HALF_UP)


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse till input ("5", "5.00", 5, 5.0) into a Decimal.
    Blank input gives None; anything unparseable raises ValueError.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if not parsed.is_finite():
        raise ValueError(f"Not a number: {value!r}")
    return parsed


def fmt_money(value: Optional[Decimal], currency: str = "") -> str:
    if value is None:
        return ""
    amount = f"{round_money(value):,.2f}"
    return f"{currency} {amount}".strip()
