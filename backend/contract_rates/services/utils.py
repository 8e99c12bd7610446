from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


def d_or_none(val) -> Optional[Decimal]:
    """Like d(), but keeps None/blank/garbage as None."""
    if val is None or val == "":
        return None
    try:
        return d(val)
    except (InvalidOperation, ValueError):
        return None


def to_count(val: Any) -> int:
    """Lenient non-negative integer from user-entered form data ("3", 3.0, None, "abc")."""
    if val is None or isinstance(val, bool):
        return 0
    if isinstance(val, int):
        return max(val, 0)
    try:
        # parseInt-style: "10 units" -> 10
        text = str(val).strip()
        digits = ""
        for ch in text:
            if ch.isdigit():
                digits += ch
            elif digits or ch not in "+ ":
                break
        if digits:
            return int(digits)
        return max(int(Decimal(text)), 0)
    except (InvalidOperation, ValueError, OverflowError):
        return 0


def format_amount(amount: Decimal, currency: str = "PHP") -> str:
    """Display form used in rule breakdowns, e.g. P4,500 or USD 12.50."""
    amount = d(amount)
    if amount == amount.to_integral_value():
        text = f"{amount:,.0f}"
    else:
        text = f"{amount.quantize(TWOPLACES):,}"
    if currency == "PHP":
        return f"P{text}"
    return f"{currency} {text}"
