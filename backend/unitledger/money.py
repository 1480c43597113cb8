from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Tolerant numeric parse used for legacy order payloads.

    - int / float / Decimal -> Decimal
    - "1,200.50", " 100 " -> Decimal (thousands separators and whitespace stripped)
    - None, bools, blank or non-numeric strings, NaN/Infinity -> None
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        s = value.strip().replace(",", "")
        if not s:
            return None
        try:
            result = Decimal(s)
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite():
        return None
    return result


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money_str(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(quantize_money(Decimal(value)))
