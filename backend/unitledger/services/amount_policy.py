"""
Amount derivation for ledger entries.

Upstream order-entry forms never agreed on field names, so the income value of
an order is read through ordered accessor chains. This is part of the ingestion
contract; the order of every chain matters.

    line price : price, sellingPrice, unitPrice, salePrice, amount
    line qty   : qty, quantity, count                      (default 1)
    record     : totalAmount, total, totalCost, grandTotal, amount,
                 then the same names under a nested "amounts" dict

An accessor that finds a missing, unparseable or zero value falls through to
the next one. The record-level chain is only consulted when the line sum is
exactly zero.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from ..money import parse_decimal, quantize_money


Accessor = Callable[[dict], Optional[Decimal]]

ZERO = Decimal("0")
DEFAULT_QTY = Decimal("1")

PRICE_FIELDS = ("price", "sellingPrice", "unitPrice", "salePrice", "amount")
QTY_FIELDS = ("qty", "quantity", "count")
TOTAL_FIELDS = ("totalAmount", "total", "totalCost", "grandTotal", "amount")
LINE_COLLECTIONS = ("items", "products")


def field(name: str) -> Accessor:
    """Accessor for a top-level key."""
    def _get(record: dict) -> Optional[Decimal]:
        return parse_decimal(record.get(name))
    _get.__name__ = f"field_{name}"
    return _get


def nested(container: str, name: str) -> Accessor:
    """Accessor for record[container][name]."""
    def _get(record: dict) -> Optional[Decimal]:
        inner = record.get(container)
        if not isinstance(inner, dict):
            return None
        return parse_decimal(inner.get(name))
    _get.__name__ = f"nested_{container}_{name}"
    return _get


PRICE_ACCESSORS: list[Accessor] = [field(name) for name in PRICE_FIELDS]
QTY_ACCESSORS: list[Accessor] = [field(name) for name in QTY_FIELDS]
TOTAL_ACCESSORS: list[Accessor] = (
    [field(name) for name in TOTAL_FIELDS]
    + [nested("amounts", name) for name in TOTAL_FIELDS]
)


def first_nonzero(record: dict, accessors: Iterable[Accessor], default: Decimal = ZERO) -> Decimal:
    for accessor in accessors:
        value = accessor(record)
        if value is not None and value != ZERO:
            return value
    return default


def line_items(record: dict) -> list[dict]:
    for key in LINE_COLLECTIONS:
        lines = record.get(key)
        if isinstance(lines, list) and lines:
            return [line for line in lines if isinstance(line, dict)]
    return []


def line_amount(line: dict) -> Decimal:
    price = first_nonzero(line, PRICE_ACCESSORS)
    qty = first_nonzero(line, QTY_ACCESSORS, default=DEFAULT_QTY)
    return price * qty


def derive_amount(record: Any) -> Decimal:
    """Income value of an order or sale record, rounded to cents."""
    if not isinstance(record, dict):
        return quantize_money(ZERO)

    total = sum((line_amount(line) for line in line_items(record)), ZERO)
    if total == ZERO:
        total = first_nonzero(record, TOTAL_ACCESSORS)
    return quantize_money(total)
