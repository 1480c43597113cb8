from __future__ import annotations
from datetime import datetime
from decimal import Decimal

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import parse_decimal
from .time_utils import parse_iso_datetime


# Maximum price: 9,999,999,999.99 fits Numeric(12, 2)
MAX_PRICE = Decimal("9999999999.99")
MAX_BATCH_QUANTITY = 10_000

# Keys the server owns on an order; clients can never set them
ORDER_RESERVED_FIELDS = {"id", "kind", "created_at", "updated_at", "createdAt", "updatedAt", "version_id"}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Money: numbers or numeric strings, at most two decimal places
    if isinstance(coltype, Numeric):
        amount = parse_decimal(value)
        if amount is None:
            raise ValidationError(f"{col.key} must be a number")
        if amount.as_tuple().exponent < -2:
            raise ValidationError(f"{col.key} cannot have more than 2 decimal places")
        return amount

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "y")
        return bool(value)

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _enforce_price(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        price = patch[key]
        if price < 0:
            raise ValidationError(f"{key} must be >= 0")
        if price > MAX_PRICE:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE}")


def enforce_rules_batch(patch: dict) -> None:
    _enforce_price(patch, "cost_price")
    _enforce_price(patch, "selling_price")

    quantity = patch.get("quantity")
    if quantity is not None and not (1 <= quantity <= MAX_BATCH_QUANTITY):
        raise ValidationError(f"quantity must be between 1 and {MAX_BATCH_QUANTITY}")

    base_code = patch.get("base_code")
    if base_code is not None and any(ch.isspace() for ch in base_code):
        raise ValidationError("base_code cannot contain whitespace")


def enforce_rules_defect(patch: dict) -> None:
    if "status" in patch:
        raise ValidationError("status is managed by order allocation")


# =============================================================================
# ORDER LINE ITEMS
# =============================================================================
#
# Upstream order-entry forms are inconsistent about field naming, so line items
# are accepted under a few aliases and normalized to canonical snake_case keys.
# Unknown keys are preserved verbatim (ledger derivation reads legacy price
# aliases from them).

def _first_present(item: dict, *keys: str):
    for key in keys:
        if key in item and item[key] is not None and item[key] != "":
            return item[key]
    return None


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def normalize_order_item(raw: Any, index: int) -> dict:
    """One line item -> dict with canonical id/product_id/qty/is_defective/defect_id/barcodes."""
    where = f"items[{index}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{where} must be an object")

    item = dict(raw)

    is_defective = _truthy(_first_present(item, "is_defective", "isDefective") or False)
    defect_id = _first_present(item, "defect_id", "defectId")
    item.pop("isDefective", None)
    item.pop("defectId", None)
    item["is_defective"] = bool(is_defective and defect_id)
    item["defect_id"] = str(defect_id).strip() if item["is_defective"] else None

    product_id = _first_present(item, "product_id", "productId")
    item.pop("productId", None)
    if product_id is None and not item["is_defective"]:
        raise ValidationError(f"{where}.product_id is required")
    item["product_id"] = str(product_id).strip() if product_id is not None else None

    raw_qty = _first_present(item, "qty", "quantity")
    qty = 1 if raw_qty is None else _coerce_int(f"{where}.qty", raw_qty)
    if qty <= 0:
        raise ValidationError(f"{where}.qty must be > 0")
    if item["is_defective"] and qty != 1:
        raise ValidationError(f"{where}.qty must be 1 for a defective item")
    item["qty"] = qty

    if item["is_defective"]:
        price = parse_decimal(item.get("price"))
        if price is None or price < 0:
            raise ValidationError(f"{where}.price is required for a defective item")

    barcodes = item.get("barcodes")
    if barcodes is None:
        item["barcodes"] = []
    elif isinstance(barcodes, list) and all(isinstance(b, str) and b.strip() for b in barcodes):
        item["barcodes"] = [b.strip() for b in barcodes]
    else:
        raise ValidationError(f"{where}.barcodes must be a list of barcode strings")

    if item.get("id") is not None:
        item["id"] = str(item["id"])

    return item


def normalize_order_items(raw_items: Any) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")
    return [normalize_order_item(raw, i) for i, raw in enumerate(raw_items)]


def split_order_payload(payload: Any, *, partial: bool) -> tuple[list[dict] | None, dict]:
    """
    Split an order/sale payload into (normalized items, remaining fields).

    `products` is accepted as a legacy alias of `items`. On create, items are
    required; on update, items are None when the client did not send them.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    fields = {k: v for k, v in payload.items() if k not in ORDER_RESERVED_FIELDS}
    raw_items = fields.pop("items", None)
    legacy_items = fields.pop("products", None)
    if raw_items is None:
        raw_items = legacy_items

    if raw_items is None:
        if not partial:
            raise ValidationError("Missing required fields: items")
        return None, fields

    return normalize_order_items(raw_items), fields


def _normalize_removal(raw: Any, index: int) -> dict:
    where = f"removed[{index}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{where} must be an object")

    line_id = _first_present(raw, "line_id", "lineId", "id")
    product_id = _first_present(raw, "product_id", "productId")
    if line_id is None and product_id is None:
        raise ValidationError(f"{where} needs a line_id or product_id")

    raw_qty = _first_present(raw, "qty", "quantity")
    qty = None if raw_qty is None else _coerce_int(f"{where}.qty", raw_qty)
    if qty is not None and qty <= 0:
        raise ValidationError(f"{where}.qty must be > 0")

    return {
        "line_id": str(line_id) if line_id is not None else None,
        "product_id": str(product_id).strip() if product_id is not None else None,
        "qty": qty,
    }


def split_exchange_payload(payload: Any) -> tuple[int, list[dict], list[dict]]:
    """
    Exchange payload -> (order id, removals, normalized replacement lines).

    Removals name a line by id or by product; a missing qty removes the whole
    line. `removedProducts`/`replacementProducts` are accepted as aliases.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw_id = _first_present(payload, "order_id", "orderId", "id")
    if raw_id is None:
        raise ValidationError("Missing required fields: order_id")
    order_id = _coerce_int("order_id", raw_id)

    removed = _first_present(payload, "removed", "removedProducts")
    replacements = _first_present(payload, "replacements", "replacementProducts")
    removed = [] if removed is None else removed
    replacements = [] if replacements is None else replacements
    if not isinstance(removed, list) or not isinstance(replacements, list):
        raise ValidationError("removed and replacements must be lists")
    if not removed and not replacements:
        raise ValidationError("An exchange needs at least one removed or replacement line")

    return (
        order_id,
        [_normalize_removal(raw, i) for i, raw in enumerate(removed)],
        [normalize_order_item(raw, i) for i, raw in enumerate(replacements)],
    )
