"""
Order Service - orders and POS sales end to end.

Two phases per operation:
  1. primary: validate, mutate order + units/defects, commit (all-or-nothing)
  2. secondary: ledger sync in its own transaction; failures are logged and
     reported on the result but never unwind phase 1 (reconcile repairs them)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app

from ..errors import LedgerSyncError, NotFoundError, ValidationError
from ..extensions import db
from ..models import LedgerEntry, Order
from ..models.orders import ORDER_KIND_ORDER, ORDER_KINDS, ORDER_KIND_SALE
from ..money import to_money_str
from ..time_utils import to_utc_z, utcnow
from ..validation import split_exchange_payload, split_order_payload
from . import ledger_service
from .amount_policy import derive_amount
from .allocation_service import OrderAllocator
from .concurrency import run_with_retry


@dataclass
class OrderResult:
    order: Optional[Order]
    ledger_entry: Optional[LedgerEntry] = None
    ledger_error: Optional[LedgerSyncError] = None
    exchange: Optional[dict] = None

    @property
    def ledger_synced(self) -> bool:
        return self.ledger_error is None

    def ledger_dict(self) -> dict:
        return {
            "synced": self.ledger_synced,
            "entry": self.ledger_entry.to_dict() if self.ledger_entry is not None else None,
            "error": self.ledger_error.to_dict() if self.ledger_error is not None else None,
        }


def _check_kind(kind: str) -> str:
    if kind not in ORDER_KINDS:
        raise ValidationError(f"Unknown order kind: {kind}")
    return kind


def _label(kind: str) -> str:
    return "Sale" if kind == ORDER_KIND_SALE else "Order"


def get_order(order_id: int, kind: str = ORDER_KIND_ORDER) -> Order:
    order = db.session.get(Order, order_id)
    if order is None or order.kind != kind:
        raise NotFoundError(f"{_label(kind)} {order_id} not found", details={"id": order_id})
    return order


def list_orders(kind: str = ORDER_KIND_ORDER) -> list[Order]:
    return (
        db.session.query(Order)
        .filter_by(kind=_check_kind(kind))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def _sync_ledger(action: str, order_id: int, kind: str, sync) -> tuple[Optional[LedgerEntry], Optional[LedgerSyncError]]:
    try:
        return sync(), None
    except Exception as exc:
        current_app.logger.exception("Ledger sync failed after %s of %s %s", action, kind, order_id)
        return None, LedgerSyncError(
            f"{_label(kind)} {order_id} was saved but its ledger entry could not be updated: {exc}",
            details={"id": order_id, "kind": kind, "action": action},
        )


def create_order(payload: dict, kind: str = ORDER_KIND_ORDER) -> OrderResult:
    """Allocate stock for a new order/sale and record its income."""
    _check_kind(kind)
    items, fields = split_order_payload(payload, partial=False)

    def _op():
        order = Order(kind=kind, items=[], data=fields)
        db.session.add(order)
        db.session.flush()

        order.items = OrderAllocator().allocate(order, items)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "%s %s created with %s line(s)", _label(kind), order.id, len(order.items or [])
    )

    entry, error = _sync_ledger(
        "create", order.id, kind,
        lambda: ledger_service.resync_entry(order.to_record(), kind, order.created_at),
    )
    return OrderResult(order=order, ledger_entry=entry, ledger_error=error)


def update_order(order_id: int, payload: dict, kind: str = ORDER_KIND_ORDER) -> OrderResult:
    """
    Merge an edit into an existing order/sale.

    Non-item fields merge into the stored data. When items are sent, the lines
    are diffed against the current allocation (see OrderAllocator.reallocate).
    """
    _check_kind(kind)
    items, fields = split_order_payload(payload, partial=True)

    def _op():
        order = get_order(order_id, kind)
        if fields:
            order.data = {**(order.data or {}), **fields}
        if items is not None:
            order.items = OrderAllocator().reallocate(order, items)
        order.updated_at = utcnow()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("%s %s updated", _label(kind), order.id)

    entry, error = _sync_ledger(
        "update", order.id, kind,
        lambda: ledger_service.resync_entry(order.to_record(), kind, order.created_at),
    )
    return OrderResult(order=order, ledger_entry=entry, ledger_error=error)


def delete_order(order_id: int, kind: str = ORDER_KIND_ORDER) -> OrderResult:
    """Return every unit and defect to stock, delete the order, retract its income."""
    _check_kind(kind)

    def _op():
        order = get_order(order_id, kind)
        released = OrderAllocator().deallocate(order.id)
        db.session.flush()
        db.session.delete(order)
        db.session.commit()
        return released

    released = run_with_retry(_op)
    current_app.logger.info(
        "%s %s deleted (%s unit(s) released, %s defect(s) reverted)",
        _label(kind), order_id, released["units_released"], released["defects_reverted"],
    )

    _, error = _sync_ledger(
        "delete", order_id, kind,
        lambda: ledger_service.remove_entry(order_id, kind),
    )
    return OrderResult(order=None, ledger_entry=None, ledger_error=error)


def _find_line(lines: list[dict], removal: dict) -> Optional[int]:
    for index, line in enumerate(lines):
        if removal["line_id"] is not None:
            if line.get("id") == removal["line_id"]:
                return index
        elif line.get("product_id") == removal["product_id"]:
            return index
    return None


def _exchange_lines(items: list[dict], removed: list[dict], replacements: list[dict]) -> list[dict]:
    """
    Apply removals, then replacements, to a copy of the order's lines.

    A removal at or above the line's qty drops the line, anything less reduces
    it. A replacement for a product already on the order raises that line's qty
    unless it carries its own scanned barcodes or is a defective item.
    """
    lines = [dict(line) for line in items]

    for removal in removed:
        index = _find_line(lines, removal)
        if index is None:
            wanted = removal["line_id"] or removal["product_id"]
            raise ValidationError(f"No line {wanted} on this order", details={"removed": removal})
        if removal["qty"] is None or removal["qty"] >= lines[index]["qty"]:
            del lines[index]
        else:
            lines[index]["qty"] -= removal["qty"]

    for replacement in replacements:
        merge_into = None
        if not replacement["is_defective"] and not replacement["barcodes"]:
            merge_into = _find_line(lines, {"line_id": None, "product_id": replacement["product_id"]})
        if merge_into is None or lines[merge_into].get("is_defective"):
            lines.append(dict(replacement))
        else:
            lines[merge_into]["qty"] += replacement["qty"]

    if not lines:
        raise ValidationError("An exchange cannot remove every line; delete the order instead")
    return lines


def _exchange_note(difference) -> str:
    if difference > 0:
        return "Customer owes additional payment"
    if difference < 0:
        return "Refund to customer"
    return "No payment difference"


def exchange_order(payload: dict, kind: str = ORDER_KIND_ORDER) -> OrderResult:
    """
    Swap some of an order's goods for others.

    Removed units go back to stock and replacements are allocated in the same
    transaction (through OrderAllocator.reallocate). The before/after totals are
    appended to data["exchange_history"] and the income entry is re-derived.
    """
    _check_kind(kind)
    order_id, removed, replacements = split_exchange_payload(payload)

    def _op():
        order = get_order(order_id, kind)
        original_total = derive_amount(order.to_record())

        lines = _exchange_lines(order.items or [], removed, replacements)
        order.items = OrderAllocator().reallocate(order, lines)

        new_total = derive_amount(order.to_record())
        difference = new_total - original_total
        now = utcnow()
        exchange = {
            "date": to_utc_z(now),
            "removed": removed,
            "replacements": [dict(line) for line in replacements],
            "original_total": to_money_str(original_total),
            "new_total": to_money_str(new_total),
            "difference": to_money_str(difference),
            "note": _exchange_note(difference),
        }
        data = dict(order.data or {})
        data["exchange_history"] = [*(data.get("exchange_history") or []), exchange]
        order.data = data
        order.updated_at = now
        db.session.commit()
        return order, exchange

    order, exchange = run_with_retry(_op)
    current_app.logger.info(
        "%s %s exchanged: total %s -> %s", _label(kind), order.id,
        exchange["original_total"], exchange["new_total"],
    )

    entry, error = _sync_ledger(
        "exchange", order.id, kind,
        lambda: ledger_service.resync_entry(order.to_record(), kind, order.created_at),
    )
    return OrderResult(order=order, ledger_entry=entry, ledger_error=error, exchange=exchange)
