# Overview: Ledger Synchronizer; derives income entries from orders/sales and keeps them in lock-step.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import LedgerEntry, Order
from ..models.ledger import BUCKET_EXPENSE, BUCKET_INCOME
from ..models.orders import ORDER_KIND_SALE
from ..money import to_money_str
from ..time_utils import first_record_datetime, utcnow
from .amount_policy import derive_amount, line_items
from .concurrency import run_with_retry
from .identifier_service import ledger_entry_id, parse_ledger_entry_id
from .ledger_store import LedgerStore
"""
Ledger Invariants (authoritative)

- Every active order/sale has exactly one income entry whose id is
  ledger_entry_id(order.id, order.kind); every derived entry has a live source.
- Derived entries always live in the income bucket. Expenses are authored
  elsewhere and never written here.
- Upsert replaces in place, so applying it twice yields one entry.
- Callers retract-then-apply on edit so category/description text never goes stale.
"""


def _category(kind: str) -> str:
    if kind == ORDER_KIND_SALE:
        return current_app.config.get("LEDGER_SALE_CATEGORY", "Sales Income")
    return current_app.config.get("LEDGER_ORDER_CATEGORY", "Order Income")


def _entry_date(record: dict, occurred_at: Optional[datetime]) -> datetime:
    return first_record_datetime(record, ("date", "orderDate", "saleDate")) or occurred_at or utcnow()


def _customer_name(record: dict) -> str | None:
    customer = record.get("customer")
    if isinstance(customer, dict) and customer.get("name"):
        return str(customer["name"])
    for key in ("customerName", "customer_name"):
        if record.get(key):
            return str(record[key])
    return None


def _describe(record: dict, kind: str) -> tuple[str, str, str]:
    source_id = record.get("id")
    label = "Sale" if kind == ORDER_KIND_SALE else "Order"
    name = f"{label} #{source_id}"

    customer = _customer_name(record)
    description = f"{name} - {customer}" if customer else name

    lines = line_items(record)
    units = 0
    for line in lines:
        qty = line.get("qty", 1)
        units += qty if isinstance(qty, int) and not isinstance(qty, bool) else 1
    comment = f"{len(lines)} line(s), {units} unit(s)"
    return name, description, comment


def build_entry_fields(record: dict, kind: str, occurred_at: Optional[datetime] = None) -> dict:
    """Column values of the derived entry for an order/sale record."""
    name, description, comment = _describe(record, kind)
    return {
        "bucket": BUCKET_INCOME,
        "source": kind,
        "reference_id": str(record.get("id")),
        "name": name,
        "amount": derive_amount(record),
        "category": _category(kind),
        "date": _entry_date(record, occurred_at),
        "description": description,
        "comment": comment,
    }


def _apply(store: LedgerStore, record: dict, kind: str, occurred_at: Optional[datetime]) -> LedgerEntry:
    entry_id = ledger_entry_id(record.get("id"), kind)
    return store.put(entry_id, **build_entry_fields(record, kind, occurred_at))


def upsert_entry(record: dict, kind: str, occurred_at: Optional[datetime] = None) -> LedgerEntry:
    """Create or replace the derived income entry for an order/sale record."""
    def _op():
        entry = _apply(LedgerStore(), record, kind, occurred_at)
        db.session.commit()
        return entry

    return run_with_retry(_op)


def remove_entry(source_id, kind: str) -> bool:
    """Retract the derived entry; False when there was nothing to remove."""
    def _op():
        removed = LedgerStore().remove(ledger_entry_id(source_id, kind))
        db.session.commit()
        return removed

    return run_with_retry(_op)


def resync_entry(record: dict, kind: str, occurred_at: Optional[datetime] = None) -> LedgerEntry:
    """Retract-then-apply in one transaction (the edit path)."""
    def _op():
        store = LedgerStore()
        entry_id = ledger_entry_id(record.get("id"), kind)
        if store.remove(entry_id):
            db.session.flush()
        entry = _apply(store, record, kind, occurred_at)
        db.session.commit()
        return entry

    return run_with_retry(_op)


def list_entries() -> dict:
    store = LedgerStore()
    return {
        "income": [entry.to_dict() for entry in store.income()],
        "expenses": [entry.to_dict() for entry in store.expenses()],
    }


def summarize() -> dict:
    store = LedgerStore()
    totals = store.totals()
    income = totals[BUCKET_INCOME]
    expense = totals[BUCKET_EXPENSE]
    return {
        "total_income": to_money_str(income),
        "total_expense": to_money_str(expense),
        "net_balance": to_money_str(income - expense),
        "count": store.count(),
    }


def reconcile() -> dict:
    """
    Restore the one-entry-per-active-order invariant.

    Re-derives the entry of every order/sale and removes derived entries whose
    source no longer exists. Repairs whatever a failed best-effort sync left behind.
    """
    def _op():
        store = LedgerStore()
        orders = db.session.query(Order).order_by(Order.id.asc()).all()
        live_ids = set()
        created = 0
        updated = 0

        for order in orders:
            entry_id = ledger_entry_id(order.id, order.kind)
            live_ids.add(entry_id)
            existing = store.get(entry_id)
            before = None if existing is None else (existing.amount, existing.category, existing.description)
            entry = _apply(store, order.to_record(), order.kind, order.created_at)
            if existing is None:
                created += 1
            elif before != (entry.amount, entry.category, entry.description):
                updated += 1

        removed = 0
        for entry in store.derived():
            if parse_ledger_entry_id(entry.id) is None:
                continue
            if entry.id not in live_ids:
                store.remove(entry.id)
                removed += 1

        db.session.commit()
        return {"orders": len(orders), "created": created, "updated": updated, "removed": removed}

    report = run_with_retry(_op)
    current_app.logger.info("Ledger reconcile: %s", report)
    return report
