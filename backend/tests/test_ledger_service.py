from datetime import datetime
from decimal import Decimal

import pytest

from unitledger.errors import LedgerSyncError
from unitledger.extensions import db
from unitledger.models import LedgerEntry
from unitledger.models.ledger import BUCKET_EXPENSE, SOURCE_MANUAL
from unitledger.services import ledger_service, order_service


@pytest.fixture
def stock(db_session, make_batch):
    make_batch(base_code="SHOE", product_id="P1", quantity=5, admit=True)


def test_order_creates_one_income_entry(stock):
    result = order_service.create_order({
        "items": [{"product_id": "P1", "qty": 2, "price": 100}],
        "customer": {"name": "Ana"},
    })

    entry = db.session.get(LedgerEntry, f"order-{result.order.id}")
    assert result.ledger_error is None
    assert result.ledger_entry.id == entry.id
    assert entry.bucket == "income"
    assert entry.source == "order"
    assert entry.amount == Decimal("200.00")
    assert entry.category == "Order Income"
    assert entry.description == f"Order #{result.order.id} - Ana"


def test_sale_entry_uses_sale_id_and_category(stock):
    result = order_service.create_order({"items": [{"product_id": "P1", "price": "49.90"}]}, kind="sale")

    entry = db.session.get(LedgerEntry, f"sale-{result.order.id}")
    assert entry.amount == Decimal("49.90")
    assert entry.category == "Sales Income"


def test_amount_parses_strings_and_falls_through_aliases(stock):
    result = order_service.create_order({"items": [
        {"product_id": "P1", "price": "100", "qty": "2"},
        {"product_id": "P1", "price": 0, "qty": 1},
    ]})
    assert db.session.get(LedgerEntry, f"order-{result.order.id}").amount == Decimal("200.00")


def test_upsert_twice_yields_one_entry(db_session):
    record = {"id": 41, "items": [{"price": 10, "qty": 3}]}
    ledger_service.upsert_entry(record, "order")
    ledger_service.upsert_entry(record, "order")

    entries = db.session.query(LedgerEntry).filter_by(id="order-41").all()
    assert len(entries) == 1
    assert entries[0].amount == Decimal("30.00")


def test_entry_date_comes_from_the_record(db_session):
    entry = ledger_service.upsert_entry({"id": 3, "date": "2026-03-01T10:00:00Z", "total": 5}, "sale")
    assert entry.date == datetime(2026, 3, 1, 10, 0, 0)


def test_edit_rederives_and_delete_retracts(stock):
    created = order_service.create_order({"items": [{"product_id": "P1", "qty": 1, "price": 100}]})
    entry_id = f"order-{created.order.id}"

    line = dict(created.order.items[0])
    line["qty"] = 3
    order_service.update_order(created.order.id, {"items": [line]})
    assert db.session.get(LedgerEntry, entry_id).amount == Decimal("300.00")

    order_service.delete_order(created.order.id)
    assert db.session.get(LedgerEntry, entry_id) is None
    assert ledger_service.remove_entry(created.order.id, "order") is False


def test_ledger_failure_never_unwinds_the_order(stock, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("ledger store offline")

    monkeypatch.setattr(ledger_service, "resync_entry", boom)
    result = order_service.create_order({"items": [{"product_id": "P1", "qty": 1, "price": 80}]})

    assert isinstance(result.ledger_error, LedgerSyncError)
    assert result.ledger_dict()["synced"] is False
    assert result.order.id is not None
    assert result.order.items[0]["barcodes"] == ["SHOE-01"]
    assert db.session.get(LedgerEntry, f"order-{result.order.id}") is None

    monkeypatch.undo()
    report = ledger_service.reconcile()
    assert report["created"] == 1
    assert db.session.get(LedgerEntry, f"order-{result.order.id}").amount == Decimal("80.00")


def test_reconcile_drops_orphans_and_keeps_expenses(stock):
    order = order_service.create_order({"items": [{"product_id": "P1", "qty": 1, "price": 10}]}).order
    db.session.add(LedgerEntry(
        id="order-9999", bucket="income", source="order", reference_id="9999",
        name="Order #9999", amount=Decimal("5.00"), category="Order Income", date=datetime(2026, 1, 1),
    ))
    db.session.add(LedgerEntry(
        id="rent-2026-01", bucket=BUCKET_EXPENSE, source=SOURCE_MANUAL,
        name="Rent", amount=Decimal("700.00"), category="Rent", date=datetime(2026, 1, 1),
    ))
    db.session.commit()

    report = ledger_service.reconcile()

    assert report == {"orders": 1, "created": 0, "updated": 0, "removed": 1}
    assert db.session.get(LedgerEntry, "order-9999") is None
    assert db.session.get(LedgerEntry, "rent-2026-01") is not None
    assert db.session.get(LedgerEntry, f"order-{order.id}") is not None

    summary = ledger_service.summarize()
    assert summary == {
        "total_income": "10.00",
        "total_expense": "700.00",
        "net_balance": "-690.00",
        "count": 2,
    }
