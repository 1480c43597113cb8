from decimal import Decimal

import pytest

from unitledger.errors import InsufficientStockError, NotFoundError, ValidationError
from unitledger.extensions import db
from unitledger.models import LedgerEntry, Order
from unitledger.services import order_service
from unitledger.services.unit_store import UnitStore


@pytest.fixture
def stock(db_session, make_batch):
    make_batch(base_code="SHOE", product_id="P1", quantity=3, admit=True)
    make_batch(base_code="BAG", product_id="P2", quantity=3, admit=True)


def _sold_to(order_id):
    return sorted(unit.barcode for unit in UnitStore().for_order(order_id))


def test_partial_return_with_replacement(stock):
    created = order_service.create_order({"items": [{"product_id": "P1", "qty": 2, "price": 100}]})
    order_id = created.order.id
    line_id = created.order.items[0]["id"]

    result = order_service.exchange_order({
        "order_id": order_id,
        "removed": [{"line_id": line_id, "qty": 1}],
        "replacements": [{"product_id": "P2", "qty": 1, "price": 120}],
    })

    items = result.order.items
    assert items[0]["id"] == line_id
    assert items[0]["qty"] == 1
    assert items[0]["barcodes"] == ["SHOE-01"]
    assert items[1]["barcodes"] == ["BAG-01"]
    assert _sold_to(order_id) == ["BAG-01", "SHOE-01"]
    assert UnitStore().get("SHOE-02").status == "available"

    assert result.exchange["original_total"] == "200.00"
    assert result.exchange["new_total"] == "220.00"
    assert result.exchange["difference"] == "20.00"
    assert result.exchange["note"] == "Customer owes additional payment"
    assert result.order.data["exchange_history"] == [result.exchange]

    assert result.ledger_synced
    assert db.session.get(LedgerEntry, f"order-{order_id}").amount == Decimal("220.00")


def test_removal_by_product_and_merged_replacement_is_a_refund(stock):
    created = order_service.create_order({"items": [
        {"product_id": "P1", "qty": 1, "price": 100},
        {"product_id": "P2", "qty": 1, "price": 40},
    ]})

    result = order_service.exchange_order({
        "orderId": created.order.id,
        "removedProducts": [{"productId": "P1"}],
        "replacementProducts": [{"productId": "P2", "quantity": 1, "price": 40}],
    })

    assert len(result.order.items) == 1
    assert result.order.items[0]["product_id"] == "P2"
    assert result.order.items[0]["qty"] == 2
    assert result.order.items[0]["barcodes"] == ["BAG-01", "BAG-02"]
    assert UnitStore().get("SHOE-01").status == "available"
    assert result.exchange["difference"] == "-60.00"
    assert result.exchange["note"] == "Refund to customer"


def test_exchanges_accumulate_history(stock):
    created = order_service.create_order({"items": [{"product_id": "P1", "qty": 1, "price": 100}]})
    line_id = created.order.items[0]["id"]

    order_service.exchange_order({"order_id": created.order.id, "replacements": [{"product_id": "P2", "price": 50}]})
    result = order_service.exchange_order({"order_id": created.order.id, "removed": [{"line_id": line_id}],
                                           "replacements": [{"product_id": "P1", "price": 100}]})

    history = result.order.data["exchange_history"]
    assert [entry["new_total"] for entry in history] == ["150.00", "150.00"]
    assert history[1]["note"] == "No payment difference"


def test_failed_exchange_changes_nothing(stock):
    created = order_service.create_order({"items": [{"product_id": "P1", "qty": 1, "price": 100}]})
    order_id = created.order.id
    items_before = [dict(line) for line in created.order.items]

    with pytest.raises(InsufficientStockError):
        order_service.exchange_order({
            "order_id": order_id,
            "removed": [{"product_id": "P1"}],
            "replacements": [{"product_id": "P2", "qty": 9}],
        })

    order = db.session.get(Order, order_id)
    assert order.items == items_before
    assert "exchange_history" not in order.data
    assert _sold_to(order_id) == ["SHOE-01"]
    assert len(UnitStore().available_for_product("P2")) == 3


def test_exchange_rejects_bad_requests(stock):
    created = order_service.create_order({"items": [{"product_id": "P1", "qty": 1}]})
    order_id = created.order.id

    with pytest.raises(ValidationError):
        order_service.exchange_order({"order_id": order_id})
    with pytest.raises(ValidationError):
        order_service.exchange_order({"removed": [{"product_id": "P1"}]})
    with pytest.raises(ValidationError):
        order_service.exchange_order({"order_id": order_id, "removed": [{"product_id": "P9"}]})
    with pytest.raises(ValidationError):
        order_service.exchange_order({"order_id": order_id, "removed": [{"product_id": "P1"}]})
    with pytest.raises(NotFoundError):
        order_service.exchange_order({"order_id": 9999, "removed": [{"product_id": "P1"}]})

    assert _sold_to(order_id) == ["SHOE-01"]
