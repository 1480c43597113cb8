from decimal import Decimal

from unitledger.services.amount_policy import derive_amount, line_amount


def test_sums_price_times_qty_over_items():
    record = {"items": [{"price": 100, "qty": 2}, {"price": "49.50", "qty": 1}]}
    assert derive_amount(record) == Decimal("249.50")


def test_price_aliases_fall_through_in_order():
    # zero and unparseable values fall through to the next alias
    line = {"price": 0, "sellingPrice": "n/a", "unitPrice": "1,200.00", "amount": 5}
    assert line_amount(line) == Decimal("1200.00")


def test_qty_defaults_to_one():
    assert line_amount({"salePrice": "30"}) == Decimal("30")
    assert line_amount({"price": 30, "quantity": 0, "count": 3}) == Decimal("90")


def test_legacy_products_key_is_read_when_items_missing():
    assert derive_amount({"products": [{"sellingPrice": 80, "quantity": 2}]}) == Decimal("160.00")


def test_falls_back_to_record_totals_when_lines_sum_to_zero():
    assert derive_amount({"items": [{"qty": 2}], "totalAmount": "350"}) == Decimal("350.00")
    assert derive_amount({"items": [], "total": 0, "grandTotal": 75}) == Decimal("75.00")
    assert derive_amount({"amounts": {"total": "19.999"}}) == Decimal("20.00")


def test_garbage_records_derive_zero():
    assert derive_amount(None) == Decimal("0.00")
    assert derive_amount({"items": "nope"}) == Decimal("0.00")
