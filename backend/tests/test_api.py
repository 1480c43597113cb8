from unitledger.extensions import db
from unitledger.models import InventoryUnit


def _plan_and_admit(client, base_code="SHOE", product_id="P1", quantity=2):
    res = client.post("/api/batches", json={
        "base_code": base_code,
        "product_id": product_id,
        "cost_price": "60.00",
        "selling_price": "100.00",
        "quantity": quantity,
    })
    assert res.status_code == 201
    batch_id = res.get_json()["id"]
    for n in range(1, quantity + 1):
        res = client.post(f"/api/batches/{batch_id}/admit", json={"barcode": f"{base_code}-{n:02d}"})
        assert res.status_code == 201
    return batch_id


def test_health(client, db_session):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.get_json()["status"] == "healthy"


def test_store_create_and_list(client, db_session):
    res = client.post("/api/stores", json={"name": "Depot", "store_type": "warehouse"})
    assert res.status_code == 201

    res = client.post("/api/stores", json={"name": "Depot"})
    assert res.status_code == 409
    assert res.get_json()["kind"] == "conflict"

    res = client.post("/api/stores", json={"code": "X"})
    assert res.status_code == 400

    res = client.get("/api/stores?store_type=warehouse")
    assert [store["name"] for store in res.get_json()] == ["Depot"]


def test_batch_validation(client, db_session):
    res = client.post("/api/batches", json={"base_code": "BAD CODE", "product_id": "P1",
                                            "cost_price": 1, "selling_price": 2, "quantity": 1})
    assert res.status_code == 400

    res = client.post("/api/batches", json={"base_code": "OK", "product_id": "P1",
                                            "cost_price": "1.999", "selling_price": 2, "quantity": 1})
    assert res.status_code == 400

    res = client.post("/api/batches", json={"base_code": "OK", "product_id": "P1"})
    assert res.status_code == 400
    assert "Missing required fields" in res.get_json()["error"]


def test_admission_flow(client, db_session):
    res = client.post("/api/batches", json={"base_code": "CAP", "product_id": "P7",
                                            "cost_price": 5, "selling_price": 9, "quantity": 2})
    batch_id = res.get_json()["id"]

    res = client.get(f"/api/batches/{batch_id}/expected")
    assert res.get_json()["barcodes"] == ["CAP-01", "CAP-02"]

    res = client.post(f"/api/batches/{batch_id}/admit", json={"barcode": "CAP-02"})
    assert res.status_code == 201
    body = res.get_json()
    assert body["unit"]["barcode"] == "CAP-02"
    assert body["progress"]["remaining"] == ["CAP-01"]

    res = client.post(f"/api/batches/{batch_id}/admit", json={"barcode": "CAP-02"})
    assert res.status_code == 409
    assert res.get_json()["kind"] == "duplicate_or_invalid_code"

    res = client.post(f"/api/batches/{batch_id}/admit", json={})
    assert res.status_code == 400

    client.post(f"/api/batches/{batch_id}/admit", json={"barcode": "CAP-01"})
    res = client.get(f"/api/batches/{batch_id}")
    assert res.get_json()["admitted"] == "yes"

    res = client.post(f"/api/batches/{batch_id}/admit", json={"barcode": "CAP-01"})
    assert res.status_code == 409
    assert res.get_json()["kind"] == "batch_complete"

    assert client.get("/api/batches/999/progress").status_code == 404


def test_order_lifecycle(client, db_session):
    _plan_and_admit(client, quantity=2)

    res = client.post("/api/orders", json={"items": [{"productId": "P1", "qty": 3}]})
    assert res.status_code == 409
    body = res.get_json()
    assert body["kind"] == "insufficient_stock"
    assert body["error"] == "Not enough inventory for product P1. Required: 3, Available: 2"

    res = client.post("/api/orders", json={"items": [{"productId": "P1", "qty": 1, "price": 100}]})
    assert res.status_code == 201
    body = res.get_json()
    order_id = body["order"]["id"]
    assert body["order"]["items"][0]["barcodes"] == ["SHOE-01"]
    assert body["ledger"]["synced"] is True
    assert body["ledger"]["entry"]["amount"] == "100.00"

    res = client.get("/api/inventory/SHOE-01")
    assert res.get_json()["status"] == "sold"
    assert res.get_json()["order_id"] == order_id

    res = client.put(f"/api/orders?id={order_id}", json={"note": "call first"})
    assert res.status_code == 200
    assert res.get_json()["order"]["note"] == "call first"

    res = client.delete(f"/api/orders?id={order_id}")
    assert res.status_code == 200
    assert client.get("/api/inventory/SHOE-01").get_json()["status"] == "available"

    assert client.delete(f"/api/orders/{order_id}").status_code == 404
    assert client.put("/api/orders/12345", json={"note": "x"}).status_code == 404
    assert client.put("/api/orders", json={"note": "x"}).status_code == 400


def test_order_validation(client, db_session):
    res = client.post("/api/orders", json={"items": []})
    assert res.status_code == 400

    res = client.post("/api/orders", json={"items": [{"qty": 1}]})
    assert res.status_code == 400
    assert res.get_json()["kind"] == "validation_error"

    res = client.post("/api/orders", json={"items": [{"product_id": "P1", "qty": 0}]})
    assert res.status_code == 400

    res = client.post("/api/orders", json={"items": [{"is_defective": True, "defect_id": "D"}]})
    assert res.status_code == 400


def test_sales_and_ledger_endpoints(client, db_session):
    _plan_and_admit(client, base_code="BAG", product_id="P2", quantity=2)

    res = client.post("/api/sales", json={"items": [{"product_id": "P2", "barcodes": ["BAG-02"], "price": 40}]})
    assert res.status_code == 201
    sale_id = res.get_json()["order"]["id"]

    assert client.get(f"/api/orders/{sale_id}").status_code == 404
    assert client.get(f"/api/sales/{sale_id}").status_code == 200
    assert [sale["id"] for sale in client.get("/api/sales").get_json()] == [sale_id]

    ledger = client.get("/api/ledger").get_json()
    assert [entry["id"] for entry in ledger["income"]] == [f"sale-{sale_id}"]
    assert ledger["summary"]["total_income"] == "40.00"

    res = client.post("/api/ledger/reconcile")
    assert res.status_code == 200
    assert res.get_json()["report"]["orders"] == 1

    assert client.delete(f"/api/sales/{sale_id}").status_code == 200
    assert client.get("/api/ledger").get_json()["income"] == []


def test_defects_endpoints(client, db_session):
    res = client.post("/api/defects", json={"product_id": "P1", "reason": "torn", "id": "defect-x"})
    assert res.status_code == 201
    assert res.get_json()["status"] == "pending"

    assert client.post("/api/defects", json={"product_id": "P1", "id": "defect-x"}).status_code == 409
    assert client.post("/api/defects", json={"product_id": "P1", "status": "sold"}).status_code == 400

    res = client.post("/api/orders", json={"items": [{"isDefective": True, "defectId": "defect-x", "price": "25"}]})
    assert res.status_code == 201
    order_id = res.get_json()["order"]["id"]

    assert client.get("/api/defects?status=sold").get_json()[0]["selling_price"] == "25.00"
    assert client.delete("/api/defects/defect-x").status_code == 409

    client.delete(f"/api/orders/{order_id}")
    assert client.delete("/api/defects/defect-x").status_code == 200
    assert client.get("/api/defects/defect-x").status_code == 404


def test_inventory_listing_and_summary(client, db_session):
    _plan_and_admit(client, quantity=3)
    client.post("/api/orders", json={"items": [{"product_id": "P1", "qty": 1}]})

    res = client.get("/api/inventory?status=available&product_id=P1")
    assert [unit["barcode"] for unit in res.get_json()] == ["SHOE-02", "SHOE-03"]

    res = client.get("/api/inventory/summary")
    assert res.get_json() == [{"product_id": "P1", "available": 2, "sold": 1, "total": 3}]

    assert client.get("/api/inventory?status=lost").status_code == 400
    assert client.get("/api/inventory/NOPE-01").status_code == 404
    assert db.session.query(InventoryUnit).count() == 3


def test_order_exchange_endpoint(client, db_session):
    _plan_and_admit(client, quantity=2)
    _plan_and_admit(client, base_code="BAG", product_id="P2", quantity=1)

    res = client.post("/api/orders", json={"items": [{"productId": "P1", "qty": 2, "price": 100}]})
    order_id = res.get_json()["order"]["id"]

    res = client.post("/api/orders/exchange", json={
        "orderId": order_id,
        "removedProducts": [{"productId": "P1", "quantity": 1}],
        "replacementProducts": [{"productId": "P2", "quantity": 1, "price": 80}],
    })
    assert res.status_code == 200
    body = res.get_json()
    assert [line["barcodes"] for line in body["order"]["items"]] == [["SHOE-01"], ["BAG-01"]]
    assert body["exchange"]["difference"] == "-20.00"
    assert body["ledger"]["entry"]["amount"] == "180.00"
    assert client.get("/api/inventory/SHOE-02").get_json()["status"] == "available"

    res = client.post("/api/orders/exchange", json={"orderId": order_id, "replacementProducts": [{"productId": "P2"}]})
    assert res.status_code == 409
    assert res.get_json()["kind"] == "insufficient_stock"

    assert client.post("/api/orders/exchange", json={"orderId": 9999, "removed": [{"product_id": "P1"}]}).status_code == 404
    assert client.post("/api/orders/exchange", json={"removed": []}).status_code == 400
