# Overview: Flask API routes for customer orders; parses input and returns JSON responses.

# backend/unitledger/routes/orders.py
"""
Order API routes.

Every write allocates or releases concrete units in the same transaction as
the order itself. The ledger entry is synced afterwards; if that fails the
order still stands and the response carries the failure under "ledger".
"""

from flask import Blueprint, current_app, jsonify, request

from ..errors import InventoryError
from ..models.orders import ORDER_KIND_ORDER
from ..services import order_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _result_body(result: order_service.OrderResult) -> dict:
    return {
        "order": result.order.to_dict() if result.order is not None else None,
        "ledger": result.ledger_dict(),
    }


def _query_id():
    order_id = request.args.get("id", type=int)
    if order_id is None:
        return None, (jsonify({"error": "id query parameter required", "kind": "validation_error", "details": {}}), 400)
    return order_id, None


def list_response(kind: str):
    orders = order_service.list_orders(kind)
    return jsonify([order.to_dict() for order in orders]), 200


def get_response(order_id: int, kind: str):
    try:
        return jsonify(order_service.get_order(order_id, kind).to_dict()), 200
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code


def create_response(kind: str):
    payload = request.get_json(silent=True)
    try:
        result = order_service.create_order(payload, kind)
        return jsonify(_result_body(result)), 201
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to create %s", kind)
        return jsonify({"error": "Internal server error"}), 500


def update_response(order_id: int, kind: str):
    payload = request.get_json(silent=True)
    try:
        result = order_service.update_order(order_id, payload, kind)
        return jsonify(_result_body(result)), 200
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to update %s %s", kind, order_id)
        return jsonify({"error": "Internal server error"}), 500


def exchange_response(kind: str):
    payload = request.get_json(silent=True)
    try:
        result = order_service.exchange_order(payload, kind)
        body = _result_body(result)
        body["exchange"] = result.exchange
        return jsonify(body), 200
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to exchange %s", kind)
        return jsonify({"error": "Internal server error"}), 500


def delete_response(order_id: int, kind: str):
    try:
        result = order_service.delete_order(order_id, kind)
        return jsonify({"ok": True, "id": order_id, "ledger": result.ledger_dict()}), 200
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to delete %s %s", kind, order_id)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
def list_orders():
    return list_response(ORDER_KIND_ORDER)


@orders_bp.post("")
def create_order():
    """
    Place an order.

    Body: {"items": [{"product_id": "P1", "qty": 2, "price": 100}, ...], ...}
    Defective lines: {"is_defective": true, "defect_id": "...", "price": 40}.
    Any other top-level field (customer, notes, totals) is stored as-is.
    """
    return create_response(ORDER_KIND_ORDER)


@orders_bp.get("/<int:order_id>")
def get_order(order_id: int):
    return get_response(order_id, ORDER_KIND_ORDER)


@orders_bp.put("")
def update_order_by_query():
    order_id, error = _query_id()
    if error:
        return error
    return update_response(order_id, ORDER_KIND_ORDER)


@orders_bp.put("/<int:order_id>")
def update_order(order_id: int):
    return update_response(order_id, ORDER_KIND_ORDER)


@orders_bp.delete("")
def delete_order_by_query():
    order_id, error = _query_id()
    if error:
        return error
    return delete_response(order_id, ORDER_KIND_ORDER)


@orders_bp.delete("/<int:order_id>")
def delete_order(order_id: int):
    return delete_response(order_id, ORDER_KIND_ORDER)


@orders_bp.post("/exchange")
def exchange_order():
    """
    Exchange goods on an existing order.

    Body: {"order_id": 1,
           "removed": [{"line_id": "...", "qty": 1} | {"product_id": "P1"}],
           "replacements": [{"product_id": "P2", "qty": 1, "price": 120}]}
    Removed units return to stock, replacements are allocated FIFO (or from
    their scanned barcodes) and the response carries the total difference.
    """
    return exchange_response(ORDER_KIND_ORDER)
