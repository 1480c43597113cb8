# Overview: Flask API routes for inventory unit lookup; read-only views over the Unit Store.

from flask import Blueprint, jsonify, request

from ..models.inventory import UNIT_STATUSES
from ..services.unit_store import UnitStore


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
def list_units():
    """
    Query params:
    - product_id: str (optional)
    - status: available | sold (optional)
    - batch_id: int (optional)
    - limit: int (optional)
    """
    status = request.args.get("status")
    if status is not None and status not in UNIT_STATUSES:
        return jsonify({"error": f"status must be one of: {', '.join(UNIT_STATUSES)}"}), 400

    units = UnitStore().search(
        product_id=request.args.get("product_id"),
        status=status,
        batch_id=request.args.get("batch_id", type=int),
        limit=request.args.get("limit", type=int),
    )
    return jsonify([unit.to_dict() for unit in units]), 200


@inventory_bp.get("/summary")
def inventory_summary():
    counts = UnitStore().status_counts()
    return jsonify([
        {"product_id": product_id, **bucket}
        for product_id, bucket in sorted(counts.items())
    ]), 200


@inventory_bp.get("/<barcode>")
def get_unit(barcode: str):
    unit = UnitStore().get(barcode.strip())
    if unit is None:
        return jsonify({"error": f"Unit {barcode} not found", "kind": "not_found", "details": {"barcode": barcode}}), 404
    return jsonify(unit.to_dict()), 200
