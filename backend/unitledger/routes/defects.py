# Overview: Flask API routes for defective items; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..errors import InventoryError
from ..models import DefectRecord
from ..services import defect_service
from ..validation import ModelValidationPolicy, enforce_rules_defect, validate_payload


DEFECT_POLICY = ModelValidationPolicy(
    writable_fields={"id", "product_id", "barcode", "reason", "store", "status"},
    required_on_create={"product_id"},
)

defects_bp = Blueprint("defects", __name__, url_prefix="/api/defects")


@defects_bp.get("")
def list_defects():
    try:
        defects = defect_service.list_defects(
            status=request.args.get("status"),
            store=request.args.get("store"),
        )
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    return jsonify([defect.to_dict() for defect in defects]), 200


@defects_bp.post("")
def register_defect():
    """
    Tag a unit as defective. It stays `pending` until an order line sells it.

    Body: product_id (required), reason, barcode, store, id (optional).
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=DefectRecord, payload=payload, policy=DEFECT_POLICY, partial=False)
        enforce_rules_defect(patch)
        defect = defect_service.register_defect(
            product_id=patch["product_id"],
            reason=patch.get("reason"),
            barcode=patch.get("barcode"),
            store=patch.get("store"),
            defect_id=patch.get("id"),
        )
        return jsonify(defect.to_dict()), 201
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to register defective item")
        return jsonify({"error": "Internal server error"}), 500


@defects_bp.get("/<defect_id>")
def get_defect(defect_id: str):
    try:
        return jsonify(defect_service.get_defect(defect_id).to_dict()), 200
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@defects_bp.delete("/<defect_id>")
def delete_defect(defect_id: str):
    try:
        defect_service.delete_defect(defect_id)
        return jsonify({"ok": True}), 200
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to delete defective item")
        return jsonify({"error": "Internal server error"}), 500
