# Overview: Flask API routes for batch planning and barcode admission; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..errors import InventoryError, ValidationError
from ..models import Batch
from ..services import admission_service
from ..validation import ModelValidationPolicy, enforce_rules_batch, validate_payload


BATCH_POLICY = ModelValidationPolicy(
    writable_fields={"base_code", "product_id", "cost_price", "selling_price", "quantity"},
    required_on_create={"base_code", "product_id", "cost_price", "selling_price", "quantity"},
)

batches_bp = Blueprint("batches", __name__, url_prefix="/api/batches")


def _parse_admitted_filter(raw: str | None) -> bool | None:
    if raw is None or raw == "":
        return None
    value = raw.strip().lower()
    if value in ("1", "true", "yes"):
        return True
    if value in ("0", "false", "no"):
        return False
    raise ValidationError("admitted must be yes or no")


@batches_bp.get("")
def list_batches():
    try:
        batches = admission_service.list_batches(
            product_id=request.args.get("product_id"),
            admitted=_parse_admitted_filter(request.args.get("admitted")),
        )
    except ValidationError as exc:
        return jsonify(exc.to_dict()), 400
    return jsonify([batch.to_dict() for batch in batches]), 200


@batches_bp.post("")
def create_batch():
    """
    Plan a batch of `quantity` units.

    Body: base_code, product_id, cost_price, selling_price, quantity.
    Units are not created here; each one is admitted by scanning its barcode.
    """
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Batch, payload=payload, policy=BATCH_POLICY, partial=False)
        enforce_rules_batch(patch)
        batch = admission_service.create_batch(**patch)
        return jsonify(batch.to_dict()), 201
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to create batch")
        return jsonify({"error": "Internal server error"}), 500


@batches_bp.get("/<int:batch_id>")
def get_batch(batch_id: int):
    try:
        batch = admission_service.get_batch(batch_id)
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    return jsonify(batch.to_dict()), 200


@batches_bp.get("/<int:batch_id>/expected")
def expected_barcodes(batch_id: int):
    try:
        batch = admission_service.get_batch(batch_id)
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    return jsonify({
        "batch_id": batch.id,
        "base_code": batch.base_code,
        "barcodes": admission_service.expected_barcodes(batch),
    }), 200


@batches_bp.get("/<int:batch_id>/progress")
def batch_progress(batch_id: int):
    try:
        return jsonify(admission_service.get_progress(batch_id)), 200
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code


@batches_bp.post("/<int:batch_id>/admit")
def admit_barcode(batch_id: int):
    """
    Admit one scanned barcode.

    Body: {"barcode": "SHOE-03"}
    Foreign, duplicate and late codes answer 409 and change nothing.
    """
    payload = request.get_json(silent=True) or {}
    barcode = payload.get("barcode")
    if not isinstance(barcode, str) or not barcode.strip():
        return jsonify({"error": "barcode required", "kind": ValidationError.kind, "details": {}}), 400

    try:
        unit = admission_service.admit_one(batch_id, barcode)
        progress = admission_service.get_progress(batch_id)
        return jsonify({"unit": unit.to_dict(), "progress": progress}), 201
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to admit barcode")
        return jsonify({"error": "Internal server error"}), 500
