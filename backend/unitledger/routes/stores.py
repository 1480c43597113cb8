# Overview: Flask API routes for stores operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..errors import InventoryError
from ..models import Store
from ..models.inventory import STORE_TYPE_OUTLET, STORE_TYPES
from ..services import store_service
from ..validation import ModelValidationPolicy, validate_payload


STORE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "code", "store_type"},
    required_on_create={"name"},
)

stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
def list_stores():
    store_type = request.args.get("store_type")
    if store_type is not None and store_type not in STORE_TYPES:
        return jsonify({"error": f"store_type must be one of: {', '.join(STORE_TYPES)}"}), 400
    stores = store_service.list_stores(store_type=store_type)
    return jsonify([store.to_dict() for store in stores]), 200


@stores_bp.post("")
def create_store():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=False)
        store = store_service.create_store(
            name=patch["name"],
            code=patch.get("code"),
            store_type=patch.get("store_type") or STORE_TYPE_OUTLET,
        )
        return jsonify(store.to_dict()), 201
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Failed to create store")
        return jsonify({"error": "Internal server error"}), 500
