# Overview: Flask API routes for the income ledger; listing, totals and repair.

from flask import Blueprint, current_app, jsonify

from ..errors import InventoryError
from ..services import ledger_service


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
def list_ledger():
    entries = ledger_service.list_entries()
    return jsonify({**entries, "summary": ledger_service.summarize()}), 200


@ledger_bp.post("/reconcile")
def reconcile_ledger():
    """Re-derive every order/sale entry and drop entries whose source is gone."""
    try:
        report = ledger_service.reconcile()
        return jsonify({"report": report, "summary": ledger_service.summarize()}), 200
    except InventoryError as exc:
        return jsonify(exc.to_dict()), exc.status_code
    except Exception:
        current_app.logger.exception("Ledger reconcile failed")
        return jsonify({"error": "Internal server error"}), 500
