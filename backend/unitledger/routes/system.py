# backend/unitledger/routes/system.py
"""
System health endpoint.

Reports database connectivity and row counts of the main stores so a
deployment can be checked without touching any data.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Batch, DefectRecord, InventoryUnit, LedgerEntry, Order

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        counts = {
            "batches": db.session.query(Batch).count(),
            "units": db.session.query(InventoryUnit).count(),
            "defects": db.session.query(DefectRecord).count(),
            "orders": db.session.query(Order).count(),
            "ledger_entries": db.session.query(LedgerEntry).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": counts,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return jsonify({"status": database["status"], "database": database}), status_code
