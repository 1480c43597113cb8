# Overview: Error taxonomy shared by services and routes; each error knows its kind and HTTP status.

from __future__ import annotations


class InventoryError(Exception):
    """Base class for every expected failure of an inventory operation."""
    kind = "inventory_error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind,
            "details": self.details,
        }


class ValidationError(InventoryError, ValueError):
    """400-level input problem, raised before any store is touched."""
    kind = "validation_error"
    status_code = 400


class NotFoundError(InventoryError):
    kind = "not_found"
    status_code = 404


class ConflictError(InventoryError):
    """409-level conflict: stale version token or unexpected current state."""
    kind = "conflict"
    status_code = 409


class PersistenceError(InventoryError):
    """Reading or writing a collection failed; fatal for the whole operation."""
    kind = "persistence_error"
    status_code = 500


class AdmissionError(InventoryError):
    kind = "admission_error"
    status_code = 409


class DuplicateOrInvalidCodeError(AdmissionError):
    kind = "duplicate_or_invalid_code"


class BatchCompleteError(AdmissionError):
    kind = "batch_complete"


class AllocationError(InventoryError):
    kind = "allocation_error"
    status_code = 409


class InsufficientStockError(AllocationError):
    kind = "insufficient_stock"

    def __init__(self, product_id: str, required: int, available: int):
        super().__init__(
            f"Not enough inventory for product {product_id}. "
            f"Required: {required}, Available: {available}",
            details={
                "product_id": product_id,
                "required": required,
                "available": available,
            },
        )
        self.product_id = product_id
        self.required = required
        self.available = available


class DefectUnavailableError(AllocationError):
    kind = "defect_unavailable"


class UnitUnavailableError(AllocationError):
    kind = "unit_unavailable"


class LedgerSyncError(InventoryError):
    """Secondary-phase failure; reported alongside a committed order, never raised to HTTP."""
    kind = "ledger_sync_error"
    status_code = 500
