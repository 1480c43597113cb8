# Overview: Service-layer operations for defective items; registration, lookup and deletion.

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import DefectRecord
from ..models.defects import DEFECT_STATUS_PENDING, DEFECT_STATUSES
from .concurrency import run_with_retry
from .defect_registry import DefectRegistry
from .identifier_service import new_defect_id


def register_defect(
    product_id: str,
    reason: str | None = None,
    barcode: str | None = None,
    store: str | None = None,
    defect_id: str | None = None,
) -> DefectRecord:
    """Tag a unit as defective (status pending). Unit Store rows are not touched."""
    if not product_id or not str(product_id).strip():
        raise ValidationError("product_id is required")

    def _op():
        registry = DefectRegistry()
        record_id = (defect_id or "").strip() or new_defect_id()
        if registry.get(record_id) is not None:
            raise ConflictError(f"Defective item {record_id} already exists", details={"id": record_id})

        defect = registry.add(DefectRecord(
            id=record_id,
            product_id=str(product_id).strip(),
            barcode=barcode or None,
            reason=reason or None,
            store=store or None,
            status=DEFECT_STATUS_PENDING,
        ))
        db.session.commit()
        return defect

    defect = run_with_retry(_op)
    current_app.logger.info("Defective item %s registered for product %s", defect.id, defect.product_id)
    return defect


def get_defect(defect_id: str) -> DefectRecord:
    defect = DefectRegistry().get(defect_id)
    if defect is None:
        raise NotFoundError(f"Defective item {defect_id} not found", details={"id": defect_id})
    return defect


def list_defects(status: str | None = None, store: str | None = None) -> list[DefectRecord]:
    if status is not None and status not in DEFECT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(DEFECT_STATUSES)}")
    return DefectRegistry().search(status=status, store=store)


def delete_defect(defect_id: str) -> None:
    """Only pending defects can be removed; a sold one belongs to its order."""
    def _op():
        registry = DefectRegistry()
        defect = get_defect(defect_id)
        if defect.status != DEFECT_STATUS_PENDING:
            raise ConflictError(
                f"Defective item {defect_id} was sold in order {defect.order_id} and cannot be deleted",
                details={"id": defect_id, "order_id": defect.order_id},
            )
        registry.delete(defect)
        db.session.commit()

    run_with_retry(_op)
