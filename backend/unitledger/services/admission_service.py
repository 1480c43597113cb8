"""
Batch Admission Tracker

Turns a planned batch of N units into N individually barcoded inventory units.

Invariants (authoritative):
- A batch of quantity N expects exactly "{base_code}-01" .. "{base_code}-NN".
- A code is admitted at most once; foreign and duplicate codes never advance
  the admitted count and never mutate any store.
- The batch flips to admitted=True in the same transaction as its N-th unit,
  and nothing is admitted after that (BatchCompleteError).
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import BatchCompleteError, ConflictError, DuplicateOrInvalidCodeError, NotFoundError
from ..extensions import db
from ..models import Batch, InventoryUnit
from ..models.inventory import UNIT_STATUS_AVAILABLE
from ..time_utils import utcnow
from .concurrency import run_with_retry
from .identifier_service import expected_barcodes as _expected_codes, normalize_code
from .store_service import resolve_warehouse_location
from .unit_store import UnitStore


def expected_barcodes(batch: Batch) -> list[str]:
    """Deterministic, ordered barcodes for every unit of the batch."""
    return _expected_codes(batch.base_code, batch.quantity)


def create_batch(
    *,
    base_code: str,
    product_id: str,
    cost_price: Decimal,
    selling_price: Decimal,
    quantity: int,
) -> Batch:
    """Plan a batch (admitted=False). base_code must be unused."""
    def _op():
        if db.session.query(Batch).filter_by(base_code=base_code).first():
            raise ConflictError(
                f"Batch code {base_code} is already in use",
                details={"base_code": base_code},
            )

        batch = Batch(
            base_code=base_code,
            product_id=str(product_id),
            cost_price=cost_price,
            selling_price=selling_price,
            quantity=quantity,
            admitted=False,
        )
        db.session.add(batch)
        db.session.commit()
        return batch

    return run_with_retry(_op)


def get_batch(batch_id: int) -> Batch:
    batch = db.session.get(Batch, batch_id)
    if batch is None:
        raise NotFoundError(f"Batch {batch_id} not found", details={"batch_id": batch_id})
    return batch


def list_batches(*, product_id: str | None = None, admitted: bool | None = None) -> list[Batch]:
    query = db.session.query(Batch)
    if product_id is not None:
        query = query.filter_by(product_id=str(product_id))
    if admitted is not None:
        query = query.filter_by(admitted=admitted)
    return query.order_by(Batch.id.asc()).all()


def admit_one(batch_id: int, code: str) -> InventoryUnit:
    """
    Admit one scanned or typed code against a batch.

    Checks, in order: batch exists, batch not complete, code expected, code not
    already a unit. Any failure leaves every store untouched.
    """
    def _op():
        batch = get_batch(batch_id)
        if batch.admitted:
            raise BatchCompleteError(
                f"Batch {batch.base_code} is already fully admitted",
                details={"batch_id": batch.id, "quantity": batch.quantity},
            )

        scanned = normalize_code(code)
        units = UnitStore()

        if scanned not in set(expected_barcodes(batch)):
            raise DuplicateOrInvalidCodeError(
                f"Barcode {scanned or '(empty)'} does not belong to batch {batch.base_code}",
                details={"batch_id": batch.id, "barcode": scanned, "reason": "invalid"},
            )
        if units.exists(scanned):
            raise DuplicateOrInvalidCodeError(
                f"Barcode {scanned} has already been admitted",
                details={"batch_id": batch.id, "barcode": scanned, "reason": "duplicate"},
            )

        now = utcnow()
        unit = units.add(InventoryUnit(
            barcode=scanned,
            product_id=batch.product_id,
            batch_id=batch.id,
            cost_price=batch.cost_price,
            selling_price=batch.selling_price,
            status=UNIT_STATUS_AVAILABLE,
            order_id=None,
            location=resolve_warehouse_location(),
            admitted_at=now,
        ))
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise DuplicateOrInvalidCodeError(
                f"Barcode {scanned} has already been admitted",
                details={"batch_id": batch.id, "barcode": scanned, "reason": "duplicate"},
            ) from exc

        if units.count_for_batch(batch.id) >= batch.quantity:
            batch.admitted = True
            batch.admitted_at = now
            current_app.logger.info("Batch %s fully admitted (%s units)", batch.base_code, batch.quantity)

        db.session.commit()
        return unit

    return run_with_retry(_op)


def get_progress(batch_id: int) -> dict:
    """Expected, admitted and remaining codes for a batch."""
    batch = get_batch(batch_id)
    expected = expected_barcodes(batch)
    admitted = {unit.barcode for unit in UnitStore().for_batch(batch.id)}

    admitted_codes = [code for code in expected if code in admitted]
    remaining_codes = [code for code in expected if code not in admitted]
    percent = round(100 * len(admitted_codes) / batch.quantity, 1) if batch.quantity else 0.0

    return {
        "batch_id": batch.id,
        "base_code": batch.base_code,
        "quantity": batch.quantity,
        "admitted_count": len(admitted_codes),
        "remaining_count": len(remaining_codes),
        "percent": percent,
        "complete": bool(batch.admitted),
        "admitted": admitted_codes,
        "remaining": remaining_codes,
    }
