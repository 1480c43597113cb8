# Overview: Unit Store; the only code that reads or writes InventoryUnit rows.

from __future__ import annotations

from sqlalchemy import func

from ..errors import ConflictError
from ..extensions import db
from ..models import InventoryUnit
from ..models.inventory import UNIT_STATUS_AVAILABLE, UNIT_STATUS_SOLD, UNIT_STATUSES
from ..time_utils import utcnow


class UnitStore:
    """
    Repository over inventory units keyed by barcode.

    Iteration order is FIFO: admitted_at ascending, then barcode ascending.
    "First available" allocation takes units in exactly this order.
    Every row carries a version_id, so a concurrent writer that flipped the same
    unit makes this session's flush fail with StaleDataError.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    def _ordered(self, query):
        return query.order_by(InventoryUnit.admitted_at.asc(), InventoryUnit.barcode.asc())

    def get(self, barcode: str) -> InventoryUnit | None:
        return self.session.get(InventoryUnit, barcode)

    def exists(self, barcode: str) -> bool:
        return self.session.query(
            self.session.query(InventoryUnit).filter_by(barcode=barcode).exists()
        ).scalar()

    def for_product(self, product_id: str, status: str | None = None) -> list[InventoryUnit]:
        query = self.session.query(InventoryUnit).filter_by(product_id=str(product_id))
        if status is not None:
            query = query.filter_by(status=status)
        return self._ordered(query).all()

    def available_for_product(self, product_id: str) -> list[InventoryUnit]:
        return self.for_product(product_id, status=UNIT_STATUS_AVAILABLE)

    def for_order(self, order_id: int) -> list[InventoryUnit]:
        return self._ordered(self.session.query(InventoryUnit).filter_by(order_id=order_id)).all()

    def for_batch(self, batch_id: int) -> list[InventoryUnit]:
        return self._ordered(self.session.query(InventoryUnit).filter_by(batch_id=batch_id)).all()

    def count_for_batch(self, batch_id: int) -> int:
        return self.session.query(func.count(InventoryUnit.barcode)).filter_by(batch_id=batch_id).scalar() or 0

    def search(
        self,
        *,
        product_id: str | None = None,
        status: str | None = None,
        batch_id: int | None = None,
        limit: int | None = None,
    ) -> list[InventoryUnit]:
        query = self.session.query(InventoryUnit)
        if product_id is not None:
            query = query.filter_by(product_id=str(product_id))
        if status is not None:
            query = query.filter_by(status=status)
        if batch_id is not None:
            query = query.filter_by(batch_id=batch_id)
        query = self._ordered(query)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def add(self, unit: InventoryUnit) -> InventoryUnit:
        self.session.add(unit)
        return unit

    def transition(self, unit: InventoryUnit, *, expected: str, status: str, order_id: int | None) -> InventoryUnit:
        """
        Compare-and-write status flip.

        The unit must currently be in `expected`; sold units always carry the
        order id and available units never do.
        """
        if status not in UNIT_STATUSES:
            raise ValueError(f"invalid unit status {status!r}")
        if unit.status != expected:
            raise ConflictError(
                f"Unit {unit.barcode} is {unit.status}, expected {expected}",
                details={"barcode": unit.barcode, "status": unit.status, "expected": expected},
            )
        if status == UNIT_STATUS_SOLD and order_id is None:
            raise ValueError("sold units must reference an order")

        unit.status = status
        unit.order_id = order_id if status == UNIT_STATUS_SOLD else None
        unit.updated_at = utcnow()
        return unit

    def mark_sold(self, unit: InventoryUnit, order_id: int) -> InventoryUnit:
        return self.transition(unit, expected=UNIT_STATUS_AVAILABLE, status=UNIT_STATUS_SOLD, order_id=order_id)

    def release(self, unit: InventoryUnit) -> InventoryUnit:
        return self.transition(unit, expected=UNIT_STATUS_SOLD, status=UNIT_STATUS_AVAILABLE, order_id=None)

    def status_counts(self) -> dict[str, dict[str, int]]:
        """{product_id: {"available": n, "sold": m, "total": n + m}}"""
        rows = (
            self.session.query(InventoryUnit.product_id, InventoryUnit.status, func.count(InventoryUnit.barcode))
            .group_by(InventoryUnit.product_id, InventoryUnit.status)
            .all()
        )
        summary: dict[str, dict[str, int]] = {}
        for product_id, status, count in rows:
            bucket = summary.setdefault(product_id, {UNIT_STATUS_AVAILABLE: 0, UNIT_STATUS_SOLD: 0, "total": 0})
            bucket[status] = bucket.get(status, 0) + count
            bucket["total"] += count
        return summary
