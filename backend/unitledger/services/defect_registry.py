# Overview: Defect Registry; pending/sold lifecycle of defective units, independent of the Unit Store.

from __future__ import annotations

from decimal import Decimal

from ..errors import DefectUnavailableError
from ..extensions import db
from ..models import DefectRecord
from ..models.defects import DEFECT_STATUS_PENDING, DEFECT_STATUS_SOLD
from ..time_utils import utcnow


class DefectRegistry:
    """Repository over defect records keyed by defect id."""

    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, defect_id: str) -> DefectRecord | None:
        return self.session.get(DefectRecord, defect_id)

    def search(self, *, status: str | None = None, store: str | None = None) -> list[DefectRecord]:
        query = self.session.query(DefectRecord)
        if status is not None:
            query = query.filter_by(status=status)
        if store is not None:
            query = query.filter_by(store=store)
        return query.order_by(DefectRecord.added_at.desc(), DefectRecord.id.asc()).all()

    def for_order(self, order_id: int) -> list[DefectRecord]:
        return (
            self.session.query(DefectRecord)
            .filter_by(order_id=order_id)
            .order_by(DefectRecord.id.asc())
            .all()
        )

    def add(self, defect: DefectRecord) -> DefectRecord:
        self.session.add(defect)
        return defect

    def delete(self, defect: DefectRecord) -> None:
        self.session.delete(defect)

    def mark_sold(self, defect: DefectRecord, *, price: Decimal, order_id: int) -> DefectRecord:
        """pending -> sold; anything else is unavailable."""
        if defect.status != DEFECT_STATUS_PENDING:
            raise DefectUnavailableError(
                f"Defective item {defect.id} is not available for sale (status: {defect.status})",
                details={"defect_id": defect.id, "status": defect.status, "order_id": defect.order_id},
            )
        now = utcnow()
        defect.status = DEFECT_STATUS_SOLD
        defect.selling_price = price
        defect.sold_at = now
        defect.order_id = order_id
        defect.updated_at = now
        return defect

    def reprice(self, defect: DefectRecord, price: Decimal) -> DefectRecord:
        """Change the sale price of a sold defect; a no-op when it is unchanged."""
        if defect.status != DEFECT_STATUS_SOLD:
            raise DefectUnavailableError(
                f"Defective item {defect.id} is not sold (status: {defect.status})",
                details={"defect_id": defect.id, "status": defect.status},
            )
        if defect.selling_price != price:
            defect.selling_price = price
            defect.updated_at = utcnow()
        return defect

    def mark_pending(self, defect: DefectRecord) -> DefectRecord:
        """sold -> pending; clears the sale price, timestamp and owning order."""
        defect.status = DEFECT_STATUS_PENDING
        defect.selling_price = None
        defect.sold_at = None
        defect.order_id = None
        defect.updated_at = utcnow()
        return defect
