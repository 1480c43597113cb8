from __future__ import annotations

from ..extensions import db
from ..money import to_money_str
from ..time_utils import to_utc_z


DEFECT_STATUS_PENDING = "pending"
DEFECT_STATUS_SOLD = "sold"
DEFECT_STATUSES = (DEFECT_STATUS_PENDING, DEFECT_STATUS_SOLD)


class DefectRecord(db.Model):
    """
    A unit flagged defective, tracked outside normal batch admission.

    Defects are their own resource type: they may carry a barcode (legacy stock
    often does not) but registering or selling one never touches InventoryUnit.

    INVARIANT: status == "sold" iff selling_price and sold_at are both set.
    order_id names the order that sold it and is cleared on reversal.
    """
    __tablename__ = "defect_records"
    __table_args__ = (
        db.Index("ix_defects_product_status", "product_id", "status"),
    )

    id = db.Column(db.String(64), primary_key=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    barcode = db.Column(db.String(96), nullable=True, index=True)
    reason = db.Column(db.String(64), nullable=True)
    store = db.Column(db.String(120), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=DEFECT_STATUS_PENDING, index=True)
    selling_price = db.Column(db.Numeric(12, 2), nullable=True)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)

    added_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<DefectRecord id={self.id!r} status={self.status} order_id={self.order_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "barcode": self.barcode,
            "reason": self.reason,
            "store": self.store,
            "status": self.status,
            "selling_price": to_money_str(self.selling_price),
            "sold_at": to_utc_z(self.sold_at),
            "order_id": self.order_id,
            "added_at": to_utc_z(self.added_at),
            "updated_at": to_utc_z(self.updated_at),
        }
