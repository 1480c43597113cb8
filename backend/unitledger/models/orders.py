from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ORDER_KIND_ORDER = "order"
ORDER_KIND_SALE = "sale"
ORDER_KINDS = (ORDER_KIND_ORDER, ORDER_KIND_SALE)


class Order(db.Model):
    """
    Customer order (social commerce) or POS sale.

    Only the fields that drive allocation and ledgering are columns. Line items
    live in `items` (each line carries its allocated `barcodes`); every other
    client field (customer, amounts, notes, ...) is kept verbatim in `data` so
    edits can merge into it and ledger derivation can read legacy totals.

    JSON columns are replaced wholesale on change, never mutated in place.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_kind_created", "kind", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False, default=ORDER_KIND_ORDER, index=True)

    items = db.Column(db.JSON, nullable=False, default=list)
    data = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} kind={self.kind} lines={len(self.items or [])}>"

    def to_record(self) -> dict:
        """Flat dict view used by the ledger synchronizer and the API."""
        record = dict(self.data or {})
        record.update({
            "id": self.id,
            "kind": self.kind,
            "items": [dict(line) for line in (self.items or [])],
        })
        return record

    def to_dict(self) -> dict:
        record = self.to_record()
        record.update({
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        })
        return record
