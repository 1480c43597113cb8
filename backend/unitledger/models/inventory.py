from __future__ import annotations

from ..extensions import db
from ..money import to_money_str
from ..time_utils import to_utc_z


UNIT_STATUS_AVAILABLE = "available"
UNIT_STATUS_SOLD = "sold"
UNIT_STATUSES = (UNIT_STATUS_AVAILABLE, UNIT_STATUS_SOLD)

STORE_TYPE_WAREHOUSE = "warehouse"
STORE_TYPE_OUTLET = "outlet"
STORE_TYPES = (STORE_TYPE_WAREHOUSE, STORE_TYPE_OUTLET)


class Store(db.Model):
    """
    Physical location (warehouse or outlet).

    Read-only from the admission path: the first warehouse (by id) names the
    location stamped on newly admitted units.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_stores_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True, index=True)
    store_type = db.Column(db.String(16), nullable=False, default=STORE_TYPE_OUTLET, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} type={self.store_type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "store_type": self.store_type,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class Batch(db.Model):
    """
    Planned admission of `quantity` units of one product at one cost/selling price.

    LIFECYCLE:
    planned (admitted=False, 0 units) -> admitting (0 < units < quantity)
    -> complete (admitted=True). Nothing leaves `complete`.

    The admitted count is not stored here; it is the number of InventoryUnit
    rows pointing at this batch.
    """
    __tablename__ = "batches"
    __table_args__ = (
        db.UniqueConstraint("base_code", name="uq_batches_base_code"),
        db.Index("ix_batches_product_admitted", "product_id", "admitted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    base_code = db.Column(db.String(64), nullable=False)
    product_id = db.Column(db.String(64), nullable=False, index=True)

    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    admitted = db.Column(db.Boolean, nullable=False, default=False)
    admitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Batch id={self.id} base_code={self.base_code!r} qty={self.quantity} admitted={self.admitted}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "base_code": self.base_code,
            "product_id": self.product_id,
            "cost_price": to_money_str(self.cost_price),
            "selling_price": to_money_str(self.selling_price),
            "quantity": self.quantity,
            "admitted": "yes" if self.admitted else "no",
            "admitted_at": to_utc_z(self.admitted_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class InventoryUnit(db.Model):
    """
    One physical, individually barcoded item.

    INVARIANTS:
    - status == "sold" iff order_id is set.
    - A unit is referenced by at most one order at a time.
    - Units are never deleted; conservation (available + sold == admitted) holds.
    """
    __tablename__ = "inventory_units"
    __table_args__ = (
        db.Index("ix_units_product_status", "product_id", "status"),
        db.CheckConstraint(
            "(status = 'sold' AND order_id IS NOT NULL) OR (status = 'available' AND order_id IS NULL)",
            name="ck_units_status_order",
        ),
    )

    barcode = db.Column(db.String(96), primary_key=True)
    product_id = db.Column(db.String(64), nullable=False, index=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id"), nullable=False, index=True)

    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=UNIT_STATUS_AVAILABLE, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    location = db.Column(db.String(120), nullable=False)

    admitted_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)

    batch = db.relationship("Batch", backref=db.backref("units", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryUnit barcode={self.barcode!r} status={self.status} order_id={self.order_id}>"

    def to_dict(self) -> dict:
        return {
            "barcode": self.barcode,
            "product_id": self.product_id,
            "batch_id": self.batch_id,
            "cost_price": to_money_str(self.cost_price),
            "selling_price": to_money_str(self.selling_price),
            "status": self.status,
            "order_id": self.order_id,
            "location": self.location,
            "admitted_at": to_utc_z(self.admitted_at),
            "updated_at": to_utc_z(self.updated_at),
        }
