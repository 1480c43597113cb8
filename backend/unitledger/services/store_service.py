from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Store
from ..models.inventory import STORE_TYPE_OUTLET, STORE_TYPE_WAREHOUSE, STORE_TYPES
from .concurrency import run_with_retry


def create_store(name: str, code: str | None = None, store_type: str = STORE_TYPE_OUTLET) -> Store:
    def _op():
        if not name or not name.strip():
            raise ValidationError("Store name is required")
        if store_type not in STORE_TYPES:
            raise ValidationError(f"store_type must be one of: {', '.join(STORE_TYPES)}")

        if db.session.query(Store).filter_by(name=name.strip()).first():
            raise ConflictError(f"Store {name.strip()!r} already exists")

        store = Store(name=name.strip(), code=code, store_type=store_type)
        db.session.add(store)
        db.session.commit()
        return store

    return run_with_retry(_op)


def list_stores(store_type: str | None = None) -> list[Store]:
    query = db.session.query(Store)
    if store_type is not None:
        query = query.filter_by(store_type=store_type)
    return query.order_by(Store.name.asc()).all()


def resolve_warehouse_location() -> str:
    """
    Location stamped on newly admitted units.

    First store flagged as a warehouse (lowest id), else the configured default.
    """
    warehouse = (
        db.session.query(Store)
        .filter_by(store_type=STORE_TYPE_WAREHOUSE)
        .order_by(Store.id.asc())
        .first()
    )
    if warehouse is not None:
        return warehouse.name
    return current_app.config["DEFAULT_WAREHOUSE_LOCATION"]
