"""
Pytest fixtures for Unit Ledger backend tests.

Provides an in-memory application, a per-test table wipe, the test client and
small factories for batches, admitted stock and defective items.
"""

from decimal import Decimal

import pytest
from unitledger import create_app
from unitledger.extensions import db
from unitledger.models import Store
from unitledger.models.inventory import STORE_TYPE_WAREHOUSE
from unitledger.services import admission_service
from unitledger.services.defect_service import register_defect


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WRITE_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def warehouse(db_session):
    store = Store(name="Central Warehouse", code="CW", store_type=STORE_TYPE_WAREHOUSE)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def make_batch(db_session):
    """Plan a batch; admit=True also admits every expected barcode."""
    def _make(base_code="SHOE", product_id="P1", quantity=3, admit=False,
              cost_price="60.00", selling_price="100.00"):
        batch = admission_service.create_batch(
            base_code=base_code,
            product_id=product_id,
            cost_price=Decimal(cost_price),
            selling_price=Decimal(selling_price),
            quantity=quantity,
        )
        if admit:
            for code in admission_service.expected_barcodes(batch):
                admission_service.admit_one(batch.id, code)
        return batch
    return _make


@pytest.fixture(scope='function')
def make_defect(db_session):
    def _make(product_id="P1", defect_id=None, barcode=None, reason="scratched"):
        return register_defect(product_id=product_id, reason=reason, barcode=barcode, defect_id=defect_id)
    return _make
