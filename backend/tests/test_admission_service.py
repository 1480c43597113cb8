import pytest

from unitledger.errors import BatchCompleteError, DuplicateOrInvalidCodeError, NotFoundError
from unitledger.extensions import db
from unitledger.models import Batch, InventoryUnit
from unitledger.services import admission_service


def test_batch_completes_on_last_expected_code(db_session, warehouse, make_batch):
    batch = make_batch(base_code="SHOE", quantity=3)

    admission_service.admit_one(batch.id, "SHOE-01")
    admission_service.admit_one(batch.id, " SHOE-02 ")

    with pytest.raises(DuplicateOrInvalidCodeError):
        admission_service.admit_one(batch.id, "SHOE-02")
    with pytest.raises(DuplicateOrInvalidCodeError):
        admission_service.admit_one(batch.id, "BOOT-01")
    assert db.session.get(Batch, batch.id).admitted is False

    unit = admission_service.admit_one(batch.id, "SHOE-03")
    assert unit.status == "available"
    assert unit.location == "Central Warehouse"
    assert unit.selling_price == batch.selling_price

    refreshed = db.session.get(Batch, batch.id)
    assert refreshed.admitted is True
    assert refreshed.admitted_at is not None
    assert db.session.query(InventoryUnit).filter_by(batch_id=batch.id).count() == 3


def test_no_admission_after_completion(db_session, make_batch):
    batch = make_batch(base_code="CAP", quantity=1, admit=True)
    with pytest.raises(BatchCompleteError):
        admission_service.admit_one(batch.id, "CAP-01")


def test_failed_admission_changes_nothing(db_session, make_batch):
    batch = make_batch(base_code="HAT", quantity=2)
    with pytest.raises(DuplicateOrInvalidCodeError):
        admission_service.admit_one(batch.id, "HAT-03")
    with pytest.raises(DuplicateOrInvalidCodeError):
        admission_service.admit_one(batch.id, "")
    assert db.session.query(InventoryUnit).count() == 0


def test_location_falls_back_to_configured_default(db_session, make_batch):
    batch = make_batch(base_code="BELT", quantity=1)
    unit = admission_service.admit_one(batch.id, "BELT-01")
    assert unit.location == "Main Warehouse"


def test_unknown_batch(db_session):
    with pytest.raises(NotFoundError):
        admission_service.admit_one(999, "X-01")


def test_progress_lists_admitted_and_remaining(db_session, make_batch):
    batch = make_batch(base_code="SOCK", quantity=4)
    admission_service.admit_one(batch.id, "SOCK-03")

    progress = admission_service.get_progress(batch.id)
    assert progress["admitted"] == ["SOCK-03"]
    assert progress["remaining"] == ["SOCK-01", "SOCK-02", "SOCK-04"]
    assert progress["admitted_count"] == 1
    assert progress["percent"] == 25.0
    assert progress["complete"] is False


def test_admission_in_any_order_then_batch_complete(db_session, make_batch):
    batch = make_batch(base_code="SHOE", quantity=3)
    for code in ("SHOE-02", "SHOE-01", "SHOE-03"):
        admission_service.admit_one(batch.id, code)

    assert db.session.get(Batch, batch.id).admitted is True
    with pytest.raises(BatchCompleteError):
        admission_service.admit_one(batch.id, "SHOE-01")
