import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from unitledger.errors import ConflictError, NotFoundError, PersistenceError
from unitledger.services.concurrency import run_with_retry


def test_retries_locked_database_then_succeeds(db_session):
    calls = []

    def _op():
        calls.append(1)
        if len(calls) < 3:
            raise OperationalError("UPDATE inventory_units", {}, Exception("database is locked"))
        return "ok"

    assert run_with_retry(_op, attempts=3, backoff_base=0) == "ok"
    assert len(calls) == 3


def test_persistent_version_mismatch_becomes_conflict(db_session):
    def _op():
        raise StaleDataError("UPDATE statement on table 'orders' expected to update 1 row(s); 0 were matched.")

    with pytest.raises(ConflictError):
        run_with_retry(_op, attempts=2, backoff_base=0)


def test_exhausted_lock_retries_become_persistence_error(db_session):
    def _op():
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    with pytest.raises(PersistenceError):
        run_with_retry(_op, attempts=2, backoff_base=0)


def test_domain_errors_propagate_without_retry(db_session):
    calls = []

    def _op():
        calls.append(1)
        raise NotFoundError("Order 1 not found")

    with pytest.raises(NotFoundError):
        run_with_retry(_op, attempts=3, backoff_base=0)
    assert len(calls) == 1


def test_other_database_errors_become_persistence_error(db_session):
    def _op():
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(PersistenceError):
        run_with_retry(_op, attempts=3, backoff_base=0)
