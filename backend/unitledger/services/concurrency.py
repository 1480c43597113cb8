# Overview: Read-modify-write guard shared by every store; retries stale writes and maps driver errors.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, InventoryError, PersistenceError
from ..extensions import db


def _retry_policy(attempts: int | None, backoff_base: float | None) -> tuple[int, float]:
    if attempts is None:
        attempts = current_app.config.get("WRITE_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("WRITE_RETRY_BACKOFF", 0.1)
    return max(1, int(attempts)), float(backoff_base)


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute one read-modify-write cycle with retry on concurrency failures.

    func must read, mutate and commit inside a single session transaction.

    - OperationalError (locks) and StaleDataError (version_id mismatch) roll back
      and retry with exponential backoff. A version mismatch that survives every
      attempt is raised as ConflictError instead of overwriting.
    - InventoryError rolls back and propagates unchanged: nothing is flushed.
    - Any other SQLAlchemyError rolls back and surfaces as PersistenceError.
    """
    attempts, backoff_base = _retry_policy(attempts, backoff_base)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                if isinstance(exc, StaleDataError):
                    raise ConflictError(
                        "Record was modified concurrently; reload and retry",
                        details={"attempts": attempts},
                    ) from exc
                raise PersistenceError("Database is busy", details={"attempts": attempts}) from exc
            current_app.logger.warning(
                "Concurrent write detected (attempt %s/%s): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
        except InventoryError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Failed to persist changes") from exc
        except Exception:
            db.session.rollback()
            raise
