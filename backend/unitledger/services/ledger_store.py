# Overview: Ledger Store; income/expense buckets of LedgerEntry rows keyed by entry id.

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import LedgerEntry
from ..models.ledger import BUCKET_EXPENSE, BUCKET_INCOME, SOURCE_MANUAL


class LedgerStore:
    """Repository over ledger entries. Derived entries are replaced in place, never duplicated."""

    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, entry_id: str) -> LedgerEntry | None:
        return self.session.get(LedgerEntry, entry_id)

    def bucket(self, bucket: str) -> list[LedgerEntry]:
        return (
            self.session.query(LedgerEntry)
            .filter_by(bucket=bucket)
            .order_by(LedgerEntry.date.desc(), LedgerEntry.id.asc())
            .all()
        )

    def income(self) -> list[LedgerEntry]:
        return self.bucket(BUCKET_INCOME)

    def expenses(self) -> list[LedgerEntry]:
        return self.bucket(BUCKET_EXPENSE)

    def derived(self) -> list[LedgerEntry]:
        """Every entry derived from an order or sale."""
        return (
            self.session.query(LedgerEntry)
            .filter(LedgerEntry.source != SOURCE_MANUAL)
            .order_by(LedgerEntry.id.asc())
            .all()
        )

    def put(self, entry_id: str, **fields) -> LedgerEntry:
        """Create the entry, or overwrite every given field of the existing one."""
        entry = self.get(entry_id)
        if entry is None:
            entry = LedgerEntry(id=entry_id, **fields)
            self.session.add(entry)
            return entry
        for key, value in fields.items():
            setattr(entry, key, value)
        return entry

    def remove(self, entry_id: str) -> bool:
        entry = self.get(entry_id)
        if entry is None:
            return False
        self.session.delete(entry)
        return True

    def totals(self) -> dict[str, Decimal]:
        rows = (
            self.session.query(LedgerEntry.bucket, func.coalesce(func.sum(LedgerEntry.amount), 0))
            .group_by(LedgerEntry.bucket)
            .all()
        )
        totals = {BUCKET_INCOME: Decimal("0"), BUCKET_EXPENSE: Decimal("0")}
        for bucket, amount in rows:
            totals[bucket] = Decimal(str(amount))
        return totals

    def count(self) -> int:
        return self.session.query(func.count(LedgerEntry.id)).scalar() or 0
