from __future__ import annotations

from ..extensions import db
from ..money import to_money_str
from ..time_utils import to_utc_z


BUCKET_INCOME = "income"
BUCKET_EXPENSE = "expense"
LEDGER_BUCKETS = (BUCKET_INCOME, BUCKET_EXPENSE)

SOURCE_MANUAL = "manual"


class LedgerEntry(db.Model):
    """
    Financial ledger row.

    Entries with source "order"/"sale" are derived, never authored: their id is
    "<source>-<order id>", so re-deriving the same order always lands on the
    same row. Expenses (source "manual") are authored elsewhere and only read here.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.Index("ix_ledger_bucket_date", "bucket", "date"),
        db.Index("ix_ledger_source_reference", "source", "reference_id"),
    )

    id = db.Column(db.String(64), primary_key=True)
    bucket = db.Column(db.String(16), nullable=False, index=True)
    source = db.Column(db.String(16), nullable=False, default=SOURCE_MANUAL)
    reference_id = db.Column(db.String(64), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    description = db.Column(db.Text, nullable=True)
    comment = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<LedgerEntry id={self.id!r} bucket={self.bucket} amount={self.amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.bucket,
            "source": self.source,
            "reference_id": self.reference_id,
            "name": self.name,
            "amount": to_money_str(self.amount),
            "category": self.category,
            "date": to_utc_z(self.date),
            "description": self.description,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
