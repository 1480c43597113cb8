# Overview: Deterministic identifier derivation shared by admission, allocation and ledger sync.

from __future__ import annotations

import uuid

from ..errors import ValidationError
from ..models.orders import ORDER_KINDS


BARCODE_SEQUENCE_WIDTH = 2


def normalize_code(value) -> str:
    """Scanned or typed code with surrounding whitespace removed."""
    if value is None:
        return ""
    return str(value).strip()


def unit_barcode(base_code: str, sequence: int) -> str:
    """'SHOE', 3 -> 'SHOE-03'. Sequence numbers wider than the padding print as-is."""
    return f"{base_code}-{sequence:0{BARCODE_SEQUENCE_WIDTH}d}"


def expected_barcodes(base_code: str, quantity: int) -> list[str]:
    """Ordered barcodes a batch of `quantity` units is expected to produce."""
    return [unit_barcode(base_code, n) for n in range(1, quantity + 1)]


def ledger_entry_id(source_id, kind: str) -> str:
    """
    Stable ledger id for an order or sale.

    Regenerating the entry for the same source always yields the same id, which
    is what makes upsert idempotent.
    """
    if kind not in ORDER_KINDS:
        raise ValidationError(f"Unknown ledger source kind: {kind}")
    source = str(source_id).strip()
    if not source:
        raise ValidationError("source id is required")
    return f"{kind}-{source}"


def parse_ledger_entry_id(entry_id: str) -> tuple[str, str] | None:
    """Inverse of ledger_entry_id; None for ids that were not derived from an order/sale."""
    kind, sep, source_id = (entry_id or "").partition("-")
    if not sep or kind not in ORDER_KINDS or not source_id:
        return None
    return kind, source_id


def new_defect_id() -> str:
    return f"defect-{uuid.uuid4().hex[:12]}"


def new_line_id() -> str:
    return uuid.uuid4().hex[:12]
