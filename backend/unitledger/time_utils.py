# Overview: UTC time helpers; every stored datetime is UTC-naive and every serialized one ends in 'Z'.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-03-01", "2026-03-01T10:00", "...Z" or "...+02:00" -> UTC-naive datetime.

    Blank input gives None; malformed input raises ValueError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _as_utc_naive(datetime.fromisoformat(text))


def first_record_datetime(record: dict, keys: Iterable[str]) -> Optional[datetime]:
    """First key of `record` holding a parseable ISO date; malformed values are skipped."""
    for key in keys:
        raw = record.get(key)
        if not isinstance(raw, str):
            continue
        try:
            parsed = parse_iso_datetime(raw)
        except ValueError:
            continue
        if parsed is not None:
            return parsed
    return None


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a trailing 'Z'; naive values are taken as UTC."""
    if dt is None:
        return None
    stamp = _as_utc_naive(dt).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"
