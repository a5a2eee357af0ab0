"""UTC-focused helpers for run metadata."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def utc_current_year() -> int:
    return utc_now().year


def utc_timestamp_iso() -> str:
    return utc_now().isoformat(timespec="milliseconds")
