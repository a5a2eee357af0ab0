"""Lenient numeric reading for source fields and stored artifacts."""

from __future__ import annotations

import re

_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _normalise(value: float) -> int | float:
    if value != value or value in (float("inf"), float("-inf")):
        return 0
    if value.is_integer():
        return int(value)
    return value


def parse_number(raw: str | None) -> int | float:
    """Read the leading numeric prefix of ``raw``; anything else is 0."""
    match = _LEADING_NUMBER_RE.match(raw or "")
    if not match:
        return 0
    return _normalise(float(match.group(1)))


def coerce_number(value) -> int | float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _normalise(value)
    if isinstance(value, str):
        return parse_number(value)
    return 0
