"""Run and artifact identifier helpers."""

from __future__ import annotations

import base64
from datetime import datetime, timezone

from nsw_sales.common.constants import ADDRESS_DIR, ADDRESS_HASH_LENGTH, MANIFEST_ARTIFACT


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    # Sortable id without external dependency.
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")


def hash_address(address: str) -> str:
    """Return the AddressFile stem for an already lowercased address.

    Base64 of the UTF-8 bytes with ``/``, ``+`` and ``=`` removed, cut to
    twelve characters. Distinct addresses sharing a prefix can collide.
    """
    encoded = base64.b64encode(address.encode("utf-8")).decode("ascii")
    for ch in "/+=":
        encoded = encoded.replace(ch, "")
    return encoded[:ADDRESS_HASH_LENGTH]


def chunk_id(index: int) -> str:
    return f"{index:03d}"


def chunk_filename(year: int, index: int) -> str:
    return f"properties-{year}-{chunk_id(index)}.json"


def manifest_artifact(year: int | str) -> str:
    return f"{year}/{MANIFEST_ARTIFACT}"


def chunk_artifact(year: int | str, filename: str) -> str:
    return f"{year}/{filename}"


def address_artifact(year: int | str, address: str) -> str:
    return f"{year}/{ADDRESS_DIR}/{hash_address(address)}.json"
