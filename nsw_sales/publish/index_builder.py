"""Build the cross-year master address index and per-year address files."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from nsw_sales.common.constants import ADDRESS_DIR, MANIFEST_ARTIFACT, MASTER_INDEX_ARTIFACT
from nsw_sales.common.errors import ArtifactWriteError, StageError
from nsw_sales.common.fs import ensure_dir, read_json, write_compact_json, write_json_atomic
from nsw_sales.common.ids import hash_address
from nsw_sales.common.logging import get_logger, log_event
from nsw_sales.common.models import SHAPE_COMPACT, Manifest, resolve_shape

MasterIndex = dict[str, dict[str, int]]


@dataclass
class IndexSummary:
    addresses: int = 0
    address_files: dict[int, int] = field(default_factory=dict)
    collisions: int = 0
    bytes_written: int = 0
    files_written: int = 0


def _read_artifact(path: Path, what: str):
    try:
        return read_json(path)
    except (OSError, ValueError) as exc:
        raise StageError(f"Cannot read {what} {path}: {exc}") from exc


def _load_manifest(year_dir: Path) -> Manifest:
    payload = _read_artifact(year_dir / MANIFEST_ARTIFACT, "manifest")
    try:
        return Manifest.from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise StageError(f"Malformed manifest in {year_dir}: {exc}") from exc


def _chunk_properties(path: Path) -> list[dict]:
    payload = _read_artifact(path, "chunk")
    properties = payload.get("properties") if isinstance(payload, dict) else None
    if not isinstance(properties, list):
        raise StageError(f"Malformed chunk {path}")
    return properties


def _address_field(records: list[dict]) -> str:
    return "a" if resolve_shape(records) == SHAPE_COMPACT else "address"


def _group_year(output_dir: Path, year: int) -> dict[str, list[dict]]:
    """Group one year's stored records by lowercased address."""
    year_dir = output_dir / str(year)
    manifest = _load_manifest(year_dir)
    groups: dict[str, list[dict]] = defaultdict(list)
    for chunk in manifest.chunks:
        properties = _chunk_properties(year_dir / chunk.filename)
        key = _address_field(properties)
        for record in properties:
            address = str(record.get(key) or "")
            if not address:
                continue
            groups[address.lower()].append(record)
    return groups


def _write_address_files(
    output_dir: Path,
    year: int,
    groups: dict[str, list[dict]],
    summary: IndexSummary,
    logger: logging.Logger,
) -> None:
    address_dir = output_dir / str(year) / ADDRESS_DIR
    owners: dict[str, str] = {}
    written = 0
    try:
        ensure_dir(address_dir)
        for stale in address_dir.glob("*.json"):
            stale.unlink()

        for address, records in groups.items():
            if len(records) <= 1:
                continue
            stem = hash_address(address)
            previous = owners.setdefault(stem, address)
            if previous != address:
                summary.collisions += 1
                log_event(
                    logger,
                    f"address hash {stem} shared by {previous!r} and {address!r}; last write wins",
                    level=logging.WARNING,
                    stage="index",
                    year=year,
                    event="ADDRESS_HASH_COLLISION",
                    status="warning",
                )
                owners[stem] = address
            payload = {
                "address": str(records[0].get(_address_field(records)) or ""),
                "count": len(records),
                "properties": records,
            }
            summary.bytes_written += write_compact_json(address_dir / f"{stem}.json", payload)
            written += 1
    except OSError as exc:
        raise ArtifactWriteError(f"Failed writing address files for {year}: {exc}") from exc

    summary.files_written += written
    summary.address_files[year] = written


def build_indices(output_dir: Path, years: Iterable[int], *, logger: logging.Logger | None = None) -> IndexSummary:
    """Fold every year into the master index, then publish it once.

    Address files are written year by year; the master index only appears
    after every year has been read successfully.
    """
    logger = logger or get_logger("index")
    summary = IndexSummary()
    master: MasterIndex = defaultdict(dict)

    for year in sorted(set(int(y) for y in years)):
        groups = _group_year(output_dir, year)
        for address, records in groups.items():
            master[address][str(year)] = len(records)
        _write_address_files(output_dir, year, groups, summary, logger)
        log_event(
            logger,
            f"indexed {len(groups)} addresses",
            stage="index",
            year=year,
            event="YEAR_INDEXED",
            status="ok",
            records_out=summary.address_files.get(year, 0),
        )

    try:
        summary.bytes_written += write_json_atomic(output_dir / MASTER_INDEX_ARTIFACT, dict(master), sort_keys=True)
    except OSError as exc:
        raise ArtifactWriteError(f"Failed publishing master index: {exc}") from exc
    summary.files_written += 1
    summary.addresses = len(master)
    return summary
