"""Partition one year's records into bounded chunk artifacts and a manifest."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from nsw_sales.common.constants import DEFAULT_RECORDS_PER_CHUNK, MANIFEST_ARTIFACT
from nsw_sales.common.errors import ArtifactWriteError
from nsw_sales.common.fs import ensure_dir, write_compact_json, write_json
from nsw_sales.common.ids import chunk_filename, chunk_id
from nsw_sales.common.models import ChunkEntry, Manifest, TransactionRecord
from nsw_sales.common.time_utils import utc_timestamp_iso


def sort_for_chunking(records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    # sorted() is stable, so equal addresses keep their input order.
    return sorted(records, key=lambda record: record.address)


def partition(records: list[TransactionRecord], records_per_chunk: int) -> list[list[TransactionRecord]]:
    if records_per_chunk <= 0:
        raise ValueError("records_per_chunk must be positive")
    return [records[i : i + records_per_chunk] for i in range(0, len(records), records_per_chunk)]


def build_chunk_payload(year: int, index: int, records: list[TransactionRecord]) -> dict:
    return {
        "year": int(year),
        "chunkId": chunk_id(index),
        "count": len(records),
        "properties": [record.to_compact() for record in records],
    }


def _clear_stale_chunks(year_dir: Path, year: int) -> None:
    for path in year_dir.glob(f"properties-{year}-*.json"):
        path.unlink()


def write_year_chunks(
    year: int,
    records: Iterable[TransactionRecord],
    output_dir: Path,
    *,
    records_per_chunk: int = DEFAULT_RECORDS_PER_CHUNK,
    created: str | None = None,
) -> Manifest:
    """Write ``<year>/properties-<year>-NNN.json`` pages and the manifest.

    Output is a pure function of the records and ``records_per_chunk``
    except for ``created``, which defaults to the current UTC time.
    """
    ordered = sort_for_chunking(records)
    pages = partition(ordered, records_per_chunk)
    year_dir = output_dir / str(year)

    entries: list[ChunkEntry] = []
    try:
        ensure_dir(year_dir)
        _clear_stale_chunks(year_dir, year)
        for index, page in enumerate(pages):
            filename = chunk_filename(year, index)
            size = write_compact_json(year_dir / filename, build_chunk_payload(year, index, page))
            entries.append(ChunkEntry(filename=filename, count=len(page), size=size))

        manifest = Manifest(
            year=int(year),
            total_properties=len(ordered),
            chunks=entries,
            created=created or utc_timestamp_iso(),
        )
        write_json(year_dir / MANIFEST_ARTIFACT, manifest.to_dict(), sort_keys=False)
    except OSError as exc:
        raise ArtifactWriteError(f"Failed writing chunks for {year}: {exc}") from exc

    return manifest
