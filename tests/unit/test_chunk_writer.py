from __future__ import annotations

import json
from pathlib import Path

import pytest

from nsw_sales.common.models import TransactionRecord
from nsw_sales.publish.chunk_writer import partition, sort_for_chunking, write_year_chunks


def _record(address: str, price: int = 500000, suburb: str = "ABERDARE") -> TransactionRecord:
    return TransactionRecord(address=address, suburb=suburb, sale_price=price, year=2020, sale_date="2020-01-01")


def test_write_year_chunks_partitions_into_bounded_pages(tmp_path: Path):
    records = [_record(f"{i} MAIN ST") for i in range(10001)]

    manifest = write_year_chunks(2020, records, tmp_path, records_per_chunk=5000, created="2020-06-01T00:00:00Z")

    assert manifest.total_properties == 10001
    assert [chunk.count for chunk in manifest.chunks] == [5000, 5000, 1]
    assert [chunk.filename for chunk in manifest.chunks] == [
        "properties-2020-000.json",
        "properties-2020-001.json",
        "properties-2020-002.json",
    ]
    last = json.loads((tmp_path / "2020" / "properties-2020-002.json").read_text(encoding="utf-8"))
    assert last["chunkId"] == "002"
    assert last["count"] == 1
    assert last["year"] == 2020


def test_manifest_sizes_match_files_on_disk(tmp_path: Path):
    manifest = write_year_chunks(2020, [_record("1 A ST"), _record("2 B ST")], tmp_path, records_per_chunk=1)

    for chunk in manifest.chunks:
        assert (tmp_path / "2020" / chunk.filename).stat().st_size == chunk.size

    stored = json.loads((tmp_path / "2020" / "manifest.json").read_text(encoding="utf-8"))
    assert stored["totalProperties"] == 2
    assert [chunk["filename"] for chunk in stored["chunks"]] == [c.filename for c in manifest.chunks]


def test_chunks_hold_compact_records_sorted_by_address(tmp_path: Path):
    write_year_chunks(2020, [_record("9 Z ST", 700000), _record("1 A ST", 300000)], tmp_path)

    payload = json.loads((tmp_path / "2020" / "properties-2020-000.json").read_text(encoding="utf-8"))

    assert [record["a"] for record in payload["properties"]] == ["1 A ST", "9 Z ST"]
    assert payload["properties"][0]["$"] == 300000
    assert set(payload["properties"][0]) == {"a", "s", "p", "t", "$", "d", "l", "m", "y", "z", "n"}


def test_empty_year_writes_manifest_without_chunks(tmp_path: Path):
    manifest = write_year_chunks(2020, [], tmp_path)

    assert manifest.chunks == []
    assert manifest.total_properties == 0
    assert (tmp_path / "2020" / "manifest.json").exists()


def test_rerun_removes_stale_chunks(tmp_path: Path):
    write_year_chunks(2020, [_record(f"{i} A ST") for i in range(3)], tmp_path, records_per_chunk=1)
    write_year_chunks(2020, [_record("1 A ST")], tmp_path, records_per_chunk=1)

    assert sorted(p.name for p in (tmp_path / "2020").glob("properties-*.json")) == ["properties-2020-000.json"]


def test_sort_is_stable_for_equal_addresses():
    first = _record("5 SAME ST", 100000)
    second = _record("5 SAME ST", 200000)

    assert sort_for_chunking([second, first]) == [second, first]


def test_partition_rejects_non_positive_size():
    with pytest.raises(ValueError):
        partition([], 0)


def test_manifest_keys_keep_publication_order(tmp_path: Path):
    write_year_chunks(2020, [_record("1 A ST")], tmp_path, created="2020-06-01T00:00:00Z")

    stored = json.loads((tmp_path / "2020" / "manifest.json").read_text(encoding="utf-8"))

    assert list(stored) == ["year", "totalProperties", "chunks", "created"]
    assert list(stored["chunks"][0]) == ["filename", "count", "size"]
