from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from nsw_sales.common.errors import StageError
from nsw_sales.common.ids import hash_address
from nsw_sales.common.models import TransactionRecord
from nsw_sales.publish.chunk_writer import write_year_chunks
from nsw_sales.publish.index_builder import build_indices
from nsw_sales.query.fetchers import LocalDirectoryFetcher
from nsw_sales.query.service import QueryService


def _record(address: str, year: int, price: int = 500000) -> TransactionRecord:
    return TransactionRecord(address=address, suburb="ABERDARE", sale_price=price, year=year, sale_date=f"{year}-03-01")


def _publish(tmp_path: Path) -> None:
    write_year_chunks(
        2019,
        [_record("103 RAWSON ST", 2019), _record("103 RAWSON ST", 2019, 410000), _record("7 HIGH ST", 2019)],
        tmp_path,
        records_per_chunk=2,
    )
    write_year_chunks(2020, [_record("103 RAWSON ST", 2020)], tmp_path)


def test_master_index_counts_every_address_and_year(tmp_path: Path):
    _publish(tmp_path)

    summary = build_indices(tmp_path, [2019, 2020])

    master = json.loads((tmp_path / "master-address-index.json").read_text(encoding="utf-8"))
    assert master == {
        "103 rawson st": {"2019": 2, "2020": 1},
        "7 high st": {"2019": 1},
    }
    assert summary.addresses == 2


def test_address_files_exist_only_for_repeat_sales(tmp_path: Path):
    _publish(tmp_path)

    summary = build_indices(tmp_path, [2019, 2020])

    repeat = tmp_path / "2019" / "addresses" / f"{hash_address('103 rawson st')}.json"
    payload = json.loads(repeat.read_text(encoding="utf-8"))
    assert payload["address"] == "103 RAWSON ST"
    assert payload["count"] == 2
    assert len(payload["properties"]) == 2
    assert not (tmp_path / "2019" / "addresses" / f"{hash_address('7 high st')}.json").exists()
    assert list((tmp_path / "2020" / "addresses").glob("*.json")) == []
    assert summary.address_files == {2019: 1, 2020: 0}


def test_unreadable_manifest_aborts_without_master_index(tmp_path: Path):
    _publish(tmp_path)
    (tmp_path / "2020" / "manifest.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(StageError):
        build_indices(tmp_path, [2019, 2020])

    assert not (tmp_path / "master-address-index.json").exists()


def test_missing_chunk_aborts(tmp_path: Path):
    _publish(tmp_path)
    (tmp_path / "2019" / "properties-2019-001.json").unlink()

    with pytest.raises(StageError):
        build_indices(tmp_path, [2019])


def test_expanded_chunks_are_indexed_too(tmp_path: Path):
    year_dir = tmp_path / "2018"
    year_dir.mkdir()
    chunk = {"year": 2018, "chunkId": "000", "count": 2, "properties": [
        {"address": "1 OLD RD", "suburb": "X", "salePrice": 2000, "year": 2018},
        {"address": "1 OLD RD", "suburb": "X", "salePrice": 3000, "year": 2018},
    ]}
    (year_dir / "properties-2018-000.json").write_text(json.dumps(chunk), encoding="utf-8")
    manifest = {"year": 2018, "totalProperties": 2, "chunks": [{"filename": "properties-2018-000.json", "count": 2, "size": 0}]}
    (year_dir / "manifest.json").write_text(json.dumps(manifest), encoding="utf-8")

    build_indices(tmp_path, [2018])

    master = json.loads((tmp_path / "master-address-index.json").read_text(encoding="utf-8"))
    assert master == {"1 old rd": {"2018": 2}}


def test_colliding_address_hashes_are_logged_and_never_mix_records(tmp_path: Path, caplog):
    assert hash_address("103 rawson rd") == hash_address("103 rawson st")
    write_year_chunks(
        2019,
        [
            _record("103 RAWSON RD", 2019, 150000),
            _record("103 RAWSON RD", 2019, 160000),
            _record("103 RAWSON ST", 2019, 260000),
            _record("103 RAWSON ST", 2019, 270000),
        ],
        tmp_path,
    )

    with caplog.at_level(logging.WARNING, logger="nsw_sales.index"):
        summary = build_indices(tmp_path, [2019])

    collisions = [record for record in caplog.records if getattr(record, "event", None) == "ADDRESS_HASH_COLLISION"]
    assert len(collisions) == 1
    assert summary.collisions == 1
    assert summary.address_files == {2019: 2}

    # Chunks are address-sorted, so the "ST" group is written last and owns the file.
    stored = json.loads((tmp_path / "2019" / "addresses" / f"{hash_address('103 rawson st')}.json").read_text(encoding="utf-8"))
    assert stored["address"] == "103 RAWSON ST"

    service = QueryService(LocalDirectoryFetcher(tmp_path), max_workers=1)
    overwritten = service.get_property("103 rawson rd")
    owner = service.get_property("103 rawson st")

    assert sorted(record.sale_price for record in overwritten) == [150000, 160000]
    assert {record.address for record in overwritten} == {"103 RAWSON RD"}
    assert sorted(record.sale_price for record in owner) == [260000, 270000]
