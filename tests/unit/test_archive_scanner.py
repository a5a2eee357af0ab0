from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path

import pytest

from nsw_sales.common.errors import ArchiveError
from nsw_sales.ingest.archive_scanner import describe_archive, open_archive, scan_archive


def _zip_bytes(entries: list[tuple[str, bytes]]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries:
            zf.writestr(name, data)
    return buf.getvalue()


def _write_zip(path: Path, entries: list[tuple[str, bytes]]) -> Path:
    path.write_bytes(_zip_bytes(entries))
    return path


def test_scan_archive_walks_nested_archives_depth_first(tmp_path: Path):
    inner = _zip_bytes([("week1/001.dat", b"inner-1"), ("week1/002.DAT", b"inner-2")])
    outer = _write_zip(
        tmp_path / "2020.zip",
        [("readme.txt", b"ignore"), ("a.dat", b"first"), ("weekly.zip", inner), ("z.dat", b"last")],
    )

    with open_archive(outer) as archive:
        entries = scan_archive(archive)

    assert [entry.data for entry in entries] == [b"first", b"inner-1", b"inner-2", b"last"]
    assert entries[1].path == "2020.zip!weekly.zip!week1/001.dat"
    assert entries[0].containers == ("2020.zip",)


def test_corrupt_nested_archive_is_skipped_and_earlier_entries_kept(tmp_path: Path, caplog):
    outer = _write_zip(
        tmp_path / "2021.zip",
        [("a.dat", b"kept"), ("broken.zip", b"this is not a zip"), ("b.dat", b"also kept")],
    )

    with caplog.at_level(logging.WARNING, logger="nsw_sales.scan"):
        with open_archive(outer) as archive:
            entries = scan_archive(archive)

    assert [entry.data for entry in entries] == [b"kept", b"also kept"]
    skipped = [record for record in caplog.records if getattr(record, "event", None) == "ARCHIVE_ENTRY_SKIPPED"]
    assert len(skipped) == 1
    assert skipped[0].error_code == "NESTED_ARCHIVE_UNREADABLE"


def test_nesting_deeper_than_limit_is_skipped(tmp_path: Path):
    level2 = _zip_bytes([("deep.dat", b"deep")])
    level1 = _zip_bytes([("mid.dat", b"mid"), ("level2.zip", level2)])
    outer = _write_zip(tmp_path / "2022.zip", [("level1.zip", level1)])

    with open_archive(outer) as archive:
        shallow = scan_archive(archive, max_depth=1)
    with open_archive(outer) as archive:
        full = scan_archive(archive, max_depth=8)

    assert [entry.data for entry in shallow] == [b"mid"]
    assert [entry.data for entry in full] == [b"mid", b"deep"]


def test_custom_extensions_are_honoured(tmp_path: Path):
    outer = _write_zip(tmp_path / "2019.zip", [("x.dat", b"dat"), ("y.txt", b"txt")])

    with open_archive(outer) as archive:
        entries = scan_archive(archive, raw_extension=".TXT")

    assert [entry.name for entry in entries] == ["y.txt"]


def test_open_archive_raises_archive_error_for_garbage(tmp_path: Path):
    bogus = tmp_path / "2020.zip"
    bogus.write_bytes(b"not a zip at all")

    with pytest.raises(ArchiveError):
        open_archive(bogus)


def test_describe_archive_counts_top_level_entry_types(tmp_path: Path):
    outer = _write_zip(
        tmp_path / "2020.zip",
        [("a.dat", b"1"), ("b.dat", b"2"), ("c.zip", _zip_bytes([])), ("notes", b"")],
    )

    with open_archive(outer) as archive:
        assert describe_archive(archive) == {"<none>": 1, "dat": 2, "zip": 1}
