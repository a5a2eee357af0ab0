"""Archive discovery and per-archive extraction with fail-soft semantics."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path

from nsw_sales.common.config_loader import SourceConfig
from nsw_sales.common.errors import SourceError
from nsw_sales.common.logging import log_event
from nsw_sales.common.time_utils import utc_current_year
from nsw_sales.ingest.archive_scanner import open_archive, scan_archive
from nsw_sales.ingest.record_parser import ParseResult, decode_raw_bytes, parse_raw_content

_YEAR_RE = re.compile(r"(\d{4})")


@dataclass
class ArchiveResult:
    archive: str
    year: int
    raw_entries: int = 0
    parse: ParseResult = field(default_factory=ParseResult)


def extract_year(archive_name: str, logger: logging.Logger | None = None) -> int:
    match = _YEAR_RE.search(archive_name)
    if match:
        return int(match.group(1))
    year = utc_current_year()
    if logger is not None:
        log_event(
            logger,
            f"no year in archive name {archive_name}; using {year}",
            level=logging.WARNING,
            stage="extract",
            archive=archive_name,
            year=year,
            event="YEAR_DEFAULTED",
            status="warning",
        )
    return year


def discover_archives(source: SourceConfig) -> list[Path]:
    directory = source.directory
    if not directory.is_dir():
        raise SourceError(f"Source directory not found: {directory}")
    archives = sorted(
        path for path in directory.iterdir() if path.is_file() and path.name.lower().endswith(source.archive_extension)
    )
    if not archives:
        raise SourceError(f"No {source.archive_extension} archives found in {directory}")
    return archives


def process_archive(archive_path: Path, source: SourceConfig, logger: logging.Logger, run_id: str | None = None) -> ArchiveResult:
    """Extract and parse every raw file of one top-level archive.

    Raises ArchiveError when the archive itself cannot be opened.
    """
    started = time.monotonic()
    year = extract_year(archive_path.name, logger)
    result = ArchiveResult(archive=archive_path.name, year=year)

    with open_archive(archive_path) as archive:
        entries = scan_archive(
            archive,
            raw_extension=source.raw_extension,
            archive_extension=source.archive_extension,
            max_depth=source.max_archive_depth,
            logger=logger,
        )

    result.raw_entries = len(entries)
    for entry in entries:
        result.parse.extend(parse_raw_content(decode_raw_bytes(entry.data), year))

    log_event(
        logger,
        f"extracted {len(result.parse.records)} records from {len(entries)} raw files",
        run_id=run_id,
        stage="extract",
        archive=archive_path.name,
        year=year,
        event="ARCHIVE_DONE",
        status="ok",
        records_in=result.parse.candidates,
        records_out=len(result.parse.records),
        rejected=result.parse.rejected,
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    return result
