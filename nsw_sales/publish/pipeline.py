"""Batch publication: archives -> chunks and manifests -> indices -> README."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from nsw_sales.common.config_loader import PipelineConfig
from nsw_sales.common.errors import PipelineError
from nsw_sales.common.logging import log_event
from nsw_sales.common.models import TransactionRecord
from nsw_sales.common.time_utils import utc_timestamp_iso
from nsw_sales.ingest.runner import discover_archives, process_archive
from nsw_sales.publish.chunk_writer import write_year_chunks
from nsw_sales.publish.index_builder import build_indices
from nsw_sales.publish.reports import write_readme


@dataclass
class PublishStats:
    # Archives are processed on one thread; no locking around these counters.
    archives: int = 0
    raw_files: int = 0
    total_records: int = 0
    rejected_records: int = 0
    files_written: int = 0
    bytes_written: int = 0
    addresses: int = 0
    years_processed: list[int] = field(default_factory=list)
    failed_archives: list[str] = field(default_factory=list)
    failed_years: list[int] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failed_archives or self.failed_years)

    def to_dict(self) -> dict:
        return {
            "archives": self.archives,
            "raw_files": self.raw_files,
            "total_records": self.total_records,
            "rejected_records": self.rejected_records,
            "files_written": self.files_written,
            "bytes_written": self.bytes_written,
            "addresses": self.addresses,
            "years_processed": sorted(self.years_processed),
            "failed_archives": self.failed_archives,
            "failed_years": self.failed_years,
        }


def _extract_all(
    config: PipelineConfig,
    logger: logging.Logger,
    run_id: str,
    stats: PublishStats,
) -> dict[int, list[TransactionRecord]]:
    records_by_year: dict[int, list[TransactionRecord]] = defaultdict(list)
    archives = discover_archives(config.source)
    stats.archives = len(archives)

    for archive_path in archives:
        try:
            result = process_archive(archive_path, config.source, logger, run_id)
        except Exception as exc:
            stats.failed_archives.append(archive_path.name)
            log_event(
                logger,
                f"archive failed: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                stage="extract",
                archive=archive_path.name,
                event="ARCHIVE_FAIL",
                status="error",
                error_code=exc.error_code if isinstance(exc, PipelineError) else "UNEXPECTED_ERROR",
            )
            continue

        stats.raw_files += result.raw_entries
        stats.rejected_records += result.parse.rejected
        records_by_year[result.year].extend(result.parse.records)

    return records_by_year


def run_publish(config: PipelineConfig, logger: logging.Logger, run_id: str) -> PublishStats:
    """Run the full batch.

    Raises SourceError when there is nothing to process and StageError when
    the master index cannot be built; per-archive and per-year failures are
    logged and reported through the returned stats instead.
    """
    stats = PublishStats()
    output_dir = config.output.directory
    records_by_year = _extract_all(config, logger, run_id, stats)
    created = utc_timestamp_iso()

    for year in sorted(records_by_year):
        records = records_by_year[year]
        try:
            manifest = write_year_chunks(
                year,
                records,
                output_dir,
                records_per_chunk=config.output.records_per_chunk,
                created=created,
            )
        except PipelineError as exc:
            stats.failed_years.append(year)
            log_event(
                logger,
                f"year failed: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                stage="chunk",
                year=year,
                event="YEAR_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            continue

        stats.years_processed.append(year)
        stats.total_records += manifest.total_properties
        stats.files_written += len(manifest.chunks) + 1
        stats.bytes_written += sum(chunk.size for chunk in manifest.chunks)
        log_event(
            logger,
            f"wrote {len(manifest.chunks)} chunks",
            run_id=run_id,
            stage="chunk",
            year=year,
            event="YEAR_DONE",
            status="ok",
            records_out=manifest.total_properties,
        )
        # Release the year's records before the next one is partitioned.
        records_by_year[year] = []

    if stats.years_processed:
        summary = build_indices(output_dir, stats.years_processed, logger=logger)
        stats.files_written += summary.files_written
        stats.bytes_written += summary.bytes_written
        stats.addresses = summary.addresses
        log_event(
            logger,
            f"master index holds {summary.addresses} addresses",
            run_id=run_id,
            stage="index",
            event="INDEX_DONE",
            status="ok",
            records_out=summary.addresses,
        )

    write_readme(
        output_dir,
        generated=created,
        total_records=stats.total_records,
        years=stats.years_processed,
    )
    return stats
