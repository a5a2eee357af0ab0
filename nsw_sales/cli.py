"""CLI entrypoint for the NSW property sales publisher."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from nsw_sales.common.config_loader import DEFAULT_CONFIG_PATH, PipelineConfig, apply_overrides, load_pipeline_config
from nsw_sales.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from nsw_sales.common.errors import PipelineError, ValidationError
from nsw_sales.common.ids import generate_run_id
from nsw_sales.common.logging import build_logger, log_event
from nsw_sales.ingest.archive_scanner import describe_archive, open_archive, scan_archive
from nsw_sales.ingest.record_parser import decode_raw_bytes, is_sale_candidate, parse_raw_content
from nsw_sales.ingest.runner import extract_year
from nsw_sales.publish.pipeline import run_publish
from nsw_sales.publish.reports import write_run_summary
from nsw_sales.query.fetchers import GitHubRawFetcher, LocalDirectoryFetcher
from nsw_sales.query.service import QueryService, validate_address_query

QUERY_COMMANDS = ("search-address", "search-price", "property", "years", "status")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH))
    parser.add_argument("--overlay-config", default=None)
    parser.add_argument("--source-dir", default=None)
    parser.add_argument("--output-dir", default=None)
    parser.add_argument("--records-per-chunk", type=int, default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--local", action="store_true", help="query the output directory instead of the remote root")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("process", help="publish artifacts from every source archive")

    inspect = sub.add_parser("inspect", help="debug a single archive")
    inspect.add_argument("archive")
    inspect.add_argument("--lines", type=int, default=5)

    search_address = sub.add_parser("search-address")
    search_address.add_argument("query")
    search_address.add_argument("--limit", type=int, default=50)

    search_price = sub.add_parser("search-price")
    search_price.add_argument("--min", dest="min_price", type=float, default=0)
    search_price.add_argument("--max", dest="max_price", type=float, default=999_999_999)
    search_price.add_argument("--suburb", default=None)
    search_price.add_argument("--year", type=int, default=None)
    search_price.add_argument("--limit", type=int, default=50)

    prop = sub.add_parser("property")
    prop.add_argument("address")

    sub.add_parser("years")
    sub.add_parser("status")
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> PipelineConfig:
    config = load_pipeline_config(
        Path(args.config),
        overlay_path=Path(args.overlay_config) if args.overlay_config else None,
    )
    return apply_overrides(
        config,
        source_dir=args.source_dir,
        output_dir=args.output_dir,
        records_per_chunk=args.records_per_chunk,
    )


def _emit(payload) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")


def run_process(config: PipelineConfig, logger: logging.Logger, run_id: str) -> int:
    started = time.monotonic()
    log_event(logger, "process start", run_id=run_id, stage="process", event="RUN_START", status="ok")
    try:
        stats = run_publish(config, logger, run_id)
    except PipelineError as exc:
        log_event(
            logger,
            f"process failed: {exc}",
            level=logging.ERROR,
            run_id=run_id,
            stage="process",
            event="RUN_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL

    status = "partial" if stats.partial else "success"
    if config.output.run_meta_directory is not None:
        write_run_summary(config.output.run_meta_directory, run_id, {"status": status, **stats.to_dict()})
    log_event(
        logger,
        f"processed {stats.total_records} records into {stats.files_written} files",
        run_id=run_id,
        stage="process",
        event="RUN_END",
        status=status,
        records_out=stats.total_records,
        rejected=stats.rejected_records,
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    return EXIT_PARTIAL if stats.partial else EXIT_SUCCESS


def run_inspect(archive_path: Path, config: PipelineConfig, logger: logging.Logger, line_count: int) -> int:
    year = extract_year(archive_path.name, logger)
    with open_archive(archive_path) as archive:
        structure = describe_archive(archive)
        entries = scan_archive(
            archive,
            raw_extension=config.source.raw_extension,
            archive_extension=config.source.archive_extension,
            max_depth=config.source.max_archive_depth,
            logger=logger,
        )

    report: dict = {
        "archive": archive_path.name,
        "year": year,
        "entry_types": structure,
        "raw_files": len(entries),
        "first_raw_file": None,
    }
    if entries:
        first = entries[0]
        content = decode_raw_bytes(first.data)
        parsed = parse_raw_content(content, year)
        lines = [line for line in content.splitlines() if line.strip()]
        report["first_raw_file"] = {
            "path": first.path,
            "first_lines": lines[:line_count],
            "sale_candidates": sum(1 for line in lines if is_sale_candidate(line)),
            "valid_records": len(parsed.records),
            "rejected_records": parsed.rejected,
            "sample_record": parsed.records[0].to_dict() if parsed.records else None,
        }
    _emit(report)
    return EXIT_SUCCESS


def _build_service(config: PipelineConfig, local: bool) -> QueryService:
    fetcher = LocalDirectoryFetcher(config.output.directory) if local else GitHubRawFetcher(config.remote)
    return QueryService(fetcher, ttls=config.query.cache_ttl, max_workers=config.query.max_fetch_workers)


def run_query(args: argparse.Namespace, config: PipelineConfig) -> int:
    service = _build_service(config, args.local)
    try:
        if args.command == "search-address":
            query = validate_address_query(args.query)
            results = service.search_by_address(query, args.limit)
            _emit({"query": query, "count": len(results), "results": [r.to_expanded() for r in results]})
        elif args.command == "search-price":
            results = service.search_by_price(
                args.min_price,
                args.max_price,
                suburb=args.suburb,
                year=args.year,
                limit=args.limit,
            )
            filters = {"min": args.min_price, "max": args.max_price, "suburb": args.suburb, "year": args.year}
            _emit({"filters": filters, "count": len(results), "results": [r.to_expanded() for r in results]})
        elif args.command == "property":
            results = service.get_property(args.address)
            _emit({"address": args.address, "count": len(results), "properties": [r.to_expanded() for r in results]})
        elif args.command == "years":
            years = service.list_available_years()
            _emit({"years": years, "count": len(years)})
        elif args.command == "status":
            _emit(service.data_availability())
        else:
            raise ValueError(f"Unknown query command: {args.command}")
    finally:
        service.fetcher.close()
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    config = _load_config(args)
    run_meta_dir = config.output.run_meta_directory if args.command == "process" else None
    logger = build_logger(run_id, run_meta_dir=run_meta_dir, level=args.log_level)

    if args.command == "process":
        return run_process(config, logger, run_id)
    if args.command == "inspect":
        return run_inspect(Path(args.archive), config, logger, args.lines)
    if args.command in QUERY_COMMANDS:
        try:
            return run_query(args, config)
        except ValidationError as exc:
            log_event(
                logger,
                str(exc),
                level=logging.ERROR,
                run_id=run_id,
                stage="query",
                event="QUERY_REJECTED",
                status="error",
                error_code=exc.error_code,
            )
            return EXIT_HARD_FAIL
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        sys.stderr.write(f"{exc.error_code}: {exc}\n")
        return EXIT_HARD_FAIL
    except Exception as exc:
        sys.stderr.write(f"UNEXPECTED_ERROR: {exc}\n")
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
