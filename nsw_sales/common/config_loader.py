"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from nsw_sales.common.constants import DEFAULT_MAX_ARCHIVE_DEPTH, DEFAULT_RECORDS_PER_CHUNK
from nsw_sales.common.errors import ConfigError
from nsw_sales.common.fs import read_yaml
from nsw_sales.common.schema import CACHE_TTL_KEYS, validate_pipeline_config

DEFAULT_CONFIG_PATH = Path("config") / "pipeline.yml"


@dataclass(frozen=True)
class SourceConfig:
    directory: Path = Path("./nsw-data-source")
    archive_extension: str = ".zip"
    raw_extension: str = ".dat"
    max_archive_depth: int = DEFAULT_MAX_ARCHIVE_DEPTH


@dataclass(frozen=True)
class OutputConfig:
    directory: Path = Path("./processed-data")
    records_per_chunk: int = DEFAULT_RECORDS_PER_CHUNK
    run_meta_directory: Path | None = Path("./run_meta")


@dataclass(frozen=True)
class RemoteConfig:
    github_user: str = "your-username"
    github_repo: str = "nsw-property-data"
    github_branch: str = "main"
    base_url: str = "https://raw.githubusercontent.com"
    requests_per_second: float = 10.0

    @property
    def artifact_root(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.github_user}/{self.github_repo}/{self.github_branch}"


@dataclass(frozen=True)
class CacheTtls:
    """Seconds each query class stays cached."""

    artifact: float = 15 * 60
    address_search: float = 5 * 60
    property: float = 10 * 60
    price_search: float = 5 * 60


@dataclass(frozen=True)
class QueryConfig:
    cache_ttl: CacheTtls = field(default_factory=CacheTtls)
    max_fetch_workers: int = 4


@dataclass(frozen=True)
class PipelineConfig:
    source: SourceConfig = field(default_factory=SourceConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    query: QueryConfig = field(default_factory=QueryConfig)


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path) or {}
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path) or {}
    return _deep_merge(base, overlay)


def _optional_path(value: Any) -> Path | None:
    if value in (None, ""):
        return None
    return Path(value)


def build_pipeline_config(cfg: dict) -> PipelineConfig:
    source = cfg["source"]
    output = cfg["output"]
    remote = cfg.get("remote") or {}
    query = cfg.get("query") or {}
    ttls = query.get("cache_ttl_seconds") or {}

    source_defaults = SourceConfig()
    output_defaults = OutputConfig()
    remote_defaults = RemoteConfig()
    query_defaults = QueryConfig()

    return PipelineConfig(
        source=SourceConfig(
            directory=Path(source["directory"]),
            archive_extension=str(source.get("archive_extension", source_defaults.archive_extension)).lower(),
            raw_extension=str(source.get("raw_extension", source_defaults.raw_extension)).lower(),
            max_archive_depth=int(source.get("max_archive_depth", source_defaults.max_archive_depth)),
        ),
        output=OutputConfig(
            directory=Path(output["directory"]),
            records_per_chunk=int(output.get("records_per_chunk", output_defaults.records_per_chunk)),
            run_meta_directory=_optional_path(output.get("run_meta_directory", output_defaults.run_meta_directory)),
        ),
        remote=RemoteConfig(
            github_user=str(remote.get("github_user", remote_defaults.github_user)),
            github_repo=str(remote.get("github_repo", remote_defaults.github_repo)),
            github_branch=str(remote.get("github_branch", remote_defaults.github_branch)),
            base_url=str(remote.get("base_url", remote_defaults.base_url)),
            requests_per_second=float(remote.get("requests_per_second", remote_defaults.requests_per_second)),
        ),
        query=QueryConfig(
            cache_ttl=CacheTtls(**{name: float(value) for name, value in ttls.items() if name in CACHE_TTL_KEYS}),
            max_fetch_workers=int(query.get("max_fetch_workers", query_defaults.max_fetch_workers)),
        ),
    )


def load_pipeline_config(
    config_path: Path = DEFAULT_CONFIG_PATH,
    *,
    allow_unknown: bool = False,
    overlay_path: Path | None = None,
) -> PipelineConfig:
    raw = _load_yaml_with_overlay(config_path, overlay_path)
    return build_pipeline_config(validate_pipeline_config(raw, allow_unknown=allow_unknown))


def apply_overrides(
    config: PipelineConfig,
    *,
    source_dir: str | None = None,
    output_dir: str | None = None,
    records_per_chunk: int | None = None,
) -> PipelineConfig:
    source = config.source
    output = config.output
    if source_dir:
        source = replace(source, directory=Path(source_dir))
    if output_dir:
        output = replace(output, directory=Path(output_dir))
    if records_per_chunk is not None:
        if records_per_chunk <= 0:
            raise ConfigError("records_per_chunk must be a positive integer")
        output = replace(output, records_per_chunk=records_per_chunk)
    return replace(config, source=source, output=output)
