"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from nsw_sales.common.errors import ConfigError

SECTION_KEYS = {
    "source": {"directory", "archive_extension", "raw_extension", "max_archive_depth"},
    "output": {"directory", "records_per_chunk", "run_meta_directory"},
    "remote": {"github_user", "github_repo", "github_branch", "base_url", "requests_per_second"},
    "query": {"cache_ttl_seconds", "max_fetch_workers"},
}
CACHE_TTL_KEYS = {"artifact", "address_search", "property", "price_search"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_mapping(value, ctx: str) -> dict:
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return value


def _assert_positive_int(value, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive integer")


def _assert_positive_number(value, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    cfg = _assert_mapping(cfg, "pipeline config")
    _assert_required_keys(cfg, {"source", "output"}, "pipeline config")
    _assert_no_unknown_keys(cfg, set(SECTION_KEYS), "pipeline config", allow_unknown)

    for section, known in SECTION_KEYS.items():
        if section not in cfg:
            continue
        body = _assert_mapping(cfg[section], section)
        _assert_no_unknown_keys(body, known, section, allow_unknown)

    _assert_required_keys(cfg["source"], {"directory"}, "source")
    _assert_required_keys(cfg["output"], {"directory"}, "output")

    if "records_per_chunk" in cfg["output"]:
        _assert_positive_int(cfg["output"]["records_per_chunk"], "output.records_per_chunk")
    if "max_archive_depth" in cfg["source"]:
        _assert_positive_int(cfg["source"]["max_archive_depth"], "source.max_archive_depth")

    remote = cfg.get("remote") or {}
    if "requests_per_second" in remote:
        _assert_positive_number(remote["requests_per_second"], "remote.requests_per_second")

    query = cfg.get("query") or {}
    if "max_fetch_workers" in query:
        _assert_positive_int(query["max_fetch_workers"], "query.max_fetch_workers")
    if "cache_ttl_seconds" in query:
        ttls = _assert_mapping(query["cache_ttl_seconds"], "query.cache_ttl_seconds")
        _assert_no_unknown_keys(ttls, CACHE_TTL_KEYS, "query.cache_ttl_seconds", allow_unknown)
        for name, value in ttls.items():
            _assert_positive_number(value, f"query.cache_ttl_seconds.{name}")

    return cfg
