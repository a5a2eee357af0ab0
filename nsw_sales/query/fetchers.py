"""Artifact fetchers: resolve a relative artifact name to parsed JSON or None."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from nsw_sales.common.config_loader import RemoteConfig
from nsw_sales.common.fs import read_json
from nsw_sales.common.http import HttpClient, HttpNotFoundError, HttpRequestError
from nsw_sales.common.logging import get_logger, log_event


class ArtifactFetcher(Protocol):
    def fetch(self, name: str) -> Any | None: ...


class GitHubRawFetcher:
    """Fetch artifacts from ``<base_url>/<user>/<repo>/<branch>/<name>``."""

    def __init__(self, remote: RemoteConfig, http_client: HttpClient | None = None, logger: logging.Logger | None = None) -> None:
        self.remote = remote
        self.http_client = http_client or HttpClient(requests_per_second=remote.requests_per_second)
        self.logger = logger or get_logger("fetch")

    def url_for(self, name: str) -> str:
        return f"{self.remote.artifact_root}/{name.lstrip('/')}"

    def fetch(self, name: str) -> Any | None:
        url = self.url_for(name)
        try:
            return self.http_client.get_json(url)
        except HttpNotFoundError:
            return None
        except HttpRequestError as exc:
            log_event(
                self.logger,
                f"fetch failed for {name}: {exc}",
                level=logging.WARNING,
                stage="query",
                event="ARTIFACT_FETCH_FAIL",
                status="warning",
                error_code=exc.error_code,
            )
            return None

    def close(self) -> None:
        self.http_client.close()


class LocalDirectoryFetcher:
    """Read artifacts from a published output directory."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def fetch(self, name: str) -> Any | None:
        path = (self.root / name).resolve()
        if self.root != path and self.root not in path.parents:
            return None
        try:
            return read_json(path)
        except (OSError, ValueError):
            return None

    def close(self) -> None:
        return None
