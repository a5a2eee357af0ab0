"""Read-side query service over published artifacts.

Every lookup goes through ``fetch_artifact``, so the artifact cache is shared
by all query classes. Result caches sit on top of it with their own TTLs.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from nsw_sales.common.config_loader import CacheTtls
from nsw_sales.common.constants import (
    ADDRESS_CANDIDATE_LIMIT,
    ADDRESS_FALLBACK_CHUNKS,
    ADDRESS_YEARS_PER_CANDIDATE,
    MASTER_INDEX_ARTIFACT,
    MIN_ADDRESS_QUERY_LENGTH,
    PRICE_SEARCH_CHUNKS,
    PRICE_SEARCH_YEARS,
)
from nsw_sales.common.errors import ValidationError
from nsw_sales.common.ids import address_artifact, chunk_artifact, manifest_artifact
from nsw_sales.common.logging import get_logger, log_event
from nsw_sales.common.models import TransactionRecord, decode_records
from nsw_sales.common.time_utils import utc_timestamp_iso
from nsw_sales.query.cache import TTLCache
from nsw_sales.query.fetchers import ArtifactFetcher


def validate_address_query(query: str | None) -> str:
    cleaned = (query or "").strip()
    if len(cleaned) < MIN_ADDRESS_QUERY_LENGTH:
        raise ValidationError(f"Query must be at least {MIN_ADDRESS_QUERY_LENGTH} characters long")
    return cleaned


def _sale_date_key(record: TransactionRecord) -> str:
    return record.sale_date or ""


def _year_keys_descending(years: dict) -> list[str]:
    return sorted((str(year) for year in years if str(year).isdigit()), key=int, reverse=True)


class QueryService:
    def __init__(
        self,
        fetcher: ArtifactFetcher,
        *,
        ttls: CacheTtls | None = None,
        max_workers: int = 4,
        cache: TTLCache | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.ttls = ttls or CacheTtls()
        self.max_workers = max_workers
        self.cache = cache or TTLCache()
        self.logger = logger or get_logger("query")

    # Artifact access

    def fetch_artifact(self, name: str) -> Any | None:
        """Return the parsed artifact, or None when absent or unreadable."""
        key = ("artifact", name)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            payload = self.fetcher.fetch(name)
        except Exception as exc:
            log_event(
                self.logger,
                f"fetch raised for {name}: {exc}",
                level=logging.WARNING,
                stage="query",
                event="ARTIFACT_FETCH_FAIL",
                status="warning",
                error_code="UNEXPECTED_ERROR",
            )
            return None

        if payload is None:
            return None
        self.cache.set(key, payload, self.ttls.artifact)
        return payload

    def _fetch_many(self, names: list[str]) -> list[Any | None]:
        # Results come back in the order of ``names`` whatever the completion order.
        if len(names) <= 1 or self.max_workers <= 1:
            return [self.fetch_artifact(name) for name in names]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(names))) as pool:
            return list(pool.map(self.fetch_artifact, names))

    def _master_index(self) -> dict[str, dict]:
        payload = self.fetch_artifact(MASTER_INDEX_ARTIFACT)
        return payload if isinstance(payload, dict) else {}

    def _chunk_names(self, year: str, limit: int) -> list[str]:
        manifest = self.fetch_artifact(manifest_artifact(year))
        if not isinstance(manifest, dict):
            return []
        chunks = manifest.get("chunks")
        if not isinstance(chunks, list):
            return []
        return [
            chunk_artifact(year, chunk["filename"])
            for chunk in chunks[:limit]
            if isinstance(chunk, dict) and chunk.get("filename")
        ]

    @staticmethod
    def _records(payload: Any) -> list[TransactionRecord]:
        if not isinstance(payload, dict):
            return []
        properties = payload.get("properties")
        if not isinstance(properties, list):
            return []
        return decode_records(properties)

    def _load_address_year(self, address: str, year: str) -> list[TransactionRecord]:
        """Records of one lowercased address in one year.

        The address file is tried first. Without one, or when the file under
        this hash belongs to a colliding address, the leading chunks of the
        year are scanned for exact matches.
        """
        address_file = self.fetch_artifact(address_artifact(year, address))
        if address_file is not None:
            matches = [record for record in self._records(address_file) if record.address_key == address]
            if matches:
                return matches

        matches: list[TransactionRecord] = []
        for chunk in self._fetch_many(self._chunk_names(year, ADDRESS_FALLBACK_CHUNKS)):
            matches.extend(record for record in self._records(chunk) if record.address_key == address)
        return matches

    # Queries

    def search_by_address(self, query: str, limit: int = 50) -> list[TransactionRecord]:
        term = query.lower()
        key = ("address_search", term, limit)
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        master = self._master_index()
        if not master:
            return []

        candidates = [address for address in master if term in address][:ADDRESS_CANDIDATE_LIMIT]
        target = limit * 2
        results: list[TransactionRecord] = []
        for address in candidates:
            years = master.get(address)
            if not isinstance(years, dict):
                continue
            for year in _year_keys_descending(years)[:ADDRESS_YEARS_PER_CANDIDATE]:
                results.extend(self._load_address_year(address, year))
                if len(results) >= target:
                    break
            if len(results) >= target:
                break

        ordered = sorted(results, key=_sale_date_key, reverse=True)[:limit]
        self.cache.set(key, ordered, self.ttls.address_search)
        return list(ordered)

    def get_property(self, address: str) -> list[TransactionRecord]:
        normalised = address.strip().lower()
        key = ("property", normalised)
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        years = self._master_index().get(normalised)
        if not isinstance(years, dict):
            return []

        results: list[TransactionRecord] = []
        for year in _year_keys_descending(years):
            results.extend(self._load_address_year(normalised, year))

        self.cache.set(key, results, self.ttls.property)
        return list(results)

    def search_by_price(
        self,
        min_price: float,
        max_price: float,
        suburb: str | None = None,
        year: int | None = None,
        limit: int = 50,
    ) -> list[TransactionRecord]:
        suburb_term = suburb.lower() if suburb else None
        key = ("price_search", min_price, max_price, suburb_term, year, limit)
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        if year is not None:
            years = [str(year)]
        else:
            years = [str(y) for y in self.list_available_years()[:PRICE_SEARCH_YEARS]]

        target = limit * 2
        results: list[TransactionRecord] = []
        for search_year in years:
            year_results: list[TransactionRecord] = []
            for chunk in self._fetch_many(self._chunk_names(search_year, PRICE_SEARCH_CHUNKS)):
                for record in self._records(chunk):
                    if not min_price <= record.sale_price <= max_price:
                        continue
                    if suburb_term and suburb_term not in record.suburb.lower():
                        continue
                    year_results.append(record)
                if len(year_results) >= target:
                    break
            results.extend(year_results)
            if len(results) >= target:
                break

        ordered = sorted(results, key=lambda record: record.sale_price, reverse=True)[:limit]
        self.cache.set(key, ordered, self.ttls.price_search)
        return list(ordered)

    def list_available_years(self) -> list[int]:
        years: set[int] = set()
        for per_year in self._master_index().values():
            if isinstance(per_year, dict):
                years.update(int(year) for year in per_year if str(year).isdigit())
        return sorted(years, reverse=True)

    # Maintenance

    def data_availability(self) -> dict:
        master = self._master_index()
        return {
            "available": bool(master),
            "addresses": len(master),
            "years": self.list_available_years() if master else [],
            "cache_entries": len(self.cache),
            "last_check": utc_timestamp_iso(),
        }

    def clear_cache(self) -> None:
        self.cache.clear()
