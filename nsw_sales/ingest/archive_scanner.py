"""Locate raw sale files inside ZIP archives, including nested ones.

Nested archives are walked with an explicit stack of entry iterators, so the
output order matches a depth-first walk and the host call stack is never
involved. Archive nesting is assumed to form a tree; there is no cycle
detection.
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from nsw_sales.common.constants import DEFAULT_MAX_ARCHIVE_DEPTH
from nsw_sales.common.errors import ArchiveError
from nsw_sales.common.logging import get_logger, log_event

UNREADABLE_ARCHIVE_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    OSError,
    RuntimeError,
    NotImplementedError,
)


@dataclass(frozen=True)
class RawEntry:
    name: str
    containers: tuple[str, ...]
    data: bytes

    @property
    def path(self) -> str:
        return "!".join((*self.containers, self.name))


@dataclass
class _Frame:
    entries: Iterator[zipfile.ZipInfo]
    archive: zipfile.ZipFile
    depth: int
    containers: tuple[str, ...]
    owned: bool


def open_archive(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path)
    except UNREADABLE_ARCHIVE_ERRORS as exc:
        raise ArchiveError(f"Cannot open archive {path}: {exc}") from exc


def _skip(logger: logging.Logger, message: str, containers: tuple[str, ...], name: str, reason: str) -> None:
    log_event(
        logger,
        message,
        level=logging.WARNING,
        stage="scan",
        archive="!".join((*containers, name)),
        event="ARCHIVE_ENTRY_SKIPPED",
        status="warning",
        error_code=reason,
    )


def scan_archive(
    archive: zipfile.ZipFile,
    *,
    raw_extension: str = ".dat",
    archive_extension: str = ".zip",
    max_depth: int = DEFAULT_MAX_ARCHIVE_DEPTH,
    logger: logging.Logger | None = None,
) -> list[RawEntry]:
    """Return every raw entry of ``archive`` in depth-first order.

    Nested archives that cannot be opened, or that sit deeper than
    ``max_depth`` levels below ``archive``, are skipped and logged; entries
    already collected are kept.
    """
    logger = logger or get_logger("scan")
    raw_extension = raw_extension.lower()
    archive_extension = archive_extension.lower()
    root_name = Path(archive.filename).name if archive.filename else "<memory>"

    found: list[RawEntry] = []
    stack = [_Frame(iter(archive.infolist()), archive, 0, (root_name,), owned=False)]

    try:
        while stack:
            frame = stack[-1]
            info = next(frame.entries, None)
            if info is None:
                stack.pop()
                if frame.owned:
                    frame.archive.close()
                continue
            if info.is_dir():
                continue

            lowered = info.filename.lower()
            if lowered.endswith(raw_extension):
                try:
                    data = frame.archive.read(info)
                except UNREADABLE_ARCHIVE_ERRORS:
                    _skip(logger, "unreadable raw entry", frame.containers, info.filename, "RAW_ENTRY_UNREADABLE")
                    continue
                found.append(RawEntry(name=info.filename, containers=frame.containers, data=data))
            elif lowered.endswith(archive_extension):
                if frame.depth + 1 > max_depth:
                    _skip(logger, "nested archive exceeds depth limit", frame.containers, info.filename, "ARCHIVE_TOO_DEEP")
                    continue
                try:
                    nested = zipfile.ZipFile(io.BytesIO(frame.archive.read(info)))
                except UNREADABLE_ARCHIVE_ERRORS:
                    _skip(logger, "unreadable nested archive", frame.containers, info.filename, "NESTED_ARCHIVE_UNREADABLE")
                    continue
                stack.append(
                    _Frame(
                        iter(nested.infolist()),
                        nested,
                        frame.depth + 1,
                        (*frame.containers, info.filename),
                        owned=True,
                    )
                )
    finally:
        for frame in stack:
            if frame.owned:
                frame.archive.close()

    return found


def describe_archive(archive: zipfile.ZipFile) -> dict[str, int]:
    """Count top-level entries by lowercased extension."""
    counts: Counter[str] = Counter()
    for info in archive.infolist():
        if info.is_dir():
            counts["<dir>"] += 1
            continue
        suffix = Path(info.filename).suffix.lower().lstrip(".")
        counts[suffix or "<none>"] += 1
    return dict(sorted(counts.items()))
