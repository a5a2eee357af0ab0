"""Filesystem helpers."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(path: Path, payload, *, sort_keys: bool = True) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=sort_keys)
        f.write("\n")


def compact_json_bytes(payload, *, sort_keys: bool = False) -> bytes:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), sort_keys=sort_keys).encode("utf-8")


def write_compact_json(path: Path, payload, *, sort_keys: bool = False) -> int:
    """Write ``payload`` without whitespace and return the byte size on disk."""
    data = compact_json_bytes(payload, sort_keys=sort_keys)
    ensure_dir(path.parent)
    path.write_bytes(data)
    return len(data)


def write_json_atomic(path: Path, payload, *, sort_keys: bool = False) -> int:
    """Publish ``payload`` at ``path`` via a sibling temp file and a rename.

    Readers see either the previous file or the complete new one.
    """
    data = compact_json_bytes(payload, sort_keys=sort_keys)
    ensure_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return len(data)


def read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_text(path: Path, text: str) -> None:
    ensure_dir(path.parent)
    path.write_text(text, encoding="utf-8")
