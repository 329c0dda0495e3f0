"""Knowledge index persistence (data/knowledge.json)."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from auditkb.errors import PersistenceError
from auditkb.models import KnowledgeIndex


def atomic_write_text(path: Path, content: str) -> None:
    """Write *content* to *path* via a temp file in the same directory + os.replace().

    A crash mid-write leaves the previous file intact rather than a truncated one.

    Raises:
        PersistenceError: If the directory or file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise PersistenceError(f"Could not write '{path}': {exc}") from exc


def write_index(path: Path, index: KnowledgeIndex) -> None:
    """Overwrite *path* with the compact JSON form of *index*."""
    atomic_write_text(path, json.dumps(index.to_dict(), separators=(",", ":")))


def read_index(path: Path) -> KnowledgeIndex:
    """Load a previously written index.

    Raises:
        PersistenceError: If the file is missing or not a valid index document.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return KnowledgeIndex.from_dict(raw)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        raise PersistenceError(f"Could not read index '{path}': {exc}") from exc
