"""Content fingerprints used to detect changed source files."""

from __future__ import annotations

import hashlib
from pathlib import Path

_BLOCK_SIZE = 65536


def content_hash(data: bytes) -> str:
    """SHA-256 hex digest of *data*."""
    return hashlib.sha256(data).hexdigest()


def file_hash(path: Path | str) -> str:
    """SHA-256 hex digest of the file at *path*, read in 64 KiB blocks."""
    h = hashlib.sha256()
    with Path(path).open("rb") as fh:
        for block in iter(lambda: fh.read(_BLOCK_SIZE), b""):
            h.update(block)
    return h.hexdigest()
