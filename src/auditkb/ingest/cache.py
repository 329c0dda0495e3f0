"""Per-file embedding cache (data/embedding-cache.json).

Layout::

    {"files": {"<relative path>": {"hash": ..., "count": ..., "embeddings": [[...], ...]}}}

An entry is reused only when both the content hash and the current chunk count
match, so a change to the chunking settings invalidates it even if the file is
unchanged. Entries for deleted source files are kept unless ``prune()`` is
called explicitly.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

from auditkb.ingest.index_writer import atomic_write_text
from auditkb.models import CacheEntry


class EmbeddingCache:
    """In-memory view of the cache file; call ``save()`` to persist."""

    def __init__(self, path: Path, entries: dict[str, CacheEntry] | None = None) -> None:
        self.path = Path(path)
        self._entries: dict[str, CacheEntry] = entries or {}

    @classmethod
    def load(cls, path: Path) -> EmbeddingCache:
        """Read the cache at *path*. A missing or corrupt file yields an empty cache."""
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            files = raw["files"]
            entries = {str(k): CacheEntry.from_dict(v) for k, v in files.items()}
        except (OSError, ValueError, KeyError, TypeError, AttributeError):
            return cls(path)
        return cls(path, entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def paths(self) -> list[str]:
        return list(self._entries)

    def is_valid(self, path: str, current_hash: str, current_count: int) -> bool:
        entry = self._entries.get(path)
        if entry is None:
            return False
        return (
            entry.hash == current_hash
            and entry.count == current_count
            and len(entry.embeddings) == current_count
        )

    def get(self, path: str) -> list[list[float]]:
        """Return the stored embeddings for *path*. Raises KeyError if absent."""
        return self._entries[path].embeddings

    def put(self, path: str, hash: str, count: int, embeddings: list[list[float]]) -> None:
        if count != len(embeddings):
            raise ValueError(
                f"count ({count}) does not match number of embeddings ({len(embeddings)})"
            )
        self._entries[path] = CacheEntry(hash=hash, count=count, embeddings=list(embeddings))

    def prune(self, keep: Iterable[str]) -> list[str]:
        """Drop entries whose path is not in *keep*. Returns the removed paths."""
        keep_set = set(keep)
        removed = [p for p in self._entries if p not in keep_set]
        for p in removed:
            del self._entries[p]
        return removed

    def to_dict(self) -> dict:
        return {"files": {p: e.to_dict() for p, e in self._entries.items()}}

    def save(self) -> None:
        """Persist the whole cache atomically.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        atomic_write_text(self.path, json.dumps(self.to_dict(), indent=2))
