"""Domain models for the knowledge index and the embedding cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Chunk:
    id: str
    source: str
    text: str
    embedding: list[float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "text": self.text,
            "embedding": self.embedding,
        }


@dataclass
class CacheEntry:
    """Embeddings stored for one source file.

    ``count`` is the chunk count the chunker produced for the content that
    hashed to ``hash``; it always equals ``len(embeddings)``.
    """

    hash: str
    count: int
    embeddings: list[list[float]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"hash": self.hash, "count": self.count, "embeddings": self.embeddings}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CacheEntry:
        """Build an entry from its JSON form.

        Raises:
            ValueError: If an embedding is not a list of numbers or ``count``
                differs from the number of embeddings.
        """
        embeddings = [_as_vector(v) for v in raw["embeddings"]]
        count = int(raw["count"])
        if count != len(embeddings):
            raise ValueError(f"count ({count}) does not match {len(embeddings)} stored embeddings")
        return cls(hash=str(raw["hash"]), count=count, embeddings=embeddings)


def _as_vector(value: Any) -> list[float]:
    if not isinstance(value, list) or not all(
        isinstance(x, (int, float)) and not isinstance(x, bool) for x in value
    ):
        raise ValueError(f"embedding must be a list of numbers, got {value!r:.40}")
    return value


@dataclass
class KnowledgeIndex:
    """The persisted knowledge base: every chunk and its embedding.

    Rebuilt from scratch on every ingest run; only embeddings are cached.
    """

    model: str
    dimension: int = 1536
    chunks: list[Chunk] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "dimension": self.dimension,
            "chunks": [c.to_dict() for c in self.chunks],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> KnowledgeIndex:
        return cls(
            model=str(raw["model"]),
            dimension=int(raw["dimension"]),
            chunks=[
                Chunk(
                    id=str(c["id"]),
                    source=str(c["source"]),
                    text=str(c["text"]),
                    embedding=list(c["embedding"]),
                )
                for c in raw.get("chunks", [])
            ],
        )
