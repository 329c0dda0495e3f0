"""Fixed-window character chunker with overlap."""

from __future__ import annotations

from collections.abc import Iterator

from auditkb.errors import ConfigurationError

DEFAULT_CHUNK_SIZE = 1200
DEFAULT_OVERLAP = 200


class ChunkWindows:
    """Lazy, restartable sequence of overlapping windows over *text*.

    Each ``iter()`` starts a fresh scan from offset 0. ``len()`` is computed
    arithmetically; no window is materialized to count them.
    """

    def __init__(self, text: str, chunk_size: int, overlap: int) -> None:
        self.text = text
        self.chunk_size = chunk_size
        self.step = chunk_size - overlap

    def __iter__(self) -> Iterator[str]:
        pos = 0
        length = len(self.text)
        while pos < length:
            yield self.text[pos : pos + self.chunk_size]
            pos += self.step

    def __len__(self) -> int:
        # One window per offset 0, step, 2*step, ... below len(text).
        return -(-len(self.text) // self.step)


class TextChunker:
    """Split text into ``chunk_size``-character windows advancing by
    ``chunk_size - overlap`` characters.

    Purely positional: no sentence or paragraph awareness. The last window
    may be shorter than ``chunk_size``.

    Raises:
        ConfigurationError: If ``chunk_size < 1``, ``overlap < 0`` or
            ``overlap >= chunk_size`` (the window would never advance).
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP) -> None:
        if chunk_size < 1:
            raise ConfigurationError(f"chunk_size must be >= 1, got {chunk_size}")
        if overlap < 0:
            raise ConfigurationError(f"overlap must be >= 0, got {overlap}")
        if overlap >= chunk_size:
            raise ConfigurationError(
                f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        self.chunk_size = chunk_size
        self.overlap = overlap

    def split(self, text: str) -> ChunkWindows:
        return ChunkWindows(text, self.chunk_size, self.overlap)
