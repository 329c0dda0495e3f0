"""Knowledge-base ingestion: PDFs → chunks → embeddings → data/knowledge.json.

Per source file, sequentially:
  1. Read bytes and fingerprint them (SHA-256).
  2. Extract + clean + chunk the text (always, the chunk count is part of the
     cache key).
  3. Reuse cached embeddings if hash and chunk count match; otherwise embed
     the chunks in batches through the gateway and update the cache.
  4. Append the file's chunks to the index with run-local sequential IDs.

Only after every file succeeded is the index written, then the cache. Any
extraction or provider failure aborts the run with nothing written.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from auditkb.config import AuditKBConfig
from auditkb.embed.gateway import EmbeddingGateway, RetryPolicy
from auditkb.embed.providers import build_providers, primary_model, select_primary
from auditkb.errors import ExtractionError, ProviderError, ProviderFatalError
from auditkb.ingest.cache import EmbeddingCache
from auditkb.ingest.chunker import TextChunker
from auditkb.ingest.fingerprint import content_hash
from auditkb.ingest.index_writer import write_index
from auditkb.ingest.pdf import clean_text, extract_pdf_text
from auditkb.models import Chunk, KnowledgeIndex


@dataclass
class IngestReport:
    """Outcome of one ingest run."""

    index_path: Path
    cache_path: Path
    files: list[str] = field(default_factory=list)
    embedded_files: list[str] = field(default_factory=list)
    cached_files: list[str] = field(default_factory=list)
    chunks: int = 0
    embed_calls: int = 0
    pruned: list[str] = field(default_factory=list)


def discover_pdfs(source_dir: Path) -> list[Path]:
    """Return every ``*.pdf`` under *source_dir* (recursive), sorted by path."""
    if not source_dir.is_dir():
        return []
    return sorted(p for p in source_dir.rglob("*.pdf") if p.is_file())


def relative_source(path: Path, root: Path) -> str:
    """POSIX path of *path* relative to *root*; used as the chunk ``source`` and cache key."""
    return Path(os.path.relpath(path, root)).as_posix()


class IngestPipeline:
    """Build the knowledge index for one project.

    Args:
        config: Loaded configuration (paths are resolved against ``config.root_dir``).
        gateway: Embedding gateway. Built from the environment on first use
            when omitted, so a fully cached run needs no credentials.
        console: Rich console for progress output.
        env: Environment mapping for provider credentials. Defaults to ``os.environ``.
    """

    def __init__(
        self,
        config: AuditKBConfig,
        gateway: EmbeddingGateway | None = None,
        console: Console | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self._gateway = gateway
        self._console = console or Console()
        self._env = env if env is not None else os.environ
        self._chunker = TextChunker(config.chunking.chunk_size, config.chunking.overlap)

    # ------------------------------------------------------------------
    # Gateway
    # ------------------------------------------------------------------

    @property
    def gateway(self) -> EmbeddingGateway:
        if self._gateway is None:
            self._gateway = EmbeddingGateway(
                build_providers(self.config.embedding, self._env),
                RetryPolicy(max_attempts=self.config.embedding.max_retries),
                on_retry=self._report_retry,
                on_failover=self._report_failover,
            )
        return self._gateway

    def _report_retry(
        self, provider: str, attempt: int, max_attempts: int, err: ProviderError, delay: float
    ) -> None:
        reason = err.status or err.code or "error"
        self._console.print(
            f"  [yellow]↻ {provider} retry {attempt}/{max_attempts} after {reason}"
            f" — waiting {delay * 1000:.0f}ms…[/]"
        )

    def _report_failover(self, provider: str, err: ProviderError) -> None:
        self._console.print(f"  [yellow]⚠ Provider {provider} failed, trying next…[/] [dim]{err}[/]")

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> IngestReport:
        """Ingest every PDF under the source directory and write index + cache."""
        cfg = self.config
        report = IngestReport(index_path=cfg.index_path, cache_path=cfg.cache_path)

        pdfs = discover_pdfs(cfg.source_dir)
        if not pdfs:
            self._console.print(
                f"[yellow]⚠ No PDFs in {cfg.source_dir}.[/] Create that folder and drop files in."
            )

        cache = EmbeddingCache.load(cfg.cache_path)
        index = KnowledgeIndex(
            model=primary_model(cfg.embedding, self._env),
            dimension=cfg.embedding.dimension,
        )
        next_id = 1

        for path in pdfs:
            rel = relative_source(path, cfg.root_dir)
            report.files.append(rel)
            pieces, embeddings = self._process_file(path, rel, cache, report)
            for text, embedding in zip(pieces, embeddings):
                index.chunks.append(Chunk(id=f"c{next_id}", source=rel, text=text, embedding=embedding))
                next_id += 1

        if cfg.cache.prune:
            report.pruned = cache.prune(report.files)
            for rel in report.pruned:
                self._console.print(f"  [dim]✗ Pruned cache entry {rel}[/]")

        write_index(cfg.index_path, index)
        cache.save()

        report.chunks = len(index.chunks)
        report.embed_calls = self._gateway.calls if self._gateway is not None else 0
        self._console.print(f"\n[green]💾 Saved index[/] → {cfg.index_path} ({report.chunks} chunks)")
        self._console.print(
            f"[dim]Provider: {select_primary(cfg.embedding.provider, self._env)}"
            f" | Model: {index.model} | Batch: {cfg.embedding.batch_size}[/]"
        )
        return report

    # ------------------------------------------------------------------
    # Per-file pipeline
    # ------------------------------------------------------------------

    def _process_file(
        self,
        path: Path,
        rel: str,
        cache: EmbeddingCache,
        report: IngestReport,
    ) -> tuple[list[str], list[list[float]]]:
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ExtractionError(f"Could not read '{rel}': {exc}") from exc
        digest = content_hash(data)

        try:
            text = clean_text(extract_pdf_text(data))
        except ExtractionError as exc:
            raise ExtractionError(f"{rel}: {exc}") from exc
        pieces = list(self._chunker.split(text))

        if cache.is_valid(rel, digest, len(pieces)):
            embeddings = cache.get(rel)
            report.cached_files.append(rel)
            self._console.print(f"  [dim]↷ Cached {rel} ({len(pieces)} chunks)[/]")
        else:
            embeddings = self._embed_chunks(rel, pieces)
            cache.put(rel, digest, len(pieces), embeddings)
            report.embedded_files.append(rel)
            self._console.print(f"  [green]✓[/] Embedded {rel} ({len(pieces)} chunks)")

        self._check_dimension(rel, embeddings)
        return pieces, embeddings

    def _embed_chunks(self, rel: str, pieces: list[str]) -> list[list[float]]:
        """Embed *pieces* in sequential batches, preserving order."""
        if not pieces:
            return []
        gateway = self.gateway
        batch_size = self.config.embedding.batch_size
        embeddings: list[list[float]] = []
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            console=self._console,
        ) as prog:
            task = prog.add_task(f"Embedding {rel}…", total=len(pieces))
            for start in range(0, len(pieces), batch_size):
                batch = pieces[start : start + batch_size]
                embeddings.extend(gateway.embed_batch(batch))
                prog.update(task, completed=len(embeddings))
        return embeddings

    def _check_dimension(self, rel: str, embeddings: list[list[float]]) -> None:
        expected = self.config.embedding.dimension
        bad = next((len(v) for v in embeddings if len(v) != expected), None)
        if bad is None:
            return
        if self.config.embedding.strict_dimension:
            raise ProviderFatalError(
                f"{rel}: embedding has {bad} dimensions, index declares {expected}"
            )
        self._console.print(
            f"  [yellow]⚠ {rel}: embedding has {bad} dimensions, index declares {expected}[/]"
        )
