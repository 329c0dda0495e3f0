"""auditkb ingest — rebuild data/knowledge.json from knowledge/pdfs/.

Settings come from auditkb.yaml and the environment (see ``auditkb.config``);
flags given here override both. Provider credentials are read from the
environment, with ``.env.local`` in the project directory loaded first
(variables already set in the environment win).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console

from auditkb.cli.errors import message_for
from auditkb.config import AuditKBConfig, load_config, validate_config
from auditkb.errors import AuditKBError
from auditkb.ingest.pipeline import IngestPipeline

console = Console()

_ENV_FILE = ".env.local"


def ingest_cmd(
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (holds auditkb.yaml and .env.local)."),
    ] = Path("."),
    source_dir: Annotated[
        Path | None,
        typer.Option("--source-dir", help="Directory scanned recursively for *.pdf."),
    ] = None,
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Index output path."),
    ] = None,
    cache: Annotated[
        Path | None,
        typer.Option("--cache", help="Embedding cache path."),
    ] = None,
    provider: Annotated[
        str | None,
        typer.Option("--provider", help="Primary embedding provider: openai | openrouter."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", help="Embedding model for the primary provider."),
    ] = None,
    chunk_size: Annotated[
        int | None,
        typer.Option("--chunk-size", help="Chunk size in characters."),
    ] = None,
    overlap: Annotated[
        int | None,
        typer.Option("--overlap", help="Overlap between consecutive chunks in characters."),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", help="Chunks per embedding request."),
    ] = None,
    max_retries: Annotated[
        int | None,
        typer.Option("--max-retries", help="Attempts per provider on transient errors."),
    ] = None,
    prune_cache: Annotated[
        bool,
        typer.Option("--prune-cache", help="Drop cache entries for PDFs that no longer exist."),
    ] = False,
    strict_dimension: Annotated[
        bool,
        typer.Option("--strict-dimension", help="Fail if an embedding length differs from the index dimension."),
    ] = False,
) -> None:
    """Embed every PDF in the knowledge folder and write the knowledge index."""
    env_file = project / _ENV_FILE
    if env_file.exists():
        load_dotenv(env_file, override=False)

    try:
        cfg = load_config(project)
        _apply_flags(
            cfg,
            source_dir=source_dir,
            out=out,
            cache=cache,
            provider=provider,
            model=model,
            chunk_size=chunk_size,
            overlap=overlap,
            batch_size=batch_size,
            max_retries=max_retries,
            prune_cache=prune_cache,
            strict_dimension=strict_dimension,
        )
        validate_config(cfg)
        console.print(f"[bold]→ {cfg.source_dir}[/]")
        report = IngestPipeline(cfg, console=console, env=os.environ).run()
    except AuditKBError as exc:
        console.print(message_for(exc))
        raise typer.Exit(1)

    console.print(
        f"[green]✓[/] {len(report.files)} files · {len(report.embedded_files)} embedded · "
        f"{len(report.cached_files)} cached · {report.chunks} chunks"
    )


def _apply_flags(
    cfg: AuditKBConfig,
    *,
    source_dir: Path | None,
    out: Path | None,
    cache: Path | None,
    provider: str | None,
    model: str | None,
    chunk_size: int | None,
    overlap: int | None,
    batch_size: int | None,
    max_retries: int | None,
    prune_cache: bool,
    strict_dimension: bool,
) -> None:
    """Apply CLI flag overrides (highest priority layer) in place."""
    if source_dir is not None:
        cfg.paths.source_dir = str(source_dir)
    if out is not None:
        cfg.paths.index = str(out)
    if cache is not None:
        cfg.paths.cache = str(cache)
    if provider:
        cfg.embedding.provider = provider
    if model:
        cfg.embedding.model = model
    if chunk_size is not None:
        cfg.chunking.chunk_size = chunk_size
    if overlap is not None:
        cfg.chunking.overlap = overlap
    if batch_size is not None:
        cfg.embedding.batch_size = batch_size
    if max_retries is not None:
        cfg.embedding.max_retries = max_retries
    if prune_cache:
        cfg.cache.prune = True
    if strict_dimension:
        cfg.embedding.strict_dimension = True
