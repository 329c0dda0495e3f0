"""auditkb CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from auditkb.cli.extract import extract_cmd
from auditkb.cli.ingest import ingest_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("auditkb")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"auditkb {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="auditkb",
    help=(
        "auditkb — knowledge base builder for the audit assistant.\n\n"
        "  auditkb ingest   Embed knowledge/pdfs/ into data/knowledge.json.\n"
        "  auditkb extract  Pull text from an uploaded PDF, CSV or text file."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """auditkb — knowledge base builder for the audit assistant."""


app.command("ingest")(ingest_cmd)
app.command("extract")(extract_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed auditkb version."""
    typer.echo(f"auditkb {_installed_version()}")


if __name__ == "__main__":
    app()
