"""auditkb extract — pull text from an auditor upload (PDF, CSV, plain text)."""

from __future__ import annotations

import json
import mimetypes
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from auditkb.cli.errors import err_file_not_found, message_for
from auditkb.errors import AuditKBError
from auditkb.ingest.documents import extract_document

console = Console()


def extract_cmd(
    file: Annotated[Path, typer.Argument(help="Document to extract text from.")],
    content_type: Annotated[
        str | None,
        typer.Option("--content-type", help="MIME type override (guessed from the file name)."),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print {ok, meta, rawChars, excerpt} as JSON."),
    ] = False,
) -> None:
    """Extract text from FILE and print an excerpt."""
    if not file.is_file():
        console.print(err_file_not_found(str(file)))
        raise typer.Exit(1)

    ctype = content_type or mimetypes.guess_type(file.name)[0] or "application/octet-stream"
    try:
        doc = extract_document(file.read_bytes(), filename=file.name, content_type=ctype)
    except AuditKBError as exc:
        console.print(message_for(exc))
        raise typer.Exit(1)

    if as_json:
        payload = {
            "ok": True,
            "meta": {"filename": doc.filename, "contentType": doc.content_type},
            "rawChars": doc.raw_chars,
            "excerpt": doc.excerpt,
        }
        typer.echo(json.dumps(payload, ensure_ascii=False))
        return

    console.print(f"[bold]{doc.filename}[/] [dim]({doc.content_type}, {doc.raw_chars:,} chars)[/]")
    console.print(doc.excerpt, markup=False, highlight=False)
