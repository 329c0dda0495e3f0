"""auditkb rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from auditkb.cli.errors import err_no_provider
    console.print(err_no_provider())
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape

from auditkb.errors import (
    AuditKBError,
    ConfigurationError,
    ExtractionError,
    PersistenceError,
    ProviderError,
    ProviderTransientError,
)


def err_no_provider() -> str:
    """No embedding provider credential in the environment."""
    return (
        "[red]Error:[/] No embedding provider configured.\n"
        "  Set one of:\n"
        "    export OPENAI_API_KEY=sk-...\n"
        "    export OPENROUTER_API_KEY=sk-or-...\n"
        "  or add it to .env.local in the project directory."
    )


def err_configuration(message: str) -> str:
    """Invalid configuration value."""
    return (
        f"[red]Error:[/] Invalid configuration: {escape(message)}\n"
        "  Fix the value in auditkb.yaml, the environment, or the command-line flag."
    )


def err_extraction(message: str) -> str:
    """A source PDF could not be parsed — the whole run is aborted."""
    return (
        f"[red]Error:[/] Could not extract text: {escape(message)}\n"
        "  Re-export the file as a text-based PDF or remove it from the source directory, then re-run:\n"
        "    auditkb ingest"
    )


def err_provider(err: ProviderError) -> str:
    """Embedding failed on every configured provider."""
    provider = err.provider or "provider"
    if isinstance(err, ProviderTransientError):
        hint = (
            "  The provider is rate limiting or unavailable. Wait and re-run:  auditkb ingest\n"
            "  Tip: set OPENROUTER_API_KEY as well to enable failover."
        )
    else:
        hint = (
            f"  Check the {provider} API key and model name "
            "(EMB_MODEL / embedding.model), then re-run:  auditkb ingest"
        )
    return f"[red]Error:[/] Embedding failed ({provider}): {escape(str(err))}\n{hint}\n  No index was written."


def err_persistence(message: str) -> str:
    """Index or cache file could not be written."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Check that the data directory exists and is writable, or use --out / --cache."
    )


def err_file_not_found(path: str) -> str:
    return f"[red]Error:[/] File not found: '{escape(path)}'\n  Use:  auditkb extract PATH_TO_FILE"


def message_for(exc: AuditKBError) -> str:
    """Return the actionable message for any auditkb error."""
    if isinstance(exc, ConfigurationError):
        if "No embedding provider" in str(exc):
            return err_no_provider()
        return err_configuration(str(exc))
    if isinstance(exc, ExtractionError):
        return err_extraction(str(exc))
    if isinstance(exc, ProviderError):
        return err_provider(exc)
    if isinstance(exc, PersistenceError):
        return err_persistence(str(exc))
    return f"[red]Error:[/] {escape(str(exc))}"
