"""Error taxonomy for the auditkb ingestion pipeline.

Fatal errors propagate to the CLI, which maps them to an actionable message
(see ``auditkb.cli.errors``) and exits non-zero.
"""

from __future__ import annotations


class AuditKBError(Exception):
    """Base class for all auditkb errors."""


class ConfigurationError(AuditKBError, ValueError):
    """Invalid settings or no usable embedding provider credentials."""


class ExtractionError(AuditKBError):
    """A source document could not be parsed."""


class ProviderError(AuditKBError):
    """An embedding provider call failed.

    Attributes:
        provider: Name of the provider that raised (e.g. ``"openai"``).
        status: HTTP status code reported by the provider, if any.
        code: Provider error code (e.g. ``"insufficient_quota"``), if any.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str = "",
        status: int | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status = status
        self.code = code


class ProviderTransientError(ProviderError):
    """Rate limit, server error, or exhausted quota. Retried, then failed over."""


class ProviderFatalError(ProviderError):
    """Non-retryable provider failure (auth error, bad request, bad response)."""


class PersistenceError(AuditKBError):
    """The index or cache file could not be written."""
