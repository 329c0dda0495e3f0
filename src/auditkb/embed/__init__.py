"""Embedding providers and the retrying, failing-over gateway."""

from auditkb.embed.gateway import EmbeddingGateway, RetryPolicy, classify_error
from auditkb.embed.providers import EmbeddingProvider, build_providers, select_primary

__all__ = [
    "EmbeddingGateway",
    "EmbeddingProvider",
    "RetryPolicy",
    "build_providers",
    "classify_error",
    "select_primary",
]
