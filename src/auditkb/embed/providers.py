"""Embedding providers reached through LiteLLM.

Two providers are supported, each optional and keyed by its own credential:

  openai      OPENAI_API_KEY      default model text-embedding-3-small (1536 dims)
  openrouter  OPENROUTER_API_KEY  default model jinaai/jina-embeddings-v3

OpenRouter exposes an OpenAI-compatible API, so it is called through LiteLLM's
``openai/`` route with an explicit ``api_base``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

import litellm

from auditkb.config import EmbeddingCfg
from auditkb.errors import ConfigurationError, ProviderFatalError

litellm.suppress_debug_info = True

_OPENROUTER_BASE = "https://openrouter.ai/api/v1"


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    env_var: str
    default_model: str
    api_base: str | None = None


PROVIDERS: dict[str, ProviderSpec] = {
    "openai": ProviderSpec("openai", "OPENAI_API_KEY", "text-embedding-3-small"),
    "openrouter": ProviderSpec(
        "openrouter", "OPENROUTER_API_KEY", "jinaai/jina-embeddings-v3", _OPENROUTER_BASE
    ),
}


@dataclass
class EmbeddingProvider:
    """One configured embedding backend.

    ``embed()`` makes exactly one network call; retries and failover belong to
    ``EmbeddingGateway``.
    """

    name: str
    default_model: str
    model: str
    api_key: str | None = None
    api_base: str | None = None
    extra_headers: dict[str, str] = field(default_factory=dict)

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one embedding per text, in input order."""
        kwargs: dict = {
            "model": f"openai/{self.model}",
            "input": texts,
            "api_key": self.api_key,
            "num_retries": 0,
        }
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.extra_headers:
            kwargs["extra_headers"] = self.extra_headers
        response = litellm.embedding(**kwargs)
        data = list(response.data)
        if data and _field(data[0], "index") is not None:
            data.sort(key=lambda d: _field(d, "index"))
        vectors = [list(_field(d, "embedding")) for d in data]
        if len(vectors) != len(texts):
            raise ProviderFatalError(
                f"{self.name} returned {len(vectors)} embeddings for {len(texts)} inputs",
                provider=self.name,
            )
        return vectors


def _field(item, name: str):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def select_primary(explicit: str | None, env: Mapping[str, str] | None = None) -> str:
    """Pick the primary provider name.

    Explicit choice wins; otherwise the first provider whose credential is
    present; otherwise 'openai' (which then fails for lack of a key).

    Raises:
        ConfigurationError: If *explicit* names an unknown provider.
    """
    environ = env if env is not None else os.environ
    if explicit:
        name = explicit.strip().lower()
        if name not in PROVIDERS:
            known = ", ".join(sorted(PROVIDERS))
            raise ConfigurationError(
                f"Unknown embedding provider '{explicit}'. Known providers: {known}."
            )
        return name
    if environ.get(PROVIDERS["openai"].env_var):
        return "openai"
    if environ.get(PROVIDERS["openrouter"].env_var):
        return "openrouter"
    return "openai"


def primary_model(cfg: EmbeddingCfg, env: Mapping[str, str] | None = None) -> str:
    """The model name recorded in the index: configured model or the primary's default."""
    return cfg.model or PROVIDERS[select_primary(cfg.provider, env)].default_model


def build_providers(
    cfg: EmbeddingCfg,
    env: Mapping[str, str] | None = None,
) -> list[EmbeddingProvider]:
    """Return configured providers in try order: primary first, then the fallback.

    The primary uses ``cfg.model`` (or its default model); the fallback always
    uses its own default model. Providers without a credential are skipped.

    Raises:
        ConfigurationError: If no provider has a credential.
    """
    environ = env if env is not None else os.environ
    primary = select_primary(cfg.provider, environ)
    order = [primary] + [name for name in PROVIDERS if name != primary]

    providers: list[EmbeddingProvider] = []
    for name in order:
        spec = PROVIDERS[name]
        key = environ.get(spec.env_var)
        if not key:
            continue
        model = (cfg.model or spec.default_model) if name == primary else spec.default_model
        providers.append(
            EmbeddingProvider(
                name=name,
                default_model=spec.default_model,
                model=model,
                api_key=key,
                api_base=spec.api_base,
                extra_headers=_extra_headers(name, environ),
            )
        )

    if not providers:
        env_vars = " or ".join(spec.env_var for spec in PROVIDERS.values())
        raise ConfigurationError(f"No embedding provider configured. Set {env_vars}.")
    return providers


def _extra_headers(name: str, env: Mapping[str, str]) -> dict[str, str]:
    if name != "openrouter":
        return {}
    return {
        "HTTP-Referer": env.get("SITE_URL") or "http://localhost:3000",
        "X-Title": env.get("SITE_NAME") or "LID Chat",
    }
