"""auditkb configuration loader.

Priority (high → low):
  1. CLI flags              (handled at call site — not in this module)
  2. Environment variables  (EMB_PROVIDER, EMB_MODEL, CHUNK_SIZE, CHUNK_OVERLAP,
                             EMB_BATCH, EMB_MAX_RETRIES)
  3. Per-project auditkb.yaml
  4. Hardcoded defaults

Provider credentials (OPENAI_API_KEY, OPENROUTER_API_KEY) are read from the
environment only; a config file containing an API-key-like field is rejected.
All YAML reads use yaml.safe_load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from auditkb.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_PROJECT_CONFIG_NAME: str = "auditkb.yaml"

# api_key, api-key, api_secret, *_token, token, *_secret, secret, password, credential(s).
# Does NOT match legitimate keys like max_retries or batch_size.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["paths", "embedding", "chunking", "cache"])

# env var → (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "EMB_PROVIDER": ("embedding", "provider"),
    "EMB_MODEL": ("embedding", "model"),
    "EMB_BATCH": ("embedding", "batch_size"),
    "EMB_MAX_RETRIES": ("embedding", "max_retries"),
    "CHUNK_SIZE": ("chunking", "chunk_size"),
    "CHUNK_OVERLAP": ("chunking", "overlap"),
}


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class PathsCfg:
    """Input/output locations, relative to the project directory (auditkb.yaml: paths:)."""

    source_dir: str = "knowledge/pdfs"
    index: str = "data/knowledge.json"
    cache: str = "data/embedding-cache.json"


@dataclass
class EmbeddingCfg:
    """Embedding provider configuration (auditkb.yaml: embedding:).

    Attributes:
        provider: Primary provider name ('openai' | 'openrouter'). None selects
            automatically from the credentials present in the environment.
        model: Embedding model for the primary provider. None uses the
            provider's default model.
        dimension: Declared vector dimension written to the index.
        batch_size: Number of chunk texts sent per embedding call.
        max_retries: Maximum attempts per provider for transient failures.
        strict_dimension: Reject vectors whose length differs from ``dimension``.
    """

    provider: str | None = None
    model: str | None = None
    dimension: int = 1536
    batch_size: int = 16
    max_retries: int = 6
    strict_dimension: bool = False


@dataclass
class ChunkingCfg:
    """Character-window chunking (auditkb.yaml: chunking:)."""

    chunk_size: int = 1200
    overlap: int = 200


@dataclass
class CacheCfg:
    """Embedding cache maintenance (auditkb.yaml: cache:)."""

    prune: bool = False


@dataclass
class AuditKBConfig:
    """Root configuration object, built by load_config()."""

    root_dir: Path = field(default_factory=Path.cwd)
    paths: PathsCfg = field(default_factory=PathsCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    cache: CacheCfg = field(default_factory=CacheCfg)

    @property
    def source_dir(self) -> Path:
        return self.root_dir / self.paths.source_dir

    @property
    def index_path(self) -> Path:
        return self.root_dir / self.paths.index

    @property
    def cache_path(self) -> Path:
        return self.root_dir / self.paths.cache


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigurationError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else str(k)
                if _API_KEY_RE.search(str(k)):
                    raise ConfigurationError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def validate_config(cfg: AuditKBConfig) -> None:
    """Raise ConfigurationError for settings the pipeline cannot run with."""
    size = cfg.chunking.chunk_size
    overlap = cfg.chunking.overlap
    if size < 1:
        raise ConfigurationError(f"chunk_size must be >= 1, got {size}")
    if overlap < 0:
        raise ConfigurationError(f"overlap must be >= 0, got {overlap}")
    if overlap >= size:
        raise ConfigurationError(
            f"overlap ({overlap}) must be smaller than chunk_size ({size})"
        )
    if cfg.embedding.batch_size < 1:
        raise ConfigurationError(f"batch_size must be >= 1, got {cfg.embedding.batch_size}")
    if cfg.embedding.max_retries < 1:
        raise ConfigurationError(
            f"max_retries must be >= 1, got {cfg.embedding.max_retries}"
        )
    if cfg.embedding.dimension < 1:
        raise ConfigurationError(f"dimension must be >= 1, got {cfg.embedding.dimension}")


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def _cfg_from_dict(data: dict[str, Any], root_dir: Path) -> AuditKBConfig:
    """Build an *AuditKBConfig* from a raw YAML dict."""
    cfg = AuditKBConfig(root_dir=root_dir)

    if "paths" in data:
        p = data["paths"] or {}
        cfg.paths = PathsCfg(
            source_dir=str(p.get("source_dir", cfg.paths.source_dir)),
            index=str(p.get("index", cfg.paths.index)),
            cache=str(p.get("cache", cfg.paths.cache)),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            provider=e.get("provider") or cfg.embedding.provider,
            model=e.get("model") or cfg.embedding.model,
            dimension=_as_int(e.get("dimension", cfg.embedding.dimension), "embedding.dimension"),
            batch_size=_as_int(
                e.get("batch_size", cfg.embedding.batch_size), "embedding.batch_size"
            ),
            max_retries=_as_int(
                e.get("max_retries", cfg.embedding.max_retries), "embedding.max_retries"
            ),
            strict_dimension=_as_bool(
                e.get("strict_dimension", cfg.embedding.strict_dimension)
            ),
        )

    if "chunking" in data:
        c = data["chunking"] or {}
        cfg.chunking = ChunkingCfg(
            chunk_size=_as_int(c.get("chunk_size", cfg.chunking.chunk_size), "chunking.chunk_size"),
            overlap=_as_int(c.get("overlap", cfg.chunking.overlap), "chunking.overlap"),
        )

    if "cache" in data:
        cfg.cache = CacheCfg(prune=_as_bool((data["cache"] or {}).get("prune", False)))

    return cfg


def _apply_env_overrides(cfg: AuditKBConfig, env: Mapping[str, str]) -> AuditKBConfig:
    """Apply environment variable overrides (layer 2). Empty values are ignored."""
    for var, (section, name) in _ENV_OVERRIDES.items():
        raw = env.get(var)
        if not raw:
            continue
        target = getattr(cfg, section)
        current = getattr(target, name)
        if isinstance(current, int) and not isinstance(current, bool):
            setattr(target, name, _as_int(raw, var))
        else:
            setattr(target, name, raw.strip())
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AuditKBConfig:
    """Load and return a merged *AuditKBConfig*.

    Args:
        project_dir: Directory holding *auditkb.yaml*; all relative paths are
            resolved against it. Defaults to CWD.
        env: Environment mapping used for overrides. Defaults to ``os.environ``.

    Raises:
        ConfigurationError: If the config file contains API-key-like fields,
            a numeric setting is not an integer, or the chunking/batching
            settings are out of range.
    """
    root = project_dir if project_dir is not None else Path.cwd()
    environ = env if env is not None else os.environ

    raw: dict[str, Any] = {}
    cfg_path = root / _PROJECT_CONFIG_NAME
    if cfg_path.exists():
        raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config '{cfg_path}' must be a YAML mapping.")
        _check_no_api_keys(raw, cfg_path)
        _warn_unknown_keys(raw, cfg_path)

    cfg = _cfg_from_dict(raw, root)
    cfg = _apply_env_overrides(cfg, environ)
    validate_config(cfg)
    return cfg
