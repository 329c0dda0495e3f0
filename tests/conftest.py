"""Shared pytest fixtures."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from auditkb.config import AuditKBConfig


@pytest.fixture
def quiet_console() -> Console:
    """Console writing to an in-memory buffer (read via ``.file.getvalue()``)."""
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project root with an empty knowledge/pdfs/ folder."""
    (tmp_path / "knowledge" / "pdfs").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def config(project: Path) -> AuditKBConfig:
    """Default config rooted at *project*, with a 4-dim index to match FakeProvider."""
    cfg = AuditKBConfig(root_dir=project)
    cfg.embedding.dimension = 4
    return cfg
