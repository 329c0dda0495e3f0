"""Tests for the auditkb ingest CLI command."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from helpers import FakeAPIError, FakeProvider
from typer.testing import CliRunner

from auditkb.cli.main import app
from auditkb.errors import ExtractionError

runner = CliRunner()

_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENROUTER_API_KEY",
    "EMB_PROVIDER",
    "EMB_MODEL",
    "EMB_BATCH",
    "EMB_MAX_RETRIES",
    "CHUNK_SIZE",
    "CHUNK_OVERLAP",
)


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def text_extraction():
    with patch(
        "auditkb.ingest.pipeline.extract_pdf_text",
        side_effect=lambda data: data.decode("utf-8"),
    ) as mock_extract:
        yield mock_extract


@pytest.fixture
def fake_provider():
    provider = FakeProvider()
    with patch("auditkb.ingest.pipeline.build_providers", return_value=[provider]):
        yield provider


def _write_pdf(project: Path, name: str, text: str) -> None:
    path = project / "knowledge" / "pdfs" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(text.encode("utf-8"))


# ------------------------------------------------------------------
# Happy path
# ------------------------------------------------------------------


def test_ingest_writes_index_and_cache(project, fake_provider):
    _write_pdf(project, "policy.pdf", "Energy audit findings for site A.")

    result = runner.invoke(app, ["ingest", "--project", str(project)])

    assert result.exit_code == 0, result.output
    index = json.loads((project / "data" / "knowledge.json").read_text(encoding="utf-8"))
    assert [c["id"] for c in index["chunks"]] == ["c1"]
    assert index["chunks"][0]["source"] == "knowledge/pdfs/policy.pdf"
    assert (project / "data" / "embedding-cache.json").exists()
    assert "1 files" in result.output
    assert "1 embedded" in result.output


def test_ingest_second_run_reports_cached(project, fake_provider):
    _write_pdf(project, "policy.pdf", "Energy audit findings for site A.")
    runner.invoke(app, ["ingest", "--project", str(project)])

    result = runner.invoke(app, ["ingest", "--project", str(project)])

    assert result.exit_code == 0, result.output
    assert "1 cached" in result.output
    assert len(fake_provider.calls) == 1


def test_ingest_empty_source_dir(project, fake_provider):
    result = runner.invoke(app, ["ingest", "--project", str(project)])

    assert result.exit_code == 0, result.output
    assert "No PDFs" in result.output
    index = json.loads((project / "data" / "knowledge.json").read_text(encoding="utf-8"))
    assert index["chunks"] == []


# ------------------------------------------------------------------
# Flags and configuration
# ------------------------------------------------------------------


def test_ingest_flags_override_config(project, fake_provider):
    (project / "auditkb.yaml").write_text("chunking:\n  chunk_size: 50\n  overlap: 10\n")
    _write_pdf(project, "long.pdf", "x" * 100)
    out = project / "build" / "index.json"

    result = runner.invoke(
        app,
        [
            "ingest",
            "--project", str(project),
            "--out", str(out),
            "--chunk-size", "20",
            "--overlap", "0",
            "--batch-size", "2",
        ],
    )

    assert result.exit_code == 0, result.output
    index = json.loads(out.read_text(encoding="utf-8"))
    assert len(index["chunks"]) == 5
    assert [len(batch) for batch in fake_provider.calls] == [2, 2, 1]


def test_ingest_model_flag_recorded_in_index(project, fake_provider):
    result = runner.invoke(
        app, ["ingest", "--project", str(project), "--model", "text-embedding-3-large"]
    )
    assert result.exit_code == 0, result.output
    index = json.loads((project / "data" / "knowledge.json").read_text(encoding="utf-8"))
    assert index["model"] == "text-embedding-3-large"


def test_ingest_invalid_overlap_exits(project, fake_provider):
    result = runner.invoke(
        app, ["ingest", "--project", str(project), "--chunk-size", "100", "--overlap", "100"]
    )
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_ingest_unknown_provider_exits(project):
    _write_pdf(project, "policy.pdf", "text")
    result = runner.invoke(app, ["ingest", "--project", str(project), "--provider", "cohere"])
    assert result.exit_code == 1
    assert "Unknown embedding provider" in result.output


def test_ingest_loads_env_local(project, fake_provider):
    env_file = project / ".env.local"
    env_file.write_text("OPENAI_API_KEY=sk-from-file\n")
    with patch("auditkb.cli.ingest.load_dotenv") as mock_load:
        result = runner.invoke(app, ["ingest", "--project", str(project)])
    assert result.exit_code == 0, result.output
    mock_load.assert_called_once_with(env_file, override=False)


def test_ingest_skips_env_local_when_absent(project, fake_provider):
    with patch("auditkb.cli.ingest.load_dotenv") as mock_load:
        runner.invoke(app, ["ingest", "--project", str(project)])
    mock_load.assert_not_called()


# ------------------------------------------------------------------
# Failures
# ------------------------------------------------------------------


def test_ingest_without_credentials_exits(project):
    _write_pdf(project, "policy.pdf", "Energy audit findings.")

    result = runner.invoke(app, ["ingest", "--project", str(project)])

    assert result.exit_code == 1
    assert "No embedding provider configured" in result.output
    assert "OPENAI_API_KEY" in result.output
    assert not (project / "data" / "knowledge.json").exists()


def test_ingest_provider_failure_exits_without_writing(project):
    _write_pdf(project, "policy.pdf", "Energy audit findings.")
    failing = FakeProvider(always_fail=True, error=FakeAPIError(status_code=401))
    with patch("auditkb.ingest.pipeline.build_providers", return_value=[failing]):
        result = runner.invoke(app, ["ingest", "--project", str(project)])

    assert result.exit_code == 1
    assert "Embedding failed" in result.output
    assert "No index was written" in result.output
    assert not (project / "data" / "knowledge.json").exists()
    assert not (project / "data" / "embedding-cache.json").exists()


def test_ingest_extraction_failure_exits(project, fake_provider, text_extraction):
    _write_pdf(project, "scan.pdf", "garbage")
    text_extraction.side_effect = ExtractionError("Could not parse PDF")

    result = runner.invoke(app, ["ingest", "--project", str(project)])

    assert result.exit_code == 1
    assert "Could not extract text" in result.output
    assert not (project / "data" / "knowledge.json").exists()
