"""Best-effort text extraction for auditor uploads (PDF, CSV, plain text).

Used by ``auditkb extract``; not part of the knowledge-base pipeline.
Dispatch by content type first, then filename extension:

  application/pdf / .pdf  → pypdf text, capped at 120 000 characters
  text/csv / .csv         → first 400 lines
  text/* / .txt / other   → UTF-8 decode, capped at 120 000 characters
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from auditkb.ingest.pdf import extract_pdf_text

MAX_TEXT_CHARS = 120_000
MAX_CSV_LINES = 400
EXCERPT_CHARS = 2_000

_LINE_BREAK = re.compile(r"\r?\n")


@dataclass
class ExtractedDocument:
    """Text pulled from an uploaded document.

    Attributes:
        filename: Original file name.
        content_type: Declared MIME type (``application/octet-stream`` if unknown).
        text: Extracted (and truncated) text.
    """

    filename: str
    content_type: str
    text: str

    @property
    def raw_chars(self) -> int:
        return len(self.text)

    @property
    def excerpt(self) -> str:
        return self.text[:EXCERPT_CHARS]


def detect_kind(filename: str, content_type: str = "") -> str:
    """Return 'pdf', 'csv' or 'text' for the given upload."""
    ct = content_type.lower()
    name = filename.lower()
    if "pdf" in ct or name.endswith(".pdf"):
        return "pdf"
    if "csv" in ct or name.endswith(".csv"):
        return "csv"
    return "text"


def csv_to_text(data: bytes, max_lines: int = MAX_CSV_LINES) -> str:
    """Decode CSV bytes and keep the first *max_lines* lines.

    Only ``\\n`` and ``\\r\\n`` end a line; form feeds and other Unicode line
    separators inside cells are kept as-is.
    """
    lines = _LINE_BREAK.split(data.decode("utf-8", errors="replace"))
    return "\n".join(lines[:max_lines])


def extract_document(
    data: bytes,
    filename: str = "upload",
    content_type: str = "application/octet-stream",
) -> ExtractedDocument:
    """Extract text from an uploaded file.

    Raises:
        ExtractionError: If a PDF upload cannot be parsed.
    """
    kind = detect_kind(filename, content_type)
    if kind == "pdf":
        text = extract_pdf_text(data)[:MAX_TEXT_CHARS]
    elif kind == "csv":
        text = csv_to_text(data)
    else:
        text = data.decode("utf-8", errors="replace")[:MAX_TEXT_CHARS]
    return ExtractedDocument(filename=filename, content_type=content_type, text=text)
