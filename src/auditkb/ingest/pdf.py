"""PDF text extraction via pypdf."""

from __future__ import annotations

from io import BytesIO

import pypdf
from pypdf.errors import PyPdfError

from auditkb.errors import ExtractionError

_PAGE_BREAK = "\n\n"


def extract_pdf_text(data: bytes) -> str:
    """Extract the text of every page of the PDF in *data*.

    Strategy:
    - Read the document from memory with ``pypdf.PdfReader``.
    - Per page, join the extracted text fragments (one per line) with single
      spaces.
    - Join pages with a blank line. Pages without text (scanned images, etc.)
      still contribute their page break, so page order is preserved.

    Raises:
        ExtractionError: If *data* is not a parseable PDF.
    """
    try:
        reader = pypdf.PdfReader(BytesIO(data))
        pages = [_page_text(page) for page in reader.pages]
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        raise ExtractionError(f"Could not parse PDF: {exc}") from exc
    return _PAGE_BREAK.join(pages)


def clean_text(text: str) -> str:
    """Strip carriage returns and NUL characters, then trim surrounding whitespace."""
    return text.replace("\r", "").replace("\x00", "").strip()


def _page_text(page) -> str:
    raw = page.extract_text() or ""
    return " ".join(raw.splitlines())
