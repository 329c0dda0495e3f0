"""auditkb ingest pipeline — hashing, extraction, chunking, embedding cache, orchestration."""

from auditkb.ingest.cache import EmbeddingCache
from auditkb.ingest.chunker import ChunkWindows, TextChunker
from auditkb.ingest.documents import ExtractedDocument, extract_document
from auditkb.ingest.fingerprint import content_hash, file_hash
from auditkb.ingest.pdf import clean_text, extract_pdf_text
from auditkb.ingest.pipeline import IngestPipeline, IngestReport

__all__ = [
    "ChunkWindows",
    "EmbeddingCache",
    "ExtractedDocument",
    "IngestPipeline",
    "IngestReport",
    "TextChunker",
    "clean_text",
    "content_hash",
    "extract_document",
    "extract_pdf_text",
    "file_hash",
]
