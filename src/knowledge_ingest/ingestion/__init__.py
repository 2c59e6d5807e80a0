"""
Ingestion — sanitising, chunking, enrichment, and paced persistence.

This module converts pasted text into records in a vector store:
each overlapping chunk is cleaned, embedded, annotated with generated
question/answer pairs, and handed to an ingestion sink.
"""

from knowledge_ingest.ingestion.chunker import chunk_paragraphs, chunk_text
from knowledge_ingest.ingestion.enrichment import Enricher
from knowledge_ingest.ingestion.models import (
    Chunk,
    Document,
    EnrichedChunk,
    IngestionConfig,
    IngestionResult,
    PacingPolicy,
    QAPair,
    Record,
)
from knowledge_ingest.ingestion.sanitizer import sanitize
from knowledge_ingest.ingestion.scheduler import format_record_content, ingest_document, update_document

__all__ = [
    "Chunk",
    "Document",
    "EnrichedChunk",
    "Enricher",
    "IngestionConfig",
    "IngestionResult",
    "PacingPolicy",
    "QAPair",
    "Record",
    "chunk_paragraphs",
    "chunk_text",
    "format_record_content",
    "ingest_document",
    "sanitize",
    "update_document",
]
