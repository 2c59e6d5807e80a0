"""Batch scheduler — drives enrichment and persistence across a document.

Chunks are processed strictly one at a time, in index order, grouped in
small batches with a pause before every batch but the first and before
every chunk of a batch but its first.  A failing chunk is logged and
skipped; only a document where *every* chunk failed is an error.

Usage::

    result = await ingest_document(
        "Release notes",
        text,
        IngestionConfig(),
        embedder=TextEmbedder(),
        qa_generator=QAGenerator(),
        sink=ChromaSink(),
    )
    print(f"{result.success_count}/{result.total_chunks} chunks stored")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from knowledge_ingest.exceptions import IngestError, IngestionFailedError, ValidationError
from knowledge_ingest.ingestion.chunker import chunk_paragraphs, chunk_text
from knowledge_ingest.ingestion.embedder import TextEmbedder
from knowledge_ingest.ingestion.enrichment import Enricher
from knowledge_ingest.ingestion.models import (
    Chunk,
    Document,
    EnrichedChunk,
    IngestionConfig,
    IngestionResult,
    utc_now,
)
from knowledge_ingest.ingestion.qa import QAGenerator

if TYPE_CHECKING:
    from knowledge_ingest.storage.base import IngestionSink

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

NO_QA_PLACEHOLDER = "No questions and answers were generated."


# ── Helpers ───────────────────────────────────────────────────────────


def format_record_content(enriched: EnrichedChunk) -> str:
    """Render the display string stored as a record's content."""
    chunk = enriched.chunk
    lines = [
        f"Vectorized Text (Chunk {chunk.index + 1}/{chunk.total_chunks})",
        "",
        enriched.cleaned_text,
        "",
        "Generated Questions and Answers",
        "",
    ]
    if not enriched.qa_pairs:
        lines.append(NO_QA_PLACEHOLDER)
    for i, pair in enumerate(enriched.qa_pairs, 1):
        if i > 1:
            lines.append("")
        lines.append(f"Question {i}: {pair.question}")
        lines.append(f"Answer {i}: {pair.answer}")
    return "\n".join(lines)


def build_chunk_metadata(title: str, enriched: EnrichedChunk) -> dict[str, Any]:
    """Metadata persisted with one chunk on the create path."""
    chunk = enriched.chunk
    return {
        "title": title,
        "chunk_index": chunk.index,
        "total_chunks": chunk.total_chunks,
        "is_first_chunk": chunk.is_first,
        "cleaned_text": enriched.cleaned_text,
        "qa_pairs": [pair.model_dump() for pair in enriched.qa_pairs],
        "created_at": enriched.created_at.isoformat(),
        "updated_at": enriched.updated_at.isoformat(),
    }


def split_document(document: Document, config: IngestionConfig) -> list[Chunk]:
    """Chunk *document* with the configured strategy."""
    if config.strategy == "paragraph":
        texts = chunk_paragraphs(document.raw_text, config.chunk_size)
    else:
        texts = chunk_text(document.raw_text, config.chunk_size, config.chunk_overlap)
    total = len(texts)
    return [Chunk(index=i, total_chunks=total, text=t, is_first=i == 0) for i, t in enumerate(texts)]


def batched(chunks: list[Chunk], size: int) -> list[list[Chunk]]:
    return [chunks[start : start + size] for start in range(0, len(chunks), size)]


def _validate(title: str, raw_text: str) -> Document:
    if not title.strip() or not raw_text.strip():
        raise ValidationError("Title and content are required")
    return Document(title=title.strip(), raw_text=raw_text)


# ── Create path ───────────────────────────────────────────────────────


async def ingest_document(
    title: str,
    raw_text: str,
    config: IngestionConfig,
    *,
    embedder: TextEmbedder,
    qa_generator: QAGenerator,
    sink: IngestionSink,
    sleep: Sleep = asyncio.sleep,
) -> IngestionResult:
    """Chunk, enrich, and persist a document, one record per chunk.

    Parameters
    ----------
    title:
        Document title, stored in every record's metadata.
    raw_text:
        Full document text.
    config:
        Chunking, QA, and pacing settings.
    embedder / qa_generator:
        External model adapters used for enrichment.
    sink:
        Where records are created.
    sleep:
        Awaitable pause used for pacing; defaults to :func:`asyncio.sleep`.

    Returns
    -------
    IngestionResult
        Success and total counts; check ``partial`` to report a partial
        success to the user.

    Raises
    ------
    ValidationError
        If *title* or *raw_text* is blank.
    IngestionFailedError
        If no chunk could be enriched and stored.
    """
    document = _validate(title, raw_text)
    chunks = split_document(document, config)
    total = len(chunks)
    logger.info("Ingesting %r: %d chunk(s)", document.title, total)

    enricher = Enricher(
        embedder,
        qa_generator,
        expected_dimension=config.embedding_dimension,
        qa_pairs_per_chunk=config.qa_pairs_per_chunk,
    )
    pacing = config.pacing
    record_ids: list[str] = []
    failed: list[int] = []
    last_error: BaseException | None = None

    for batch_no, batch in enumerate(batched(chunks, pacing.batch_size)):
        if batch_no > 0:
            await sleep(pacing.batch_delay)
        for position, chunk in enumerate(batch):
            if position > 0:
                await sleep(pacing.item_delay)
            try:
                enriched = await enricher.enrich(chunk)
                record_id = await asyncio.to_thread(
                    sink.create,
                    format_record_content(enriched),
                    enriched.embedding,
                    build_chunk_metadata(document.title, enriched),
                )
            except IngestError as exc:
                logger.warning("Chunk %d/%d skipped: %s", chunk.index + 1, total, exc.message)
                failed.append(chunk.index)
                last_error = exc
                continue
            except Exception as exc:
                logger.exception("Chunk %d/%d skipped after unexpected error", chunk.index + 1, total)
                failed.append(chunk.index)
                last_error = exc
                continue
            record_ids.append(record_id)
            logger.info("Chunk %d/%d stored as %s", chunk.index + 1, total, record_id)

    if not record_ids:
        raise IngestionFailedError(total, cause=last_error)

    result = IngestionResult(
        success_count=len(record_ids),
        total_chunks=total,
        failed_indices=failed,
        record_ids=record_ids,
    )
    if result.partial:
        logger.warning("Ingested %r partially: %d/%d chunk(s)", document.title, result.success_count, total)
    return result


# ── Update path ───────────────────────────────────────────────────────


async def update_document(
    record_id: str,
    title: str,
    raw_text: str,
    config: IngestionConfig,
    *,
    embedder: TextEmbedder,
    qa_generator: QAGenerator,
    sink: IngestionSink,
) -> EnrichedChunk:
    """Re-embed the whole of *raw_text* and update one existing record.

    The text is not re-chunked.  New metadata is merged into the stored
    metadata, so keys this pipeline does not know about survive.  Every
    error propagates.
    """
    document = _validate(title, raw_text)
    enricher = Enricher(
        embedder,
        qa_generator,
        expected_dimension=config.embedding_dimension,
        qa_pairs_per_chunk=config.qa_pairs_per_chunk,
    )
    enriched = await enricher.enrich(Chunk.whole(document.raw_text))
    enriched = enriched.model_copy(update={"updated_at": utc_now()})

    # The record now holds the whole document, matching its "Chunk 1/1" header.
    patch = {
        "title": document.title,
        "chunk_index": 0,
        "total_chunks": 1,
        "is_first_chunk": True,
        "cleaned_text": enriched.cleaned_text,
        "qa_pairs": [pair.model_dump() for pair in enriched.qa_pairs],
        "updated_at": enriched.updated_at.isoformat(),
    }
    await asyncio.to_thread(
        sink.update,
        record_id,
        format_record_content(enriched),
        enriched.embedding,
        patch,
    )
    logger.info("Updated record %s (%r)", record_id, document.title)
    return enriched
