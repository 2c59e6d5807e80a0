"""Per-chunk enrichment: clean → embed → generate QA pairs."""

from __future__ import annotations

import logging

from knowledge_ingest.exceptions import EmptyInputError
from knowledge_ingest.ingestion.embedder import TextEmbedder
from knowledge_ingest.ingestion.models import Chunk, EnrichedChunk, utc_now
from knowledge_ingest.ingestion.qa import QAGenerator
from knowledge_ingest.ingestion.sanitizer import sanitize

logger = logging.getLogger(__name__)


class Enricher:
    """Produce an :class:`EnrichedChunk` from raw chunk text.

    The embedding step is mandatory: its :class:`EmbeddingError`
    propagates.  QA generation is best-effort and yields ``[]`` on
    failure.

    Parameters
    ----------
    embedder:
        Vectorises the cleaned text.
    qa_generator:
        Produces QA pairs from the cleaned text.
    expected_dimension:
        Expected embedding length.  A mismatch is logged, not rejected.
    qa_pairs_per_chunk:
        Number of QA pairs requested per chunk.
    """

    def __init__(
        self,
        embedder: TextEmbedder,
        qa_generator: QAGenerator,
        *,
        expected_dimension: int = 1536,
        qa_pairs_per_chunk: int = 3,
    ) -> None:
        self.embedder = embedder
        self.qa_generator = qa_generator
        self.expected_dimension = expected_dimension
        self.qa_pairs_per_chunk = qa_pairs_per_chunk

    async def enrich(self, chunk: Chunk | str) -> EnrichedChunk:
        """Clean, embed, and annotate *chunk*.

        A bare string is treated as a document consisting of one chunk.

        Raises
        ------
        EmptyInputError
            If the chunk text is empty, whitespace only, or nothing but markup.
        EmbeddingError
            If the embedding backend fails.
        """
        if isinstance(chunk, str):
            chunk = Chunk.whole(chunk)
        if not chunk.text.strip():
            raise EmptyInputError(f"Chunk {chunk.index} has no text")

        cleaned = sanitize(chunk.text)
        if not cleaned:
            raise EmptyInputError(f"Chunk {chunk.index} has no text left after cleaning")
        embedding = await self.embedder.embed(cleaned)
        if len(embedding) != self.expected_dimension:
            logger.warning(
                "Chunk %d: embedding has %d dimensions, expected %d",
                chunk.index,
                len(embedding),
                self.expected_dimension,
            )

        qa_pairs = await self.qa_generator.generate(cleaned, self.qa_pairs_per_chunk)

        now = utc_now()
        return EnrichedChunk(
            chunk=chunk,
            cleaned_text=cleaned,
            embedding=embedding,
            qa_pairs=qa_pairs,
            created_at=now,
            updated_at=now,
        )
