"""Domain models flowing through the ingestion pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from knowledge_ingest.config import Settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """User-submitted text; immutable once handed to the pipeline."""

    model_config = ConfigDict(frozen=True)

    title: str
    raw_text: str


class Chunk(BaseModel):
    """One window of a document's text.

    Attributes
    ----------
    index:
        Zero-based position of the chunk in its document.
    total_chunks:
        Number of chunks the document was split into.
    text:
        Raw (unsanitised) chunk text.
    is_first:
        ``True`` only for ``index == 0``.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    total_chunks: int = Field(gt=0)
    text: str
    is_first: bool = False

    @model_validator(mode="after")
    def _index_in_range(self) -> Chunk:
        if self.index >= self.total_chunks:
            raise ValueError(f"index {self.index} out of range for {self.total_chunks} chunk(s)")
        return self

    @classmethod
    def whole(cls, text: str) -> Chunk:
        """A single chunk spanning *text* entirely."""
        return cls(index=0, total_chunks=1, text=text, is_first=True)


class QAPair(BaseModel):
    question: str
    answer: str


class EnrichedChunk(BaseModel):
    """A chunk after cleaning, embedding, and QA generation."""

    chunk: Chunk
    cleaned_text: str
    embedding: list[float]
    qa_pairs: list[QAPair] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Record(BaseModel):
    """A row as stored by an :class:`~knowledge_ingest.storage.base.IngestionSink`."""

    id: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    embedding: list[float] = Field(default_factory=list)


class SearchHit(BaseModel):
    """A record returned by similarity search, with its score."""

    record: Record
    similarity: float


class IngestionResult(BaseModel):
    """Outcome of :func:`~knowledge_ingest.ingestion.scheduler.ingest_document`."""

    success_count: int
    total_chunks: int
    failed_indices: list[int] = Field(default_factory=list)
    record_ids: list[str] = Field(default_factory=list)

    @property
    def partial(self) -> bool:
        return 0 < self.success_count < self.total_chunks


class PacingPolicy(BaseModel):
    """How chunks are grouped and spaced out when calling external services.

    Attributes
    ----------
    batch_size:
        Chunks per batch.
    batch_delay:
        Seconds to wait before every batch except the first.
    item_delay:
        Seconds to wait before every chunk of a batch except its first.
    """

    batch_size: int = Field(default=2, gt=0)
    batch_delay: float = Field(default=1.0, ge=0)
    item_delay: float = Field(default=0.5, ge=0)


class IngestionConfig(BaseModel):
    """Per-call knobs for the batch scheduler."""

    chunk_size: int = 1000
    chunk_overlap: int = 200
    strategy: Literal["sliding", "paragraph"] = "sliding"
    qa_pairs_per_chunk: int = Field(default=3, ge=0)
    embedding_dimension: int = 1536
    pacing: PacingPolicy = Field(default_factory=PacingPolicy)

    @classmethod
    def from_settings(cls, settings: Settings) -> IngestionConfig:
        return cls(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            qa_pairs_per_chunk=settings.qa_pairs_per_chunk,
            embedding_dimension=settings.embedding_dimension,
            pacing=PacingPolicy(
                batch_size=settings.batch_size,
                batch_delay=settings.batch_delay_seconds,
                item_delay=settings.item_delay_seconds,
            ),
        )
