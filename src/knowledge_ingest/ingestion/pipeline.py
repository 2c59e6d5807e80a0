"""High-level facade bundling the pipeline's collaborators.

The HTTP API and the CLI both talk to an :class:`IngestionPipeline`;
tests build one from fakes, production code from the persisted
:class:`~knowledge_ingest.config.AppState` via :meth:`IngestionPipeline.from_state`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from knowledge_ingest.config import AppState, Settings, settings
from knowledge_ingest.exceptions import ValidationError
from knowledge_ingest.ingestion.embedder import TextEmbedder
from knowledge_ingest.ingestion.models import EnrichedChunk, IngestionConfig, IngestionResult, Record, SearchHit
from knowledge_ingest.ingestion.qa import QAGenerator
from knowledge_ingest.ingestion.scheduler import Sleep, ingest_document, update_document
from knowledge_ingest.storage.base import IngestionSink

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Everything needed to ingest, update, browse, and search documents.

    Parameters
    ----------
    embedder:
        Embedding adapter.
    qa_generator:
        QA-pair adapter.
    sink:
        Record store.
    config:
        Chunking / pacing settings; defaults to values from :data:`settings`.
    sleep:
        Pacing pause, swappable for tests.
    """

    def __init__(
        self,
        embedder: TextEmbedder,
        qa_generator: QAGenerator,
        sink: IngestionSink,
        *,
        config: IngestionConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.embedder = embedder
        self.qa_generator = qa_generator
        self.sink = sink
        self.config = config or IngestionConfig.from_settings(settings)
        self.sleep = sleep

    @classmethod
    def from_state(cls, state: AppState, base: Settings = settings) -> IngestionPipeline:
        """Build production collaborators from the saved API configuration."""
        from knowledge_ingest.llm import get_embedding_function, get_llm
        from knowledge_ingest.storage.chroma_store import ChromaSink

        if not state.configured:
            raise ValidationError("The application is not configured; save an API configuration first")

        resolved = base.model_copy(
            update={
                "openai_api_key": state.api.openai_api_key,
                "chroma_host": state.api.chroma_host,
                "chroma_port": state.api.chroma_port,
                "chroma_collection": state.api.chroma_collection,
            }
        )
        return cls(
            TextEmbedder(
                get_embedding_function(resolved),
                max_input_chars=resolved.embedding_max_input_chars,
            ),
            QAGenerator(get_llm(config=resolved)),
            ChromaSink(
                resolved.chroma_collection,
                host=resolved.chroma_host,
                port=resolved.chroma_port,
            ),
            config=IngestionConfig.from_settings(resolved),
        )

    async def ingest(self, title: str, raw_text: str) -> IngestionResult:
        return await ingest_document(
            title,
            raw_text,
            self.config,
            embedder=self.embedder,
            qa_generator=self.qa_generator,
            sink=self.sink,
            sleep=self.sleep,
        )

    async def update(self, record_id: str, title: str, raw_text: str) -> EnrichedChunk:
        return await update_document(
            record_id,
            title,
            raw_text,
            self.config,
            embedder=self.embedder,
            qa_generator=self.qa_generator,
            sink=self.sink,
        )

    async def list_records(self) -> list[Record]:
        return await asyncio.to_thread(self.sink.list)

    async def get_record(self, record_id: str) -> Record:
        return await asyncio.to_thread(self.sink.get, record_id)

    async def delete(self, record_id: str) -> None:
        await asyncio.to_thread(self.sink.delete, record_id)
        logger.info("Deleted record %s", record_id)

    async def search(
        self,
        query: str,
        *,
        k: int = 5,
        filters: Mapping[str, Any] | None = None,
    ) -> list[SearchHit]:
        """Embed *query* and return the *k* most similar records."""
        if not query.strip():
            raise ValidationError("Query must not be empty")
        embedding = await self.embedder.embed(query)
        return await asyncio.to_thread(
            lambda: self.sink.similarity_search(embedding, k=k, filters=filters)
        )
