"""Embedding adapter used by the enrichment step."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from knowledge_ingest.config import settings
from knowledge_ingest.exceptions import EmbeddingError

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


class TextEmbedder:
    """Turn text into a single vector via any LangChain ``Embeddings``.

    Parameters
    ----------
    embeddings:
        Backend to call.  When *None*, the configured backend from
        :func:`knowledge_ingest.llm.get_embedding_function` is used.
    max_input_chars:
        Input is truncated to this many characters before the call so
        that provider-side limits are never hit.
    """

    def __init__(
        self,
        embeddings: Embeddings | None = None,
        *,
        max_input_chars: int = settings.embedding_max_input_chars,
    ) -> None:
        if embeddings is None:
            from knowledge_ingest.llm import get_embedding_function

            embeddings = get_embedding_function()
        self._embeddings = embeddings
        self.max_input_chars = max_input_chars

    async def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*; raise :class:`EmbeddingError` on any failure."""
        if len(text) > self.max_input_chars:
            logger.debug("Truncating embedding input from %d to %d chars", len(text), self.max_input_chars)
            text = text[: self.max_input_chars]

        try:
            vector = await self._embeddings.aembed_query(text)
        except Exception as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}", cause=exc) from exc

        try:
            values = [float(v) for v in vector]
        except (TypeError, ValueError) as exc:
            raise EmbeddingError("Embedding backend returned non-numeric data", cause=exc) from exc
        if not values:
            raise EmbeddingError("Embedding backend returned an empty vector")
        return values
