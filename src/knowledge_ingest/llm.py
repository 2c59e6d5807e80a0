"""Model initialisation — single place to swap providers.

Supports two embedding backends:

1. **OpenAI** (default) — ``text-embedding-3-small``, 1536 dimensions.
2. **HuggingFace** — any sentence-transformers model, run locally.

Completions always go through ``ChatOpenAI``; set ``LLM_BASE_URL`` to
point it at any OpenAI-compatible endpoint.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from langchain_openai import ChatOpenAI, OpenAIEmbeddings

from knowledge_ingest.config import Settings, settings

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_llm(temperature: float = 0.3, config: Settings = settings) -> ChatOpenAI:
    """Return the chat model used for QA generation."""
    kwargs: dict = {
        "model": config.llm_model_name,
        "temperature": temperature,
    }

    if config.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", config.llm_base_url)
        kwargs["base_url"] = config.llm_base_url
        # Self-hosted endpoints don't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = config.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = config.openai_api_key

    return ChatOpenAI(**kwargs)


def get_embedding_function(config: Settings = settings) -> Embeddings:
    """Return the configured LangChain embedding backend."""
    provider = config.embedding_provider.lower()
    if provider == "openai":
        return OpenAIEmbeddings(model=config.embedding_model, api_key=config.openai_api_key)
    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        return HuggingFaceEmbeddings(model_name=config.embedding_model)
    raise ValueError(f"Unsupported embedding_provider: {config.embedding_provider!r}")
