"""Shared pytest configuration and fixtures.

External models are replaced with deterministic stand-ins: a bag-of-
characters :class:`StubEmbeddings` and LangChain's ``FakeListChatModel``.
"""

from __future__ import annotations

import pytest
from langchain_core.embeddings import Embeddings
from langchain_core.language_models import FakeListChatModel

from knowledge_ingest.ingestion.embedder import TextEmbedder
from knowledge_ingest.ingestion.models import IngestionConfig
from knowledge_ingest.ingestion.qa import QAGenerator
from knowledge_ingest.storage.memory_store import InMemorySink

QA_COMPLETION = """\
Question 1: What is being described?
Answer 1: A sample passage.

Question 2: Why does it exist?
Answer 2: To exercise the pipeline.
"""


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


class StubEmbeddings(Embeddings):
    """Bag-of-characters embedding; fails on the calls listed in *fail_on*."""

    def __init__(self, size: int = 1536, fail_on: set[int] | None = None, always_fail: bool = False) -> None:
        self.size = size
        self.fail_on = fail_on or set()
        self.always_fail = always_fail
        self.calls: list[str] = []

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.always_fail or len(self.calls) in self.fail_on:
            raise RuntimeError("quota exceeded")
        vector = [0.0] * self.size
        for ch in text:
            vector[ord(ch) % self.size] += 1.0
        return vector


class RecordingSleep:
    """Awaitable stand-in for ``asyncio.sleep`` that only records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture()
def embeddings() -> StubEmbeddings:
    return StubEmbeddings()


@pytest.fixture()
def embedder(embeddings: StubEmbeddings) -> TextEmbedder:
    return TextEmbedder(embeddings)


@pytest.fixture()
def make_embedder():
    """Factory: ``make_embedder(size=8, fail_on={2}, always_fail=False)``."""

    def _make(**kwargs) -> TextEmbedder:
        return TextEmbedder(StubEmbeddings(**kwargs))

    return _make


@pytest.fixture()
def qa_generator() -> QAGenerator:
    return QAGenerator(FakeListChatModel(responses=[QA_COMPLETION]))


@pytest.fixture()
def sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture()
def sleeps() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def config() -> IngestionConfig:
    return IngestionConfig()
