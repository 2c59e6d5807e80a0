"""
Storage — the sink that persists enriched chunks as records.

Public surface
--------------
- :class:`IngestionSink` — abstract backend (subclass for pgvector, etc.).
- :class:`InMemorySink` — process-local backend for tests and dry runs.
- :class:`ChromaSink` — default Chroma backend.
- :func:`merge_metadata` — "patch wins, base preserved" mapping merge.
"""

from knowledge_ingest.storage.base import IngestionSink, merge_metadata
from knowledge_ingest.storage.memory_store import InMemorySink

__all__ = [
    "ChromaSink",
    "InMemorySink",
    "IngestionSink",
    "merge_metadata",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaSink to avoid pulling in chromadb at import time."""
    if name == "ChromaSink":
        from knowledge_ingest.storage.chroma_store import ChromaSink

        return ChromaSink
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
