"""Abstract base class for ingestion sinks.

Adding a new backend (pgvector, Pinecone, Qdrant …) only requires
subclassing :class:`IngestionSink` and implementing the abstract
methods.  Metadata merging on update is handled here so every backend
gets the same "patch wins, base preserved" semantics.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from knowledge_ingest.exceptions import StorageError
from knowledge_ingest.ingestion.models import Record, SearchHit


def merge_metadata(base: Mapping[str, Any] | None, patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new mapping with *patch* applied over *base*.

    Keys present in *patch* overwrite those in *base*; every other key of
    *base* is kept.  Neither argument is modified.
    """
    merged = dict(base or {})
    merged.update(patch)
    return merged


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise any backend exception from the block as :class:`StorageError`."""
    try:
        yield
    except StorageError:
        raise
    except Exception as exc:
        raise StorageError(f"{operation} failed: {exc}", cause=exc) from exc


class IngestionSink(ABC):
    """Backend-agnostic record store for enriched chunks.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / table / index.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def create(self, content: str, embedding: list[float], metadata: Mapping[str, Any]) -> str:
        """Persist a new record and return its id."""
        ...

    @abstractmethod
    def get(self, record_id: str) -> Record:
        """Return one record; raise :class:`RecordNotFoundError` if absent."""
        ...

    @abstractmethod
    def list(self) -> list[Record]:
        """Return every record, newest first."""
        ...

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Remove one record; raise :class:`RecordNotFoundError` if absent."""
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: Mapping[str, Any] | None = None,
    ) -> list[SearchHit]:
        """Return the top-*k* records closest to *query_embedding*.

        Parameters
        ----------
        query_embedding:
            Dense vector for the query.
        k:
            Number of results to return.
        filters:
            Optional metadata equality constraints; every key must match.
        """
        ...

    @abstractmethod
    def _replace(
        self,
        record_id: str,
        content: str,
        embedding: list[float],
        metadata: dict[str, Any],
    ) -> None:
        """Overwrite the stored content, embedding, and full metadata of a record."""
        ...

    # -- shared behaviour -----------------------------------------------------

    def update(
        self,
        record_id: str,
        content: str,
        embedding: list[float],
        metadata_patch: Mapping[str, Any],
    ) -> None:
        """Replace content and embedding; merge *metadata_patch* into existing metadata."""
        existing = self.get(record_id)
        merged = merge_metadata(existing.metadata, metadata_patch)
        with storage_errors("update"):
            self._replace(record_id, content, embedding, merged)

    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        return True
