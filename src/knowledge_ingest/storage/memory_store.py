"""Process-local sink, for tests and dry runs."""

from __future__ import annotations

import copy
import math
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from knowledge_ingest.exceptions import RecordNotFoundError
from knowledge_ingest.ingestion.models import Record, SearchHit
from knowledge_ingest.storage.base import IngestionSink


def cosine_similarity(a: list[float], b: list[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


class InMemorySink(IngestionSink):
    """Dict-backed sink; records live only as long as the instance."""

    def __init__(self, collection_name: str = "memory") -> None:
        super().__init__(collection_name)
        self._records: dict[str, Record] = {}

    def create(self, content: str, embedding: list[float], metadata: Mapping[str, Any]) -> str:
        record_id = uuid4().hex
        self._records[record_id] = Record(
            id=record_id,
            content=content,
            embedding=list(embedding),
            metadata=copy.deepcopy(dict(metadata)),
        )
        return record_id

    def get(self, record_id: str) -> Record:
        try:
            return self._records[record_id].model_copy(deep=True)
        except KeyError:
            raise RecordNotFoundError(record_id) from None

    def list(self) -> list[Record]:
        return [r.model_copy(deep=True) for r in reversed(self._records.values())]

    def delete(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is None:
            raise RecordNotFoundError(record_id)

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: Mapping[str, Any] | None = None,
    ) -> list[SearchHit]:
        hits = [
            SearchHit(record=r.model_copy(deep=True), similarity=cosine_similarity(query_embedding, r.embedding))
            for r in self._records.values()
            if all(r.metadata.get(key) == value for key, value in (filters or {}).items())
        ]
        hits.sort(key=lambda h: h.similarity, reverse=True)
        return hits[:k]

    def _replace(
        self,
        record_id: str,
        content: str,
        embedding: list[float],
        metadata: dict[str, Any],
    ) -> None:
        self._records[record_id] = Record(
            id=record_id,
            content=content,
            embedding=list(embedding),
            metadata=copy.deepcopy(metadata),
        )

    def __len__(self) -> int:
        return len(self._records)
