"""Chroma implementation of the ingestion sink."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

import chromadb
from pydantic import BaseModel

from knowledge_ingest.config import settings
from knowledge_ingest.exceptions import RecordNotFoundError
from knowledge_ingest.ingestion.models import Record, SearchHit
from knowledge_ingest.storage.base import IngestionSink, storage_errors

logger = logging.getLogger(__name__)

# Bookkeeping keys stored alongside user metadata.
_JSON_FIELDS_KEY = "_json_fields"
_CREATED_NS_KEY = "_created_ns"
_INCLUDE = ["documents", "metadatas", "embeddings"]


class InitializationStatus(BaseModel):
    """Result of :meth:`ChromaSink.initialize`."""

    success: bool
    message: str = ""


def _encode_metadata(metadata: Mapping[str, Any], created_ns: int) -> dict[str, Any]:
    """Flatten *metadata* to the scalar values Chroma accepts.

    Lists and dicts are JSON-encoded and their keys remembered under
    ``_json_fields`` so :func:`_decode_metadata` can restore them.
    """
    flat: dict[str, Any] = {}
    json_fields: list[str] = []
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            flat[key] = value
        else:
            flat[key] = json.dumps(value, ensure_ascii=False, default=str)
            json_fields.append(key)
    flat[_JSON_FIELDS_KEY] = ",".join(json_fields)
    flat[_CREATED_NS_KEY] = created_ns
    return flat


def _decode_metadata(raw: Mapping[str, Any] | None) -> dict[str, Any]:
    raw = dict(raw or {})
    json_fields = [f for f in str(raw.pop(_JSON_FIELDS_KEY, "")).split(",") if f]
    raw.pop(_CREATED_NS_KEY, None)
    for key in json_fields:
        if key in raw:
            raw[key] = json.loads(raw[key])
    return raw


def _build_chroma_where(filters: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Convert equality *filters* to Chroma ``where`` syntax."""
    if not filters:
        return None
    clauses = [{key: {"$eq": value}} for key, value in filters.items()]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _column(results: Mapping[str, Any], name: str) -> list[Any]:
    """Return a result column, tolerating ``None`` and numpy arrays."""
    value = results.get(name)
    if value is None:
        return []
    return list(value)


class ChromaSink(IngestionSink):
    """Chroma-backed sink.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    client:
        Pre-built chromadb client; when given, *host* and *port* are ignored.
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        client: Any = None,
    ) -> None:
        super().__init__(collection_name)
        self._host = host
        self._port = port
        with storage_errors("connect"):
            self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # -- IngestionSink overrides ----------------------------------------------

    def create(self, content: str, embedding: list[float], metadata: Mapping[str, Any]) -> str:
        record_id = uuid4().hex
        with storage_errors("create"):
            self._collection.add(
                ids=[record_id],
                embeddings=[list(embedding)],
                documents=[content],
                metadatas=[_encode_metadata(metadata, time.time_ns())],
            )
        logger.debug("Created record %s in %s", record_id, self.collection_name)
        return record_id

    def get(self, record_id: str) -> Record:
        with storage_errors("get"):
            results = self._collection.get(ids=[record_id], include=_INCLUDE)
        records = self._to_records(results)
        if not records:
            raise RecordNotFoundError(record_id)
        return records[0][1]

    def list(self) -> list[Record]:
        with storage_errors("list"):
            results = self._collection.get(include=_INCLUDE)
        records = self._to_records(results)
        records.sort(key=lambda pair: pair[0], reverse=True)
        return [record for _, record in records]

    def delete(self, record_id: str) -> None:
        self.get(record_id)
        with storage_errors("delete"):
            self._collection.delete(ids=[record_id])

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: Mapping[str, Any] | None = None,
    ) -> list[SearchHit]:
        with storage_errors("similarity search"):
            results = self._collection.query(
                query_embeddings=[list(query_embedding)],
                n_results=k,
                where=_build_chroma_where(filters),
                include=["documents", "metadatas", "distances"],
            )

        ids = _column(results, "ids")
        ids = list(ids[0]) if ids else []
        docs = (_column(results, "documents") or [[]])[0]
        metas = (_column(results, "metadatas") or [[]])[0]
        distances = (_column(results, "distances") or [[]])[0]

        hits: list[SearchHit] = []
        for record_id, content, meta, dist in zip(ids, docs, metas, distances):
            record = Record(id=record_id, content=content or "", metadata=_decode_metadata(meta))
            # Cosine space: distance = 1 - similarity.
            hits.append(SearchHit(record=record, similarity=1.0 - float(dist)))
        return hits

    def _replace(
        self,
        record_id: str,
        content: str,
        embedding: list[float],
        metadata: dict[str, Any],
    ) -> None:
        current = self._collection.get(ids=[record_id], include=["metadatas"])
        metas = _column(current, "metadatas")
        stored = (metas[0] if metas else None) or {}
        created_ns = stored.get(_CREATED_NS_KEY, time.time_ns())
        self._collection.update(
            ids=[record_id],
            embeddings=[list(embedding)],
            documents=[content],
            metadatas=[_encode_metadata(metadata, created_ns)],
        )

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    # -- extras ---------------------------------------------------------------

    def initialize(self) -> InitializationStatus:
        """Check that the server answers and the collection is usable."""
        if not self.health_check():
            return InitializationStatus(
                success=False,
                message=f"Chroma server at {self._host}:{self._port} is not reachable",
            )
        try:
            self._collection.count()
        except Exception as exc:
            logger.warning("Collection %s is not usable", self.collection_name, exc_info=True)
            return InitializationStatus(success=False, message=str(exc))
        return InitializationStatus(success=True)

    # -- internals ------------------------------------------------------------

    def _to_records(self, results: Mapping[str, Any]) -> list[tuple[int, Record]]:
        ids = _column(results, "ids")
        docs = _column(results, "documents") or [None] * len(ids)
        metas = _column(results, "metadatas") or [None] * len(ids)
        embeddings = _column(results, "embeddings") or [None] * len(ids)

        records: list[tuple[int, Record]] = []
        for record_id, content, meta, emb in zip(ids, docs, metas, embeddings):
            created_ns = int((meta or {}).get(_CREATED_NS_KEY, 0))
            record = Record(
                id=record_id,
                content=content or "",
                metadata=_decode_metadata(meta),
                embedding=[float(v) for v in emb] if emb is not None else [],
            )
            records.append((created_ns, record))
        return records
