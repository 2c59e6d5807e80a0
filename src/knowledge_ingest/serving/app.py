"""FastAPI application exposing the ingestion pipeline as a REST API."""

from __future__ import annotations

from typing import Any

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from knowledge_ingest.config import ApiConfig, clear_state, configure_logging, load_state, save_api_config
from knowledge_ingest.exceptions import (
    EmbeddingError,
    EmptyInputError,
    IngestError,
    IngestionFailedError,
    RecordNotFoundError,
    StorageError,
    ValidationError,
)
from knowledge_ingest.ingestion.pipeline import IngestionPipeline

configure_logging()

app = FastAPI(
    title="Knowledge Ingest API",
    version="0.1.0",
    description="Chunk, embed, and enrich text into a vector store.",
)


# ── Dependencies ──────────────────────────────────────────────────────
def get_state_path() -> str | None:
    """Location of the persisted state; ``None`` means ``settings.state_file``."""
    return None


def get_pipeline(state_path: str | None = Depends(get_state_path)) -> IngestionPipeline:
    return IngestionPipeline.from_state(load_state(state_path))


# ── Request / Response schemas ────────────────────────────────────────
class DocumentRequest(BaseModel):
    """A document pasted by the user."""

    title: str
    content: str


class IngestResponse(BaseModel):
    success_count: int
    total_chunks: int
    failed_indices: list[int] = []
    record_ids: list[str] = []
    partial: bool = False


class UpdateResponse(BaseModel):
    id: str
    qa_pairs: int


class RecordResponse(BaseModel):
    id: str
    content: str
    metadata: dict[str, Any] = {}


class SearchRequest(BaseModel):
    query: str
    k: int = Field(default=5, gt=0, le=50)
    filters: dict[str, Any] | None = None


class SearchHitResponse(RecordResponse):
    similarity: float


class StateResponse(BaseModel):
    configured: bool
    api: dict[str, Any]


# ── Error mapping ─────────────────────────────────────────────────────
_STATUS_BY_ERROR: list[tuple[type[IngestError], int]] = [
    (RecordNotFoundError, 404),
    (ValidationError, 422),
    (EmptyInputError, 422),
    (IngestionFailedError, 502),
    (EmbeddingError, 502),
    (StorageError, 503),
]


@app.exception_handler(IngestError)
async def ingest_error_handler(request: Request, exc: IngestError) -> JSONResponse:
    code = next(
        (code for error_type, code in _STATUS_BY_ERROR if isinstance(exc, error_type)),
        500,
    )
    return JSONResponse(status_code=code, content={"error": type(exc).__name__, "detail": exc.message})


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.get("/config", response_model=StateResponse)
async def get_config(state_path: str | None = Depends(get_state_path)) -> StateResponse:
    """Return the saved configuration with the API key masked."""
    state = load_state(state_path)
    return StateResponse(configured=state.configured, api=state.api.masked())


@app.put("/config", response_model=StateResponse)
async def put_config(api: ApiConfig, state_path: str | None = Depends(get_state_path)) -> StateResponse:
    """Save credentials and mark the application as configured."""
    missing = api.missing_keys()
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    state = save_api_config(api, state_path)
    return StateResponse(configured=state.configured, api=state.api.masked())


@app.delete("/config", status_code=status.HTTP_204_NO_CONTENT)
async def delete_config(state_path: str | None = Depends(get_state_path)) -> None:
    """Forget the saved configuration."""
    clear_state(state_path)


@app.post("/documents", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    request: DocumentRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> IngestResponse:
    """Chunk, enrich, and store a new document."""
    result = await pipeline.ingest(request.title, request.content)
    return IngestResponse(**result.model_dump(), partial=result.partial)


@app.get("/documents", response_model=list[RecordResponse])
async def list_documents(pipeline: IngestionPipeline = Depends(get_pipeline)) -> list[RecordResponse]:
    """List stored records, newest first."""
    records = await pipeline.list_records()
    return [RecordResponse(id=r.id, content=r.content, metadata=r.metadata) for r in records]


@app.put("/documents/{record_id}", response_model=UpdateResponse)
async def update_document(
    record_id: str,
    request: DocumentRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> UpdateResponse:
    """Re-embed a record from the full new text."""
    enriched = await pipeline.update(record_id, request.title, request.content)
    return UpdateResponse(id=record_id, qa_pairs=len(enriched.qa_pairs))


@app.delete("/documents/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(record_id: str, pipeline: IngestionPipeline = Depends(get_pipeline)) -> None:
    await pipeline.delete(record_id)


@app.post("/search", response_model=list[SearchHitResponse])
async def search(
    request: SearchRequest,
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> list[SearchHitResponse]:
    """Return the records most similar to the query text."""
    hits = await pipeline.search(request.query, k=request.k, filters=request.filters)
    return [
        SearchHitResponse(
            id=h.record.id,
            content=h.record.content,
            metadata=h.record.metadata,
            similarity=h.similarity,
        )
        for h in hits
    ]
