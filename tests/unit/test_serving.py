"""Unit tests for the serving layer."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from knowledge_ingest.ingestion.pipeline import IngestionPipeline
from knowledge_ingest.serving.app import app, get_pipeline, get_state_path


@pytest.fixture()
def pipeline(embedder, qa_generator, sink, sleeps, config) -> IngestionPipeline:
    return IngestionPipeline(embedder, qa_generator, sink, config=config, sleep=sleeps)


@pytest.fixture()
def client(pipeline: IngestionPipeline, tmp_path: Path) -> Iterator[TestClient]:
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_state_path] = lambda: str(tmp_path / "state.json")
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_endpoint(client: TestClient) -> None:
    """GET /health should return 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_document(client: TestClient) -> None:
    response = client.post("/documents", json={"title": "Guide", "content": "x" * 2500})
    assert response.status_code == 201
    body = response.json()
    assert body["success_count"] == body["total_chunks"] == 8
    assert body["partial"] is False
    assert len(body["record_ids"]) == 8


def test_create_document_blank_title_is_422(client: TestClient) -> None:
    response = client.post("/documents", json={"title": " ", "content": "text"})
    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


def test_total_failure_is_502(client: TestClient, make_embedder, pipeline: IngestionPipeline) -> None:
    pipeline.embedder = make_embedder(always_fail=True)
    response = client.post("/documents", json={"title": "T", "content": "text"})
    assert response.status_code == 502
    assert response.json()["error"] == "IngestionFailedError"


def test_list_update_delete_round_trip(client: TestClient, sink) -> None:
    record_id = sink.create("old", [0.0] * 1536, {"title": "Old", "foo": "bar"})

    listed = client.get("/documents").json()
    assert [r["id"] for r in listed] == [record_id]
    assert "embedding" not in listed[0]

    updated = client.put(f"/documents/{record_id}", json={"title": "New", "content": "Fresh text."})
    assert updated.status_code == 200
    assert updated.json() == {"id": record_id, "qa_pairs": 2}
    assert sink.get(record_id).metadata["foo"] == "bar"

    assert client.delete(f"/documents/{record_id}").status_code == 204
    assert client.delete(f"/documents/{record_id}").status_code == 404


def test_update_missing_record_is_404(client: TestClient) -> None:
    response = client.put("/documents/missing", json={"title": "T", "content": "text"})
    assert response.status_code == 404


def test_search(client: TestClient) -> None:
    client.post("/documents", json={"title": "Cats", "content": "cats purr and nap"})
    client.post("/documents", json={"title": "Rockets", "content": "zzz qqq xxx"})

    response = client.post("/search", json={"query": "cats purr", "k": 1})
    assert response.status_code == 200
    [hit] = response.json()
    assert hit["metadata"]["title"] == "Cats"
    assert 0.0 < hit["similarity"] <= 1.0


def test_config_lifecycle(client: TestClient) -> None:
    assert client.get("/config").json()["configured"] is False

    payload = {"openai_api_key": "sk-abcd9876", "chroma_host": "h", "chroma_port": 8000, "chroma_collection": "c"}
    saved = client.put("/config", json=payload)
    assert saved.status_code == 200
    assert saved.json()["configured"] is True
    assert saved.json()["api"]["openai_api_key"] == "...9876"

    assert client.delete("/config").status_code == 204
    assert client.get("/config").json()["configured"] is False


def test_config_with_missing_fields_is_422(client: TestClient) -> None:
    response = client.put("/config", json={"openai_api_key": "sk-x"})
    assert response.status_code == 422


def test_unconfigured_app_rejects_pipeline_calls(tmp_path: Path) -> None:
    app.dependency_overrides[get_state_path] = lambda: str(tmp_path / "state.json")
    try:
        response = TestClient(app).get("/documents")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 422
    assert "not configured" in response.json()["detail"]
