"""Integration tests for FastAPI API endpoints using TestClient."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.config.settings import Settings
from src.main import create_app
from src.utils.errors import EmbeddingError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_PROJECT_BODY = {
    "name": "Docs",
    "embeddingModel": "nomic-embed-text",
    "chunkSize": 500,
    "embeddingType": "direct",
}


@pytest.fixture()
def client(settings: Settings, mock_llm, embedder) -> Iterator[TestClient]:
    app = create_app(settings, llm_provider=mock_llm, embedding_provider=embedder)
    with TestClient(app) as test_client:
        yield test_client


def _create_project(client: TestClient, **overrides) -> dict:
    body = {**_PROJECT_BODY, **overrides}
    response = client.post("/api/projects", json=body)
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class TestProjectEndpoints:
    def test_create_with_camel_case_body(self, client: TestClient) -> None:
        project = _create_project(client)

        assert project["name"] == "Docs"
        assert project["embedding_model"] == "nomic-embed-text"
        assert project["chunk_size"] == 500
        assert project["embedding_type"] == "direct"
        assert project["id"]

    def test_create_with_snake_case_body(self, client: TestClient) -> None:
        response = client.post(
            "/api/projects",
            json={
                "name": "Snake",
                "embedding_model": "all-minilm",
                "chunk_size": 200,
                "embedding_type": "summary",
            },
        )
        assert response.status_code == 201
        assert response.json()["embedding_type"] == "summary"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": ""},
            {"embeddingModel": None},
            {"chunkSize": 0},
            {"embeddingType": "semantic"},
            {"chunkSize": "abc"},
            {"chunkSize": 1.5},
            {"name": 5},
            {"embeddingType": ["direct"]},
        ],
    )
    def test_create_invalid_returns_400(self, client: TestClient, overrides: dict) -> None:
        response = client.post("/api/projects", json={**_PROJECT_BODY, **overrides})
        assert response.status_code == 400
        assert response.json()["detail"]

    def test_list_newest_first(self, client: TestClient) -> None:
        first = _create_project(client, name="first")
        second = _create_project(client, name="second")

        ids = [p["id"] for p in client.get("/api/projects").json()]
        assert ids == [second["id"], first["id"]]

    def test_get_and_delete(self, client: TestClient) -> None:
        project = _create_project(client)

        assert client.get(f"/api/projects/{project['id']}").status_code == 200
        response = client.delete(f"/api/projects/{project['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get(f"/api/projects/{project['id']}").status_code == 404

    def test_unknown_project_is_404(self, client: TestClient) -> None:
        assert client.get("/api/projects/missing").status_code == 404
        assert client.delete("/api/projects/missing").status_code == 404
        assert client.get("/api/projects/missing/files").status_code == 404
        assert client.get("/api/projects/missing/status").status_code == 404

    def test_project_status_of_empty_project(self, client: TestClient) -> None:
        project = _create_project(client)
        body = client.get(f"/api/projects/{project['id']}/status").json()
        assert body == {
            "project_id": project["id"],
            "files": [],
            "total_chunks": 0,
            "is_processing": False,
        }


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestFileEndpoints:
    def test_upload_returns_processing_file(self, client: TestClient) -> None:
        project = _create_project(client)

        response = client.post(
            f"/api/projects/{project['id']}/files",
            files={"file": ("notes.txt", b"The cat sat.", "text/plain")},
            data={"model": "mistral"},
        )

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["filename"] == "notes.txt"
        assert body["project_id"] == project["id"]
        assert body["status"] == "processing"

    def test_upload_without_file_is_400(self, client: TestClient) -> None:
        project = _create_project(client)
        response = client.post(f"/api/projects/{project['id']}/files", data={"model": "x"})
        assert response.status_code == 400
        assert response.json()["detail"] == "No file uploaded"

    def test_upload_too_large_is_413(self, client: TestClient) -> None:
        project = _create_project(client)
        oversized = b"a" * (1024 * 1024 + 1)

        response = client.post(
            f"/api/projects/{project['id']}/files",
            files={"file": ("big.txt", oversized, "text/plain")},
        )

        assert response.status_code == 413
        assert client.get(f"/api/projects/{project['id']}/files").json() == []

    def test_upload_to_unknown_project_is_404(self, client: TestClient) -> None:
        response = client.post(
            "/api/projects/missing/files",
            files={"file": ("notes.txt", b"text", "text/plain")},
        )
        assert response.status_code == 404

    def test_file_endpoints_unknown_file(self, client: TestClient) -> None:
        project = _create_project(client)
        base = f"/api/projects/{project['id']}/files/missing"

        assert client.delete(base).status_code == 404
        assert client.post(f"{base}/cancel").status_code == 404
        assert client.get(f"{base}/status").status_code == 404


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class TestQueryEndpoint:
    def test_blank_query_is_400(self, client: TestClient) -> None:
        project = _create_project(client)
        response = client.post(f"/api/projects/{project['id']}/query", json={"query": "  "})
        assert response.status_code == 400

    def test_missing_query_is_400(self, client: TestClient) -> None:
        project = _create_project(client)
        response = client.post(f"/api/projects/{project['id']}/query", json={})
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [{"query": 5}, {"query": "cat?", "topK": "abc"}, {"query": "cat?", "topK": 0}],
    )
    def test_wrongly_typed_query_is_400(self, client: TestClient, body: dict) -> None:
        project = _create_project(client)
        response = client.post(f"/api/projects/{project['id']}/query", json=body)
        assert response.status_code == 400
        assert response.json()["detail"]

    def test_unknown_project_is_404(self, client: TestClient) -> None:
        response = client.post("/api/projects/missing/query", json={"query": "cat?"})
        assert response.status_code == 404

    def test_empty_project_answers_without_sources(self, client: TestClient, mock_llm) -> None:
        mock_llm.complete.return_value = "I don't have enough information to answer that question."
        project = _create_project(client)

        response = client.post(
            f"/api/projects/{project['id']}/query", json={"query": "cat?", "topK": 3}
        )

        assert response.status_code == 200
        assert response.json() == {
            "answer": "I don't have enough information to answer that question.",
            "sources": [],
        }

    def test_model_failure_is_502(self, settings: Settings, mock_llm) -> None:
        failing = MagicMock()
        failing.embed = AsyncMock(side_effect=EmbeddingError(message="connection refused"))
        app = create_app(settings, llm_provider=mock_llm, embedding_provider=failing)

        with TestClient(app) as client:
            project = _create_project(client)
            response = client.post(
                f"/api/projects/{project['id']}/query", json={"query": "cat?"}
            )

        assert response.status_code == 502
        assert response.json() == {"error": "EmbeddingError", "detail": "connection refused"}


# ---------------------------------------------------------------------------
# Health + debug
# ---------------------------------------------------------------------------


class TestHealthAndDebug:
    def test_health_reachable(self, client: TestClient) -> None:
        response = client.get("/api/health")
        assert response.headers["X-Request-ID"]
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == "0.1.0"
        assert body["providers"] == {"llm": "mock-llm", "ollama_reachable": True}

    def test_health_degraded(self, client: TestClient, mock_llm) -> None:
        mock_llm.validate_credentials.return_value = False
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_debug_processing_empty(self, client: TestClient) -> None:
        assert client.get("/api/debug/processing").json() == {"files": {}}
