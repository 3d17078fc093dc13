from __future__ import annotations

import httpx
import pytest

from src_to_kb.app.dependencies import reset_pipeline_cache
from src_to_kb.app.main import app

pytestmark = pytest.mark.anyio


def get_client() -> httpx.AsyncClient:
    reset_pipeline_cache()
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


SAMPLE_DOCUMENTS = {
    "documents": [
        {
            "path": "src/auth/reset.js",
            "content": "function resetPassword(user) {\n  return sendResetEmail(user);\n}",
        },
        {
            "path": "src/auth/reset.test.js",
            "content": "test('resetPassword sends mail', () => {});",
        },
        {
            "path": "src/models/user.py",
            "content": "class User:\n    password_hash: str",
        },
    ]
}


async def test_health_endpoint() -> None:
    async with get_client() as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]


async def test_request_id_is_echoed() -> None:
    async with get_client() as client:
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


async def test_ingest_and_search() -> None:
    async with get_client() as client:
        ingest_response = await client.post("/ingest", json=SAMPLE_DOCUMENTS)
        assert ingest_response.status_code == 200
        assert ingest_response.json()["files_processed"] == 3

        search_response = await client.post("/search", json={"query": "password reset"})
    assert search_response.status_code == 200
    payload = search_response.json()
    assert payload["route"] == "local"
    assert payload["mode"] == "developer"
    assert payload["request_id"]
    assert "src/auth/reset.js" in payload["answer"]
    assert "src/auth/reset.js" in payload["top_files"]
    assert payload["evidence"][0]["file"]
    assert payload["results"][0]["line_range"]


async def test_search_enduser_mode_drops_tests() -> None:
    async with get_client() as client:
        await client.post("/ingest", json=SAMPLE_DOCUMENTS)
        response = await client.post("/search", json={"query": "resetpassword", "mode": "enduser"})
    assert response.status_code == 200
    paths = [item["document_path"] for item in response.json()["results"]]
    assert paths == ["src/auth/reset.js"]


async def test_search_without_matches() -> None:
    async with get_client() as client:
        response = await client.post("/search", json={"query": "xyzzy-nonexistent-token"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["answer"].startswith("I couldn't find any relevant information")
    assert payload["confidence"] == 0.0
    assert payload["results"] == []


async def test_search_rejects_empty_query() -> None:
    async with get_client() as client:
        response = await client.post("/search", json={"query": ""})
    assert response.status_code == 422


async def test_ingest_requires_documents() -> None:
    async with get_client() as client:
        response = await client.post("/ingest", json={"documents": []})
    assert response.status_code == 400


async def test_ingest_folder(sample_repo) -> None:
    async with get_client() as client:
        response = await client.post("/ingest/folder", json={"root": str(sample_repo)})
        assert response.status_code == 200
        assert response.json()["files_processed"] == 4

        documents = await client.get("/documents", params={"language": "python"})
    assert documents.status_code == 200
    assert [item["path"] for item in documents.json()] == ["src/auth/reset_password.py"]


async def test_ingest_folder_missing_root(tmp_path) -> None:
    async with get_client() as client:
        response = await client.post("/ingest/folder", json={"root": str(tmp_path / "nope")})
    assert response.status_code == 400


async def test_modes_endpoints() -> None:
    async with get_client() as client:
        listing = await client.get("/modes")
        detail = await client.get("/modes/copilot")
        missing = await client.get("/modes/wizard")
    assert [item["key"] for item in listing.json()] == ["enduser", "developer", "copilot"]
    assert detail.status_code == 200
    assert detail.json()["prefer_code"] is True
    assert missing.status_code == 404


async def test_stats_endpoint() -> None:
    async with get_client() as client:
        response = await client.get("/stats")
        assert response.status_code == 200
        assert response.json()["document_count"] == 0

        await client.post("/ingest", json=SAMPLE_DOCUMENTS)
        response = await client.get("/stats")
    data = response.json()
    assert data["document_count"] == 3
    assert data["chunk_count"] == 3
    assert data["languages"] == {"JavaScript": 2, "Python": 1}


async def test_documents_filter_by_type() -> None:
    async with get_client() as client:
        await client.post("/ingest", json=SAMPLE_DOCUMENTS)
        response = await client.get("/documents", params={"type": "code"})
    assert len(response.json()) == 3
    assert all(item["chunks"] == 1 for item in response.json())


async def test_similar_endpoint() -> None:
    async with get_client() as client:
        await client.post("/ingest", json=SAMPLE_DOCUMENTS)
        response = await client.get("/similar", params={"path": "src/auth/reset.js"})
        missing = await client.get("/similar", params={"path": "nope.js"})
    assert response.json()[0]["path"] == "src/auth/reset.test.js"
    assert missing.json() == []


async def test_metrics_endpoint() -> None:
    async with get_client() as client:
        await client.get("/health")
        response = await client.get("/metrics")
    assert response.status_code == 200
    assert "kb_http_requests_total" in response.text
