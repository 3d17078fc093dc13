from __future__ import annotations

import httpx
import pytest

from src_to_kb.app.dependencies import get_pipeline, reset_pipeline_cache
from src_to_kb.app.main import app
from src_to_kb.rag.remote import RemoteSearchClient, RemoteSearchConfig

pytestmark = pytest.mark.anyio


def attach_remote(handler) -> None:
    reset_pipeline_cache()
    pipeline = get_pipeline()
    config = RemoteSearchConfig.from_base_url("http://kb.test/api", retry_attempts=1, retry_delay=0)
    transport = httpx.MockTransport(handler)
    pipeline.remote = RemoteSearchClient(config=config, client=httpx.AsyncClient(transport=transport))


def get_client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


async def test_remote_search_route() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"results": [{"id": "r1", "path": "remote/auth.js", "score": 9, "content": "login()"}]},
        )

    attach_remote(handler)
    async with get_client() as client:
        response = await client.post("/search", json={"query": "login"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["route"] == "remote"
    assert payload["results"][0]["document_path"] == "remote/auth.js"


async def test_remote_flag_false_stays_local() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("remote should not be called")

    attach_remote(handler)
    async with get_client() as client:
        response = await client.post("/search", json={"query": "login", "remote": False})
    assert response.status_code == 200
    assert response.json()["route"] == "local"


async def test_remote_failure_maps_to_bad_gateway() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    attach_remote(handler)
    async with get_client() as client:
        response = await client.post("/search", json={"query": "login"})
    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["error"] == "TransportError"
    assert detail["status_code"] == 500


async def test_remote_auth_failure_maps_to_bad_gateway() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="nope")

    attach_remote(handler)
    async with get_client() as client:
        response = await client.post("/search", json={"query": "login"})
    assert response.status_code == 502
    assert response.json()["detail"]["error"] == "RemoteAuthError"
    reset_pipeline_cache()
