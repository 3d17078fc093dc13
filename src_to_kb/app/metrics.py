from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

from src_to_kb.app.settings import settings

REQUEST_COUNT = Counter(
    "kb_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "kb_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
SEARCH_COUNT = Counter(
    "kb_searches_total",
    "Searches served, by route",
    ["route"],
)
INDEXED_DOCUMENTS = Gauge(
    "kb_indexed_documents",
    "Documents currently held by the corpus index",
)


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled:
        return await call_next(request)
    path = request.url.path
    if path == "/metrics":
        return await call_next(request)
    start = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        REQUEST_COUNT.labels(request.method, path, str(status)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(time.monotonic() - start)


def record_search(route: str) -> None:
    if settings.metrics_enabled:
        SEARCH_COUNT.labels(route).inc()


def record_index_size(documents: int) -> None:
    if settings.metrics_enabled:
        INDEXED_DOCUMENTS.set(documents)


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
