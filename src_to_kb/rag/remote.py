from __future__ import annotations

"""Remote search delegate that forwards queries to an external service."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

import httpx

from src_to_kb.rag.errors import ConfigurationError, RemoteAuthError, TransportError
from src_to_kb.rag.types import SearchResult

logger = logging.getLogger(__name__)

USER_AGENT = "src-to-kb/1.3.1"
_AUTH_STATUSES = {401, 403}


def derive_search_url(base_url: str) -> str:
    """Derive the search endpoint from the processing base URL."""
    if base_url.endswith("/search"):
        return base_url
    for suffix in ("/process", "/items"):
        if base_url.endswith(suffix):
            return base_url[: -len(suffix)] + "/search"
    return base_url + "search" if base_url.endswith("/") else base_url + "/search"


@dataclass(frozen=True)
class RemoteSearchConfig:
    search_url: str
    api_key: str | None = None
    timeout: float = 30.0
    retry_attempts: int = 3
    retry_delay: float = 1.0

    @classmethod
    def from_base_url(
        cls,
        base_url: str,
        search_url: str | None = None,
        api_key: str | None = None,
        require_api_key: bool = False,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
    ) -> "RemoteSearchConfig":
        """Validate settings and build a config for the delegate."""
        resolved = search_url or derive_search_url(base_url)
        parsed = urlparse(resolved)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ConfigurationError(f"Invalid remote search URL: {resolved!r}")
        if require_api_key and not api_key:
            raise ConfigurationError("EXTERNAL_KB_API_KEY is required for the remote search delegate")
        return cls(
            search_url=resolved,
            api_key=api_key or None,
            timeout=timeout,
            retry_attempts=max(1, retry_attempts),
            retry_delay=max(0.0, retry_delay),
        )

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers


@dataclass
class RemoteSearchClient:
    """Sends queries to the remote search service with retries."""
    config: RemoteSearchConfig
    client: httpx.AsyncClient | None = None

    async def search(self, query: str) -> list[SearchResult]:
        """Run a remote search, retrying transport failures.

        Auth failures are raised immediately; other failures are retried with a
        fixed delay and raised as TransportError once attempts are exhausted.
        """
        owns_client = self.client is None
        client = self.client or httpx.AsyncClient(timeout=self.config.timeout)
        last_error: TransportError | None = None
        try:
            for attempt in range(1, self.config.retry_attempts + 1):
                try:
                    payload = await self._attempt(client, query, attempt)
                    return parse_remote_results(payload)
                except RemoteAuthError:
                    raise
                except TransportError as exc:
                    last_error = exc
                    logger.warning(
                        "remote_search_retry",
                        extra={
                            "attempt": attempt,
                            "attempts": self.config.retry_attempts,
                            "status_code": exc.status_code,
                            "error": str(exc),
                        },
                    )
                if attempt < self.config.retry_attempts:
                    await asyncio.sleep(self.config.retry_delay)
        finally:
            if owns_client:
                await client.aclose()
        raise TransportError(
            f"Remote search failed after {self.config.retry_attempts} attempts: {last_error}",
            stage="search",
            attempts=self.config.retry_attempts,
            status_code=last_error.status_code if last_error else None,
        )

    async def _attempt(self, client: httpx.AsyncClient, query: str, attempt: int) -> Any:
        try:
            response = await asyncio.wait_for(
                client.post(
                    self.config.search_url,
                    json={"query": query},
                    headers=self.config.headers(),
                ),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TransportError(
                f"Request timeout after {self.config.timeout}s",
                attempts=attempt,
            ) from exc
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"Request timeout after {self.config.timeout}s",
                attempts=attempt,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc), attempts=attempt) from exc

        if response.status_code in _AUTH_STATUSES:
            raise RemoteAuthError(
                f"Remote search authentication failed: HTTP {response.status_code}",
                attempts=attempt,
                status_code=response.status_code,
            )
        if response.status_code < 200 or response.status_code >= 300:
            raise TransportError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                attempts=attempt,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                "Remote search returned invalid JSON",
                attempts=attempt,
                status_code=response.status_code,
            ) from exc


def parse_remote_results(payload: Any) -> list[SearchResult]:
    """Map a remote search payload onto SearchResult records."""
    items: Any = payload
    if isinstance(payload, dict):
        items = next(
            (payload[key] for key in ("results", "items", "data") if isinstance(payload.get(key), list)),
            [],
        )
    if not isinstance(items, list):
        return []
    results: list[SearchResult] = []
    for position, item in enumerate(items):
        if isinstance(item, dict):
            results.append(_item_to_result(item, position))
    return results


def _first(item: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None and value != "":
            return value
    return default


def _item_to_result(item: dict[str, Any], position: int) -> SearchResult:
    content = str(_first(item, "content", "fullContent", "text", "chunk", default=""))
    start_line, end_line = _line_bounds(item)
    snippets = _first(item, "snippets", "contextSnippets", "matches", default=[])
    try:
        score = max(0, int(float(_first(item, "score", default=0))))
    except (TypeError, ValueError):
        score = 0
    document_id = str(_first(item, "documentId", "document_id", "id", default=f"remote-{position}"))
    return SearchResult(
        document_id=document_id,
        document_path=str(_first(item, "documentPath", "path", "file", "title", default=document_id)),
        document_language=_first(item, "documentLanguage", "language"),
        chunk_id=str(_first(item, "chunkId", "chunk_id", default=f"{document_id}_chunk_{position}")),
        score=score,
        start_line=start_line,
        end_line=end_line,
        snippets=[str(snippet) for snippet in snippets] if isinstance(snippets, list) else [],
        full_content=content,
        preview=str(_first(item, "preview", default=content[:200])),
    )


def _line_bounds(item: dict[str, Any]) -> tuple[int, int]:
    lines = item.get("lines")
    if isinstance(lines, str) and "-" in lines:
        start, _, end = lines.partition("-")
        try:
            return int(start), int(end)
        except ValueError:
            pass
    try:
        start_line = int(_first(item, "startLine", "start_line", default=0))
        end_line = int(_first(item, "endLine", "end_line", default=start_line))
    except (TypeError, ValueError):
        return 0, 0
    return start_line, end_line
