from __future__ import annotations

from functools import lru_cache

from src_to_kb.app.settings import Settings, settings
from src_to_kb.index.inmemory import CorpusIndex
from src_to_kb.rag.pipeline import KnowledgeBasePipeline
from src_to_kb.rag.remote import RemoteSearchClient, RemoteSearchConfig


@lru_cache
def get_pipeline() -> KnowledgeBasePipeline:
    return KnowledgeBasePipeline(
        index=CorpusIndex(),
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        include_comments=settings.include_comments,
        default_limit=settings.search_limit,
        default_mode=settings.default_mode,
        remote=build_remote_client(settings),
        fallback_to_local=settings.remote_fallback_local,
    )


def reset_pipeline_cache() -> None:
    get_pipeline.cache_clear()


def build_remote_client(config: Settings) -> RemoteSearchClient | None:
    """Build the remote search delegate, or None when no URL is configured."""
    base_url = config.external_kb_url
    search_url = config.external_kb_search_url
    if not (base_url or search_url):
        return None
    remote_config = RemoteSearchConfig.from_base_url(
        base_url or "",
        search_url=search_url,
        api_key=config.external_kb_api_key,
        require_api_key=config.external_kb_require_api_key,
        timeout=config.external_kb_timeout,
        retry_attempts=config.external_kb_retry_attempts,
        retry_delay=config.external_kb_retry_delay,
    )
    return RemoteSearchClient(config=remote_config)
