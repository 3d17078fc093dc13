from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    chunk_size: int = int(os.getenv("RAG_CHUNK_SIZE", "1000"))
    chunk_overlap: int = int(os.getenv("RAG_CHUNK_OVERLAP", "200"))
    include_comments: bool = _flag("RAG_INCLUDE_COMMENTS", "true")
    max_file_size: int = int(os.getenv("RAG_MAX_FILE_SIZE", "10485760"))
    search_limit: int = int(os.getenv("RAG_SEARCH_LIMIT", "10"))
    default_mode: str = os.getenv("RAG_DEFAULT_MODE", "developer")
    ingest_workers: int = int(os.getenv("RAG_INGEST_WORKERS", "1"))
    external_kb_url_raw: str = os.getenv("EXTERNAL_KB_URL", "")
    external_kb_search_url_raw: str = os.getenv("EXTERNAL_KB_SEARCH_URL", "")
    external_kb_api_key_raw: str = os.getenv("EXTERNAL_KB_API_KEY", "")
    external_kb_require_api_key: bool = _flag("EXTERNAL_KB_REQUIRE_API_KEY", "false")
    external_kb_timeout: float = float(os.getenv("EXTERNAL_KB_TIMEOUT", "30"))
    external_kb_retry_attempts: int = int(os.getenv("EXTERNAL_KB_RETRY_ATTEMPTS", "3"))
    external_kb_retry_delay: float = float(os.getenv("EXTERNAL_KB_RETRY_DELAY", "1.0"))
    remote_fallback_local: bool = _flag("RAG_REMOTE_FALLBACK_LOCAL", "false")
    api_keys_raw: str = os.getenv("RAG_API_KEYS", "")
    reader_api_keys_raw: str = os.getenv("RAG_READER_API_KEYS", "")
    allow_anonymous_raw: str = os.getenv("RAG_ALLOW_ANONYMOUS", "true")
    log_level: str = os.getenv("RAG_LOG_LEVEL", "INFO")
    metrics_enabled: bool = _flag("RAG_METRICS_ENABLED", "true")

    @property
    def api_keys(self) -> set[str]:
        raw = os.getenv("RAG_API_KEYS", self.api_keys_raw)
        return {value.strip() for value in raw.split(",") if value.strip()}

    @property
    def reader_api_keys(self) -> set[str]:
        raw = os.getenv("RAG_READER_API_KEYS", self.reader_api_keys_raw)
        return {value.strip() for value in raw.split(",") if value.strip()}

    @property
    def allow_anonymous(self) -> bool:
        raw = os.getenv("RAG_ALLOW_ANONYMOUS", self.allow_anonymous_raw)
        return raw.strip().lower() in {"1", "true", "yes"}

    @property
    def external_kb_url(self) -> str | None:
        return os.getenv("EXTERNAL_KB_URL", self.external_kb_url_raw).strip() or None

    @property
    def external_kb_search_url(self) -> str | None:
        return os.getenv("EXTERNAL_KB_SEARCH_URL", self.external_kb_search_url_raw).strip() or None

    @property
    def external_kb_api_key(self) -> str | None:
        return os.getenv("EXTERNAL_KB_API_KEY", self.external_kb_api_key_raw).strip() or None


settings = Settings()
