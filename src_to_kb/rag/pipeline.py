from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable

from src_to_kb.index.inmemory import CorpusIndex
from src_to_kb.loaders.chunking import chunk_source
from src_to_kb.rag.answerer import synthesize
from src_to_kb.rag.errors import ConfigurationError, RemoteAuthError, TransportError
from src_to_kb.rag.modes import Mode, filter_results, get_mode
from src_to_kb.rag.remote import RemoteSearchClient
from src_to_kb.rag.search import DEFAULT_LIMIT, search
from src_to_kb.rag.types import Answer, Chunk, Document, SearchResult, SourceFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestProgress:
    path: str
    doc_id: str
    chunks: int
    processed: int
    total: int


@dataclass
class IngestStats:
    files_processed: int = 0
    total_size: int = 0
    total_chunks: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


@dataclass
class KBResponse:
    answer: Answer
    results: list[SearchResult]
    mode: Mode
    route: str = "local"


ProgressCallback = Callable[[IngestProgress], None]


@dataclass
class KnowledgeBasePipeline:
    index: CorpusIndex = field(default_factory=CorpusIndex)
    chunk_size: int = 1000
    chunk_overlap: int = 200
    include_comments: bool = True
    default_limit: int = DEFAULT_LIMIT
    default_mode: str = "developer"
    remote: RemoteSearchClient | None = None
    fallback_to_local: bool = False

    def __post_init__(self) -> None:
        # Overlap at or above the budget carries whole buffers forward forever.
        if self.chunk_overlap >= self.chunk_size:
            raise ConfigurationError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )

    def ingest(
        self,
        sources: Iterable[SourceFile],
        progress: ProgressCallback | None = None,
        workers: int = 1,
    ) -> IngestStats:
        """Chunk and index source files, reporting progress per file.

        A file that fails to chunk is recorded in ``errors`` and the remaining
        files are still processed.
        """
        items = list(sources)
        stats = IngestStats()
        if not items:
            return stats
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                outcomes = list(executor.map(self._chunk_one, items))
        else:
            outcomes = [self._chunk_one(source) for source in items]

        for source, outcome in zip(items, outcomes):
            if isinstance(outcome, Exception):
                stats.errors.append({"path": source.relative_path, "error": str(outcome)})
                logger.warning(
                    "ingest_file_failed",
                    extra={"path": source.relative_path, "error": type(outcome).__name__},
                )
                continue
            document, chunks = outcome
            self.index.put(document, chunks)
            stats.files_processed += 1
            stats.total_size += document.size_bytes
            stats.total_chunks += len(chunks)
            if progress is not None:
                progress(
                    IngestProgress(
                        path=document.relative_path,
                        doc_id=document.doc_id,
                        chunks=len(chunks),
                        processed=stats.files_processed,
                        total=len(items),
                    )
                )
        logger.info(
            "ingest_complete",
            extra={
                "files": stats.files_processed,
                "chunks": stats.total_chunks,
                "errors": len(stats.errors),
            },
        )
        return stats

    def _chunk_one(self, source: SourceFile) -> tuple[Document, list[Chunk]] | Exception:
        try:
            return chunk_source(
                source,
                chunk_size=self.chunk_size,
                overlap=self.chunk_overlap,
                include_comments=self.include_comments,
            )
        except (ValueError, TypeError) as exc:
            return exc

    def retrieve(self, query: str, limit: int | None = None) -> list[SearchResult]:
        results = search(self.index, query, limit=limit or self.default_limit)
        logger.info(
            "retrieval_complete",
            extra={
                "results": len(results),
                "query_length": len(query),
            },
        )
        return results

    async def aretrieve(
        self,
        query: str,
        limit: int | None = None,
        use_remote: bool = True,
    ) -> tuple[list[SearchResult], str]:
        """Search through the remote delegate when configured, else locally.

        Returns the results together with the route that served them:
        ``local``, ``remote`` or ``local_fallback``.
        """
        if self.remote is None or not use_remote:
            return self.retrieve(query, limit), "local"
        try:
            results = await self.remote.search(query)
        except RemoteAuthError:
            raise
        except TransportError as exc:
            if not self.fallback_to_local:
                raise
            logger.warning(
                "remote_search_fallback",
                extra={"error": str(exc), "attempts": exc.attempts},
            )
            return self.retrieve(query, limit), "local_fallback"
        return results[: limit or self.default_limit], "remote"

    def answer(self, query: str, mode: str | None = None, limit: int | None = None) -> KBResponse:
        results = self.retrieve(query, limit)
        return self._respond(query, results, mode, "local")

    async def aanswer(
        self,
        query: str,
        mode: str | None = None,
        limit: int | None = None,
        use_remote: bool = True,
    ) -> KBResponse:
        results, route = await self.aretrieve(query, limit, use_remote=use_remote)
        return self._respond(query, results, mode, route)

    def _respond(
        self,
        query: str,
        results: list[SearchResult],
        mode_key: str | None,
        route: str,
    ) -> KBResponse:
        mode = get_mode(mode_key or self.default_mode)
        filtered = filter_results(results, mode)
        answer = synthesize(query, filtered, mode)
        return KBResponse(answer=answer, results=filtered, mode=mode, route=route)
