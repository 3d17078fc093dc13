from __future__ import annotations

"""Keyword query engine over the corpus index."""

import logging
import re
from pathlib import PurePosixPath

from src_to_kb.index.inmemory import CorpusIndex
from src_to_kb.rag.highlights import add_snippet, build_snippet
from src_to_kb.rag.types import Chunk, Document, SearchResult

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
PREVIEW_CHARS = 200


def tokenize_query(query: str) -> list[str]:
    """Lowercase the query and split it on whitespace runs."""
    return query.lower().split()


def score_chunk(content: str, keywords: list[str]) -> tuple[int, list[str]]:
    """Return the occurrence score and de-duplicated snippets for a chunk."""
    lowered = content.lower()
    score = 0
    snippets: list[str] = []
    for keyword in keywords:
        if keyword not in lowered:
            continue
        score += len(re.findall(re.escape(keyword), lowered))
        add_snippet(snippets, build_snippet(content, keyword))
    return score, snippets


def search(index: CorpusIndex, query: str, limit: int = DEFAULT_LIMIT) -> list[SearchResult]:
    """Rank every chunk in the index against the query."""
    keywords = tokenize_query(query)
    if not keywords or limit <= 0:
        return []
    results: list[SearchResult] = []
    for document, chunks in index.entries():
        for chunk in chunks:
            score, snippets = score_chunk(chunk.content, keywords)
            if score <= 0:
                continue
            results.append(_to_result(document, chunk, score, snippets))
    results.sort(key=lambda result: result.score, reverse=True)
    logger.info(
        "search_complete",
        extra={
            "keywords": len(keywords),
            "matches": len(results),
            "limit": limit,
        },
    )
    return results[:limit]


def _to_result(document: Document, chunk: Chunk, score: int, snippets: list[str]) -> SearchResult:
    return SearchResult(
        document_id=document.doc_id,
        document_path=document.relative_path,
        document_language=document.language,
        chunk_id=chunk.chunk_id,
        score=score,
        start_line=chunk.start_line,
        end_line=chunk.end_line,
        snippets=snippets,
        full_content=chunk.content,
        preview=chunk.content[:PREVIEW_CHARS],
    )


def find_similar_files(index: CorpusIndex, relative_path: str) -> list[dict[str, object]]:
    """Rank other documents by language, type and shared path segments.

    An unknown path yields an empty list.
    """
    target = index.find_by_path(relative_path)
    if target is None:
        return []
    target_parts = PurePosixPath(target.relative_path).parts
    similar: list[dict[str, object]] = []
    for document in index.documents():
        if document.doc_id == target.doc_id:
            continue
        similarity = 0.0
        if document.language == target.language:
            similarity += 2
        if document.doc_type == target.doc_type:
            similarity += 1
        doc_parts = set(PurePosixPath(document.relative_path).parts)
        similarity += sum(0.5 for part in target_parts if part in doc_parts)
        if similarity > 0:
            similar.append(
                {
                    "path": document.relative_path,
                    "language": document.language,
                    "similarity": similarity,
                }
            )
    similar.sort(key=lambda item: item["similarity"], reverse=True)
    return similar
