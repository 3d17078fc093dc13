from __future__ import annotations

"""Helpers for attaching file references and evidence to answers."""

from typing import Any

from src_to_kb.rag.modes import SOURCE_FILES_PREFIX
from src_to_kb.rag.types import SearchResult


def unique_paths(results: list[SearchResult], limit: int | None = None) -> list[str]:
    """Return distinct document paths in result order."""
    seen: set[str] = set()
    paths: list[str] = []
    for result in results:
        if result.document_path in seen:
            continue
        seen.add(result.document_path)
        paths.append(result.document_path)
        if limit is not None and len(paths) >= limit:
            break
    return paths


def build_evidence(results: list[SearchResult], limit: int = 3) -> list[dict[str, Any]]:
    """Build file/lines/context evidence entries for the top results."""
    evidence: list[dict[str, Any]] = []
    for result in results[:limit]:
        context = result.snippets[0] if result.snippets else result.preview
        evidence.append(
            {
                "file": result.document_path,
                "lines": result.line_range,
                "context": context,
            }
        )
    return evidence


def append_source_files(answer: str, paths: list[str]) -> str:
    """Append the source files trailer line to the answer."""
    if not paths:
        return answer
    return f"{answer}\n\n{SOURCE_FILES_PREFIX} {', '.join(paths)}"
