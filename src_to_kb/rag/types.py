from __future__ import annotations

"""Core data types for documents, chunks and search results."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SourceFile:
    """Raw file handed over by a file source before chunking."""
    relative_path: str
    content: str
    size_bytes: int
    language: str = "Unknown"
    doc_type: str = "other"


@dataclass(frozen=True)
class Document:
    """Indexed file metadata."""
    doc_id: str
    relative_path: str
    size_bytes: int
    checksum: str
    language: str
    doc_type: str
    line_count: int


@dataclass(frozen=True)
class Chunk:
    """Line-aligned slice of a document."""
    chunk_id: str
    index: int
    content: str
    start_line: int
    end_line: int
    size: int


@dataclass(frozen=True)
class SearchResult:
    """Scored chunk returned for a query."""
    document_id: str
    document_path: str
    document_language: str | None
    chunk_id: str
    score: int
    start_line: int
    end_line: int
    snippets: list[str] = field(default_factory=list)
    full_content: str = ""
    preview: str = ""

    @property
    def line_range(self) -> str:
        return f"{self.start_line}-{self.end_line}"


@dataclass(frozen=True)
class Answer:
    """Synthesized answer with its supporting evidence."""
    answer: str
    confidence: float
    top_files: list[str] = field(default_factory=list)
    evidence: list[dict[str, Any]] = field(default_factory=list)
    total_matches: int = 0
    languages: list[str] = field(default_factory=list)
