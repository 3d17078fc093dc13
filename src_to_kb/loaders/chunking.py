from __future__ import annotations

"""Content normalization and line-aligned chunking."""

import hashlib
import math
import re

from src_to_kb.rag.types import Chunk, Document, SourceFile

_LINE_COMMENT_RE = re.compile(r"//.*$", re.MULTILINE)
_BLOCK_COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/")
_HASH_COMMENT_RE = re.compile(r"^\s*#.*$", re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n\s*\n\s*\n")


def normalize_content(content: str, include_comments: bool = True) -> str:
    """Strip optional comments, collapse blank runs and trim whitespace."""
    cleaned = content.replace("\r\n", "\n")
    if not include_comments:
        cleaned = _LINE_COMMENT_RE.sub("", cleaned)
        cleaned = _BLOCK_COMMENT_RE.sub("", cleaned)
        cleaned = _HASH_COMMENT_RE.sub("", cleaned)
    cleaned = _BLANK_RUN_RE.sub("\n\n", cleaned)
    cleaned = "\n".join(line.rstrip() for line in cleaned.split("\n"))
    return cleaned.strip()


def document_id_for(relative_path: str) -> str:
    """Return a stable document id for a relative path."""
    digest = hashlib.sha256(relative_path.encode("utf-8")).hexdigest()
    return f"doc_{digest[:16]}"


def checksum(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count lines the way the chunker sees them; empty content has none."""
    if not content:
        return 0
    return content.count("\n") + 1


def chunk_content(
    content: str,
    chunk_size: int,
    overlap: int,
    doc_id: str = "doc",
) -> list[Chunk]:
    """Split content into overlapping line-aligned chunks.

    A chunk is closed before the line that would push it past ``chunk_size``.
    The next chunk starts with enough trailing lines of the closed one to cover
    roughly ``overlap`` characters. Lines are never split, so a single line
    longer than the budget ends up in a chunk of its own.
    """
    if not content:
        return []
    lines = content.split("\n")
    chunks: list[Chunk] = []
    buffer: list[str] = []
    current_size = 0
    chunk_index = 0
    start_line = 0

    for i, line in enumerate(lines):
        line_size = len(line) + 1
        if current_size + line_size > chunk_size and buffer:
            chunks.append(
                Chunk(
                    chunk_id=f"{doc_id}_chunk_{chunk_index}",
                    index=chunk_index,
                    content="\n".join(buffer),
                    start_line=start_line,
                    end_line=i - 1,
                    size=current_size,
                )
            )
            chunk_index += 1
            buffer = buffer[_overlap_start(buffer, current_size, overlap):]
            current_size = len("\n".join(buffer))
            start_line = i - len(buffer)
        buffer.append(line)
        current_size += line_size

    if buffer:
        chunks.append(
            Chunk(
                chunk_id=f"{doc_id}_chunk_{chunk_index}",
                index=chunk_index,
                content="\n".join(buffer),
                start_line=start_line,
                end_line=len(lines) - 1,
                size=current_size,
            )
        )
    return chunks


def _overlap_start(buffer: list[str], current_size: int, overlap: int) -> int:
    """Return the buffer offset from which lines are carried into the next chunk."""
    if overlap <= 0 or len(buffer) <= 1 or current_size <= 0:
        return len(buffer)
    avg_line_size = current_size / len(buffer)
    overlap_lines = math.ceil(overlap / avg_line_size)
    return max(0, len(buffer) - overlap_lines)


def chunk_source(
    source: SourceFile,
    chunk_size: int,
    overlap: int,
    include_comments: bool = True,
) -> tuple[Document, list[Chunk]]:
    """Normalize a source file and chunk it into a Document and its chunks."""
    normalized = normalize_content(source.content, include_comments=include_comments)
    doc_id = document_id_for(source.relative_path)
    document = Document(
        doc_id=doc_id,
        relative_path=source.relative_path,
        size_bytes=source.size_bytes,
        checksum=checksum(source.content),
        language=source.language,
        doc_type=source.doc_type,
        line_count=count_lines(normalized),
    )
    return document, chunk_content(normalized, chunk_size, overlap, doc_id=doc_id)
