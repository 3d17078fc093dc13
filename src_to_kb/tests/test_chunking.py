from __future__ import annotations

"""Chunking behavior tests."""

from src_to_kb.loaders.chunking import (
    chunk_content,
    chunk_source,
    count_lines,
    document_id_for,
    normalize_content,
)
from src_to_kb.rag.types import SourceFile


def _rows(count: int) -> str:
    return "\n".join(f"row-{index:05d}" for index in range(count))


def _assert_covers(content: str, chunks) -> None:
    lines = content.split("\n")
    covered: set[int] = set()
    for chunk in chunks:
        assert chunk.content == "\n".join(lines[chunk.start_line : chunk.end_line + 1])
        covered.update(range(chunk.start_line, chunk.end_line + 1))
    assert covered == set(range(len(lines)))


def test_small_content_is_a_single_chunk() -> None:
    content = "\n".join(f"line {index}" for index in range(5))

    chunks = chunk_content(content, chunk_size=1000, overlap=200, doc_id="doc_a")

    assert len(chunks) == 1
    assert chunks[0].start_line == 0
    assert chunks[0].end_line == 4
    assert chunks[0].chunk_id == "doc_a_chunk_0"
    assert chunks[0].content == content


def test_chunk_closes_before_the_line_that_overflows() -> None:
    content = _rows(20)

    chunks = chunk_content(content, chunk_size=100, overlap=25)

    assert [(chunk.start_line, chunk.end_line) for chunk in chunks] == [(0, 9), (7, 16), (14, 19)]
    assert chunks[0].size == 100
    assert chunks[1].size == 99
    assert chunks[1].start_line <= 9
    assert [chunk.index for chunk in chunks] == [0, 1, 2]
    _assert_covers(content, chunks)


def test_overlap_zero_retains_nothing() -> None:
    content = _rows(20)

    chunks = chunk_content(content, chunk_size=100, overlap=0)

    assert [(chunk.start_line, chunk.end_line) for chunk in chunks] == [(0, 9), (10, 19)]
    _assert_covers(content, chunks)


def test_oversized_line_is_kept_whole() -> None:
    content = "\n".join(["a" * 5, "b" * 50, "c" * 5])

    chunks = chunk_content(content, chunk_size=20, overlap=0)

    assert [(chunk.start_line, chunk.end_line) for chunk in chunks] == [(0, 0), (1, 1), (2, 2)]
    assert chunks[1].content == "b" * 50
    assert chunks[0].size == 6
    assert chunks[1].size == 51


def test_single_line_buffer_carries_no_overlap() -> None:
    content = "\n".join(["x" * 30, "y" * 30, "z" * 30])

    chunks = chunk_content(content, chunk_size=35, overlap=200)

    assert [(chunk.start_line, chunk.end_line) for chunk in chunks] == [(0, 0), (1, 1), (2, 2)]


def test_last_chunk_ends_on_last_line() -> None:
    content = _rows(137)

    chunks = chunk_content(content, chunk_size=250, overlap=60)

    assert chunks[-1].end_line == count_lines(content) - 1
    _assert_covers(content, chunks)
    assert all(chunk.start_line <= chunk.end_line for chunk in chunks)


def test_chunking_is_deterministic() -> None:
    content = _rows(80)

    first = chunk_content(content, chunk_size=120, overlap=30, doc_id="doc_x")
    second = chunk_content(content, chunk_size=120, overlap=30, doc_id="doc_x")

    assert first == second


def test_empty_content_yields_no_chunks() -> None:
    assert chunk_content("", chunk_size=100, overlap=10) == []
    assert count_lines("") == 0


def test_normalize_collapses_blank_runs_and_trims() -> None:
    content = "line1  \r\n\r\n\r\n\r\nline2\n"

    assert normalize_content(content) == "line1\n\nline2"


def test_normalize_strips_comments_when_excluded() -> None:
    content = "const a = 1; // trailing\n/* block\ncomment */\n# heading comment\nconst b = 2;"

    normalized = normalize_content(content, include_comments=False)

    assert "trailing" not in normalized
    assert "block" not in normalized
    assert "heading comment" not in normalized
    assert "const a = 1;" in normalized
    assert "const b = 2;" in normalized


def test_normalize_keeps_comments_by_default() -> None:
    content = "x = 1  # keep me"

    assert normalize_content(content) == content


def test_chunk_source_builds_document_from_normalized_content() -> None:
    source = SourceFile(
        relative_path="src/app.py",
        content="import os\r\n\r\n\r\n\r\nprint(os.getcwd())\n",
        size_bytes=40,
        language="Python",
        doc_type="code",
    )

    document, chunks = chunk_source(source, chunk_size=1000, overlap=100)

    assert document.doc_id == document_id_for("src/app.py")
    assert document.line_count == 3
    assert document.language == "Python"
    assert chunks[-1].end_line == document.line_count - 1
    assert all(chunk.chunk_id.startswith(document.doc_id) for chunk in chunks)


def test_document_id_is_stable_per_path() -> None:
    assert document_id_for("a/b.js") == document_id_for("a/b.js")
    assert document_id_for("a/b.js") != document_id_for("a/c.js")
    assert document_id_for("a/b.js").startswith("doc_")
