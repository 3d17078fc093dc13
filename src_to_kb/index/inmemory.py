from __future__ import annotations

"""In-memory corpus index mapping documents to their ordered chunks."""

import threading
from dataclasses import dataclass, field
from typing import Iterator

from src_to_kb.rag.types import Chunk, Document


@dataclass
class CorpusIndex:
    """Insertion-ordered document/chunk store.

    Writers are serialized by a lock and an entry is swapped in as a single
    ``(document, chunks)`` tuple, so readers never see a half-written chunk
    list. Readers iterate over a snapshot taken under the same lock.
    """
    _entries: dict[str, tuple[Document, tuple[Chunk, ...]]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def put(self, document: Document, chunks: list[Chunk]) -> None:
        """Insert a document, replacing any previous entry with the same id."""
        entry = (document, tuple(sorted(chunks, key=lambda chunk: chunk.index)))
        with self._lock:
            self._entries[document.doc_id] = entry

    def get(self, doc_id: str) -> Document | None:
        entry = self._entries.get(doc_id)
        return entry[0] if entry else None

    def chunks(self, doc_id: str) -> list[Chunk]:
        entry = self._entries.get(doc_id)
        return list(entry[1]) if entry else []

    def all_chunks(self) -> Iterator[tuple[str, list[Chunk]]]:
        """Yield ``(doc_id, chunks)`` pairs in document insertion order."""
        for doc_id, (_, chunks) in self._snapshot():
            yield doc_id, list(chunks)

    def entries(self) -> Iterator[tuple[Document, list[Chunk]]]:
        """Yield each document with its chunks from one consistent snapshot."""
        for _, (document, chunks) in self._snapshot():
            yield document, list(chunks)

    def documents(self) -> list[Document]:
        return [document for _, (document, _) in self._snapshot()]

    def find_by_path(self, relative_path: str) -> Document | None:
        for document in self.documents():
            if document.relative_path == relative_path:
                return document
        return None

    def by_type(self, value: str) -> list[Document]:
        """Return documents whose type or language matches ``value``."""
        needle = value.strip().lower()
        return [
            document
            for document in self.documents()
            if document.doc_type.lower() == needle or document.language.lower() == needle
        ]

    def stats(self) -> dict[str, object]:
        """Return corpus totals and per-language/per-type counts."""
        languages: dict[str, int] = {}
        types: dict[str, int] = {}
        total_chunks = 0
        total_size = 0
        snapshot = self._snapshot()
        for _, (document, chunks) in snapshot:
            total_chunks += len(chunks)
            total_size += document.size_bytes
            languages[document.language] = languages.get(document.language, 0) + 1
            types[document.doc_type] = types.get(document.doc_type, 0) + 1
        return {
            "backend": "memory",
            "document_count": len(snapshot),
            "chunk_count": total_chunks,
            "total_size": total_size,
            "languages": languages,
            "types": types,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def _snapshot(self) -> list[tuple[str, tuple[Document, tuple[Chunk, ...]]]]:
        with self._lock:
            return list(self._entries.items())
