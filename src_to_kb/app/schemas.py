from __future__ import annotations

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    mode: str | None = None
    limit: int | None = Field(default=None, ge=1, le=100)
    remote: bool = True


class SearchResultItem(BaseModel):
    document_id: str
    document_path: str
    document_language: str | None = None
    chunk_id: str
    score: int
    line_range: str
    snippets: list[str] = Field(default_factory=list)
    preview: str = ""


class EvidenceItem(BaseModel):
    file: str
    lines: str
    context: str


class SearchResponse(BaseModel):
    answer: str
    confidence: float
    top_files: list[str]
    evidence: list[EvidenceItem]
    total_matches: int
    languages: list[str]
    results: list[SearchResultItem]
    mode: str
    route: str
    request_id: str


class IngestDocument(BaseModel):
    path: str = Field(min_length=1)
    content: str
    language: str | None = None
    doc_type: str | None = None


class IngestRequest(BaseModel):
    documents: list[IngestDocument]


class FolderIngestRequest(BaseModel):
    root: str = Field(min_length=1)
    max_depth: int = Field(default=10, ge=0, le=100)
    exclude: list[str] | None = None
    extensions: list[str] | None = None


class IngestResponse(BaseModel):
    files_processed: int
    total_size: int
    total_chunks: int
    errors: list[dict[str, str]] = Field(default_factory=list)


class ModeSummary(BaseModel):
    key: str
    name: str
    description: str


class ModeDetail(ModeSummary):
    exclude_patterns: list[str]
    priority_types: list[str]
    depth: str
    include_code_snippets: bool
    include_implementation_details: bool
    focus_on: str
    tone: str
    avoid_terms: list[str]
    include_terms: list[str]
    prefer_code: bool


class StatsResponse(BaseModel):
    backend: str
    document_count: int
    chunk_count: int
    total_size: int
    languages: dict[str, int]
    types: dict[str, int]


class DocumentItem(BaseModel):
    doc_id: str
    path: str
    language: str
    doc_type: str
    size_bytes: int
    line_count: int
    chunks: int


class SimilarItem(BaseModel):
    path: str
    language: str
    similarity: float
