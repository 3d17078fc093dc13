from __future__ import annotations

"""FastAPI application entrypoint for the source code knowledge base."""

import logging
import uuid
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Query, Request

from src_to_kb.app.dependencies import get_pipeline
from src_to_kb.app.metrics import metrics_middleware, metrics_response, record_index_size, record_search
from src_to_kb.app.schemas import (
    DocumentItem,
    EvidenceItem,
    FolderIngestRequest,
    IngestRequest,
    IngestResponse,
    ModeDetail,
    ModeSummary,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    SimilarItem,
    StatsResponse,
)
from src_to_kb.app.security import AuthContext, require_api_key, require_roles
from src_to_kb.app.settings import settings
from src_to_kb.loaders.folder import (
    DEFAULT_EXCLUDE_PATHS,
    DEFAULT_EXTENSIONS,
    FolderLoaderError,
    scan_directory,
)
from src_to_kb.loaders.text import load_text_bytes
from src_to_kb.rag.errors import ConfigurationError, RemoteAuthError, TransportError
from src_to_kb.rag.modes import MODES, list_modes
from src_to_kb.rag.pipeline import IngestStats, KnowledgeBasePipeline
from src_to_kb.rag.search import find_similar_files
from src_to_kb.rag.types import SearchResult

logger = logging.getLogger(__name__)

app = FastAPI(title="Source Code Knowledge Base", version="1.3.1")

READ_ROLES = {"reader", "admin"}


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _pipeline() -> KnowledgeBasePipeline:
    try:
        return get_pipeline()
    except ConfigurationError as exc:
        logger.error("pipeline_config_invalid", extra={"error": str(exc)})
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


def _ingest_response(stats: IngestStats, pipeline: KnowledgeBasePipeline) -> IngestResponse:
    record_index_size(len(pipeline.index))
    return IngestResponse(
        files_processed=stats.files_processed,
        total_size=stats.total_size,
        total_chunks=stats.total_chunks,
        errors=stats.errors,
    )


def _result_item(result: SearchResult) -> SearchResultItem:
    return SearchResultItem(
        document_id=result.document_id,
        document_path=result.document_path,
        document_language=result.document_language,
        chunk_id=result.chunk_id,
        score=result.score,
        line_range=result.line_range,
        snippets=result.snippets,
        preview=result.preview,
    )


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.post("/ingest", response_model=IngestResponse)
async def ingest(
    request: IngestRequest,
    auth: AuthContext = Depends(require_api_key),
) -> IngestResponse:
    """Ingest raw file contents keyed by their relative path."""
    require_roles(auth, {"admin"})
    if not request.documents:
        raise HTTPException(status_code=400, detail="No documents provided")
    pipeline = _pipeline()
    sources = [
        load_text_bytes(
            doc.content.encode("utf-8"),
            doc.path,
            language=doc.language,
            doc_type=doc.doc_type,
        )
        for doc in request.documents
    ]
    stats = pipeline.ingest(sources, workers=settings.ingest_workers)
    return _ingest_response(stats, pipeline)


@app.post("/ingest/folder", response_model=IngestResponse)
async def ingest_folder(
    request: FolderIngestRequest,
    auth: AuthContext = Depends(require_api_key),
) -> IngestResponse:
    """Scan a local directory and ingest every supported file in it."""
    require_roles(auth, {"admin"})
    pipeline = _pipeline()
    root = Path(request.root).expanduser()
    try:
        sources = list(
            scan_directory(
                root,
                max_depth=request.max_depth,
                exclude_paths=request.exclude if request.exclude is not None else DEFAULT_EXCLUDE_PATHS,
                extensions=request.extensions or DEFAULT_EXTENSIONS,
                max_file_size=settings.max_file_size,
            )
        )
    except FolderLoaderError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    stats = pipeline.ingest(sources, workers=settings.ingest_workers)
    logger.info(
        "folder_ingested",
        extra={"root": str(root), "files": stats.files_processed, "chunks": stats.total_chunks},
    )
    return _ingest_response(stats, pipeline)


@app.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    http_request: Request,
    auth: AuthContext = Depends(require_api_key),
) -> SearchResponse:
    """Search the knowledge base and synthesize an answer."""
    require_roles(auth, READ_ROLES)
    pipeline = _pipeline()
    request_id = _request_id(http_request)
    try:
        response = await pipeline.aanswer(
            request.query,
            mode=request.mode,
            limit=request.limit,
            use_remote=request.remote,
        )
    except RemoteAuthError as exc:
        logger.warning(
            "remote_search_rejected",
            extra={"request_id": request_id, "status_code": exc.status_code},
        )
        raise HTTPException(status_code=502, detail=exc.to_dict()) from exc
    except TransportError as exc:
        logger.warning(
            "remote_search_failed",
            extra={"request_id": request_id, "attempts": exc.attempts},
        )
        raise HTTPException(status_code=502, detail=exc.to_dict()) from exc
    record_search(response.route)
    answer = response.answer
    return SearchResponse(
        answer=answer.answer,
        confidence=answer.confidence,
        top_files=answer.top_files,
        evidence=[EvidenceItem(**entry) for entry in answer.evidence],
        total_matches=answer.total_matches,
        languages=answer.languages,
        results=[_result_item(result) for result in response.results],
        mode=response.mode.key,
        route=response.route,
        request_id=request_id,
    )


@app.get("/modes", response_model=list[ModeSummary])
async def modes(auth: AuthContext = Depends(require_api_key)) -> list[ModeSummary]:
    require_roles(auth, READ_ROLES)
    return [ModeSummary(**entry) for entry in list_modes()]


@app.get("/modes/{key}", response_model=ModeDetail)
async def mode_detail(key: str, auth: AuthContext = Depends(require_api_key)) -> ModeDetail:
    require_roles(auth, READ_ROLES)
    mode = MODES.get(key.strip().lower())
    if mode is None:
        raise HTTPException(status_code=404, detail=f"Unknown mode: {key}")
    return ModeDetail(**mode.describe())


@app.get("/stats", response_model=StatsResponse)
async def stats(auth: AuthContext = Depends(require_api_key)) -> StatsResponse:
    """Return corpus totals and language/type breakdowns."""
    require_roles(auth, READ_ROLES)
    return StatsResponse(**_pipeline().index.stats())


@app.get("/documents", response_model=list[DocumentItem])
async def documents(
    language: str | None = None,
    doc_type: str | None = Query(default=None, alias="type"),
    auth: AuthContext = Depends(require_api_key),
) -> list[DocumentItem]:
    """List indexed documents, optionally filtered by language or type."""
    require_roles(auth, READ_ROLES)
    index = _pipeline().index
    selected = index.documents()
    if language:
        selected = [doc for doc in selected if doc.language.lower() == language.strip().lower()]
    if doc_type:
        selected = [doc for doc in selected if doc.doc_type.lower() == doc_type.strip().lower()]
    return [
        DocumentItem(
            doc_id=doc.doc_id,
            path=doc.relative_path,
            language=doc.language,
            doc_type=doc.doc_type,
            size_bytes=doc.size_bytes,
            line_count=doc.line_count,
            chunks=len(index.chunks(doc.doc_id)),
        )
        for doc in selected
    ]


@app.get("/similar", response_model=list[SimilarItem])
async def similar(path: str, auth: AuthContext = Depends(require_api_key)) -> list[SimilarItem]:
    """Rank documents that resemble the one at ``path``."""
    require_roles(auth, READ_ROLES)
    return [SimilarItem(**entry) for entry in find_similar_files(_pipeline().index, path)]
