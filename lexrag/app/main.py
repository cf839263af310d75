from __future__ import annotations

"""FastAPI application exposing the chunk index and retrieval pipeline."""

import hashlib
import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request

from lexrag.app.dependencies import get_pipeline, initialize
from lexrag.app.metrics import metrics_middleware, metrics_response, observe_search, record_rebuild
from lexrag.app.schemas import (
    IngestDirectoryRequest,
    IngestRequest,
    IngestResponse,
    QueryRequest,
    QueryResponse,
    SearchHit,
    SearchRequest,
    SearchResponse,
    SourceChunk,
    StatsResponse,
)
from lexrag.app.settings import settings
from lexrag.loaders.text import DocumentLoadError, load_documents_from_directory
from lexrag.rag.citations import format_context
from lexrag.rag.types import Document

logger = logging.getLogger(__name__)


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


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Load the snapshot or build from the documents folder when one is present."""
    if Path(settings.snapshot_path).exists() or Path(settings.documents_path).is_dir():
        origin = initialize(get_pipeline(), settings)
        record_rebuild(origin, len(get_pipeline().vectorstore.chunks))
        logger.info("index_bootstrapped", extra={"origin": origin})
    else:
        logger.info(
            "index_bootstrap_skipped",
            extra={"documents_path": settings.documents_path},
        )
    yield


app = FastAPI(title="lexrag", version="0.1.0", lifespan=lifespan)


def _request_id(http_request: Request, trace_id: str | None = None) -> str:
    return trace_id or getattr(http_request.state, "request_id", str(uuid.uuid4()))


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
async def health() -> dict[str, object]:
    """Liveness check that also reports whether an index is loaded."""
    index = get_pipeline().vectorstore
    return {"status": "ok", **index.health(), "chunks": len(index.chunks)}


@app.get("/stats", response_model=StatsResponse)
async def stats() -> StatsResponse:
    """Return index stats."""
    pipeline = get_pipeline()
    return StatsResponse(**pipeline.vectorstore.stats())


@app.post("/ingest", response_model=IngestResponse)
async def ingest(request: IngestRequest) -> IngestResponse:
    """Rebuild the index from documents supplied in the request body."""
    if not request.documents:
        raise HTTPException(status_code=400, detail="No documents provided")
    documents = [
        Document(source_id=doc.source_id or f"doc-{idx}", content=doc.content)
        for idx, doc in enumerate(request.documents, start=1)
    ]
    pipeline = get_pipeline()
    chunk_count = pipeline.ingest(documents)
    record_rebuild("request", chunk_count)
    if request.save_snapshot:
        pipeline.save_snapshot(Path(settings.snapshot_path))
    return IngestResponse(documents=len(documents), chunks=chunk_count)


@app.post("/ingest/directory", response_model=IngestResponse)
async def ingest_directory(request: IngestDirectoryRequest) -> IngestResponse:
    """Rebuild the index from a folder of text files."""
    path = Path(request.path or settings.documents_path)
    try:
        documents = load_documents_from_directory(path, pattern=request.pattern)
    except DocumentLoadError as exc:
        logger.error("ingest_directory_failed", extra={"path": str(path), "detail": str(exc)})
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    pipeline = get_pipeline()
    chunk_count = pipeline.ingest(documents)
    record_rebuild("directory", chunk_count)
    if request.save_snapshot:
        pipeline.save_snapshot(Path(settings.snapshot_path))
    return IngestResponse(documents=len(documents), chunks=chunk_count)


@app.post("/search", response_model=SearchResponse)
async def search(request: SearchRequest, http_request: Request) -> SearchResponse:
    """Return ranked chunks for a query."""
    request_id = _request_id(http_request)
    pipeline = get_pipeline()
    results = pipeline.retrieve(request.query, top_k=request.top_k)
    observe_search("search", len(results))
    return SearchResponse(
        results=[SearchHit(**result.to_dict()) for result in results],
        request_id=request_id,
    )


@app.post("/query", response_model=QueryResponse)
async def query(request: QueryRequest, http_request: Request) -> QueryResponse:
    """Retrieve context for a question and answer it extractively."""
    request_id = _request_id(http_request, request.trace_id)
    query_hash = hashlib.sha256(request.query.encode("utf-8")).hexdigest()
    logger.info(
        "query_received",
        extra={
            "request_id": request_id,
            "query_length": len(request.query),
            "query_hash": query_hash,
            "top_k": request.top_k,
            "min_score": request.min_score,
        },
    )
    pipeline = get_pipeline()
    response = pipeline.answer(request.query, top_k=request.top_k, min_score=request.min_score)
    observe_search("query", len(response.sources))
    logger.info(
        "query_completed",
        extra={
            "request_id": request_id,
            "refusal_reason": response.refusal_reason,
            "answer_length": len(response.answer),
            "sources": len(response.sources),
        },
    )
    return QueryResponse(
        answer=response.answer,
        sources=[
            SourceChunk(
                chunk_id=chunk.chunk_id,
                source_id=chunk.source_id,
                text=chunk.text,
                score=chunk.score,
            )
            for chunk in response.sources
        ],
        context=format_context(response.sources),
        refusal_reason=response.refusal_reason,
        request_id=request_id,
    )
