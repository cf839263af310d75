from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from lexrag.app.settings import settings

REQUEST_COUNT = Counter(
    "lexrag_http_requests_total",
    "HTTP requests by route and status",
    ["method", "route", "status"],
)
REQUEST_LATENCY = Histogram(
    "lexrag_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "route"],
)
SEARCH_RESULTS = Histogram(
    "lexrag_search_results",
    "Chunks returned per search or query",
    ["endpoint"],
    buckets=(0, 1, 2, 3, 5, 10, 20, 50),
)
INDEX_REBUILDS = Counter(
    "lexrag_index_rebuilds_total",
    "Index (re)initializations by origin",
    ["origin"],
)
INDEX_CHUNKS = Histogram(
    "lexrag_index_chunks",
    "Chunk count of each published index",
    buckets=(0, 10, 100, 1_000, 10_000, 50_000),
)


def _route_label(request: Request) -> str:
    # Route templates keep label cardinality bounded.
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled or request.url.path == "/metrics":
        return await call_next(request)
    start = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        route = _route_label(request)
        REQUEST_COUNT.labels(request.method, route, str(status)).inc()
        REQUEST_LATENCY.labels(request.method, route).observe(time.monotonic() - start)


def observe_search(endpoint: str, result_count: int) -> None:
    if settings.metrics_enabled:
        SEARCH_RESULTS.labels(endpoint).observe(result_count)


def record_rebuild(origin: str, chunk_count: int) -> None:
    if settings.metrics_enabled:
        INDEX_REBUILDS.labels(origin).inc()
        INDEX_CHUNKS.observe(chunk_count)


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
