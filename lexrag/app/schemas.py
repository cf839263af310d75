from __future__ import annotations

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    query: str
    top_k: int | None = Field(default=None, ge=1, le=50)


class SearchHit(BaseModel):
    chunk_id: str
    source_id: str
    text: str
    score: float = Field(ge=0.0, le=1.0)


class SearchResponse(BaseModel):
    results: list[SearchHit]
    request_id: str


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, ge=1, le=20)
    min_score: float | None = Field(default=None, ge=0.0, le=1.0)
    trace_id: str | None = None


class SourceChunk(BaseModel):
    chunk_id: str
    source_id: str
    text: str
    score: float


class QueryResponse(BaseModel):
    answer: str
    sources: list[SourceChunk]
    context: str
    refusal_reason: str | None = None
    request_id: str


class IngestDocument(BaseModel):
    source_id: str | None = None
    content: str


class IngestRequest(BaseModel):
    documents: list[IngestDocument]
    save_snapshot: bool = False


class IngestDirectoryRequest(BaseModel):
    path: str | None = None
    pattern: str = "*.txt"
    save_snapshot: bool = True


class IngestResponse(BaseModel):
    documents: int
    chunks: int


class StatsResponse(BaseModel):
    backend: str
    chunk_count: int
    source_count: int
    term_count: int
    created_at: str | None = None
