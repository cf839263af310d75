from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from lexrag.loaders.chunking import ChunkAssembler, chunk_documents
from lexrag.rag.answerer import Answerer, ExtractiveAnswerer
from lexrag.rag.guardrails import DEFAULT_REFUSAL, require_context, require_terms
from lexrag.rag.types import ContextChunk, Document, SearchResult
from lexrag.vectorstore.tfidf import TfidfVectorStore

logger = logging.getLogger(__name__)


@dataclass
class RAGResponse:
    answer: str
    sources: list[ContextChunk]
    refusal_reason: str | None = None


@dataclass
class RAGPipeline:
    vectorstore: TfidfVectorStore = field(default_factory=TfidfVectorStore)
    answerer: Answerer = field(default_factory=ExtractiveAnswerer)
    assembler: ChunkAssembler = field(default_factory=ChunkAssembler)
    max_chunks: int = 3
    min_score: float = 0.0
    max_query_chars: int = 2000
    _write_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def chunking_params(self) -> dict[str, object]:
        return {
            "max_chars": self.assembler.max_chars,
            "overlap_words": self.assembler.overlap_words,
            "min_chunk_chars": self.assembler.min_chunk_chars,
            "min_flush_ratio": self.assembler.min_flush_ratio,
            "max_overlap_sentences": self.assembler.max_overlap_sentences,
            "use_sections": self.assembler.use_sections,
        }

    def ingest(self, documents: Iterable[Document]) -> int:
        chunks = chunk_documents(documents, self.assembler)
        with self._write_lock:
            # Build off to the side, then publish with a single reference swap.
            self.vectorstore = TfidfVectorStore.build(chunks, params=self.chunking_params())
        logger.info("ingest_complete", extra={"chunks": len(chunks)})
        return len(chunks)

    def load_snapshot(self, path: Path) -> int:
        with self._write_lock:
            self.vectorstore = TfidfVectorStore.load(path)
        return len(self.vectorstore.chunks)

    def save_snapshot(self, path: Path) -> Path:
        return self.vectorstore.save(path)

    def retrieve(self, query: str, top_k: int | None = None) -> list[SearchResult]:
        bounded = query[: self.max_query_chars] if self.max_query_chars > 0 else query
        limit = self.max_chunks if top_k is None else top_k
        results = self.vectorstore.search(bounded, top_k=limit)
        logger.info(
            "retrieval_complete",
            extra={
                "results": len(results),
                "query_length": len(query),
                "truncated": len(bounded) < len(query),
            },
        )
        return results

    def build_context(
        self,
        results: list[SearchResult],
        min_score: float | None = None,
        limit: int | None = None,
    ) -> list[ContextChunk]:
        threshold = self.min_score if min_score is None else min_score
        contexts: list[ContextChunk] = []
        for result in results:
            if result.score < threshold:
                continue
            text = result.chunk.text.strip()
            if not text:
                continue
            contexts.append(
                ContextChunk(
                    chunk_id=result.chunk.id,
                    source_id=result.chunk.source_id,
                    text=text,
                    score=result.score,
                )
            )
            if limit is not None and len(contexts) >= limit:
                break
        return contexts

    def answer(
        self,
        query: str,
        top_k: int | None = None,
        min_score: float | None = None,
    ) -> RAGResponse:
        query_check = require_terms(query, self.vectorstore.tokenizer)
        if not query_check.allowed:
            return RAGResponse(answer=query_check.refusal, sources=[], refusal_reason=query_check.reason)
        limit = self.max_chunks if top_k is None else top_k
        results = self.retrieve(query, top_k=limit)
        contexts = self.build_context(results, min_score=min_score, limit=limit)
        guardrail = require_context(contexts)
        if not guardrail.allowed:
            return RAGResponse(answer=guardrail.refusal, sources=[], refusal_reason=guardrail.reason)
        answer = self.answerer.generate(query, contexts)
        if not answer:
            return RAGResponse(answer=DEFAULT_REFUSAL, sources=[], refusal_reason="empty_answer")
        return RAGResponse(answer=answer, sources=contexts)
