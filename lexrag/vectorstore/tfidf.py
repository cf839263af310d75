from __future__ import annotations

"""TF-IDF vector index with n-gram terms and cosine similarity search."""

import json
import logging
import math
import os
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from lexrag.rag.tokenizer import Tokenizer
from lexrag.rag.types import Chunk, SearchResult

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
BIGRAM_WEIGHT = 0.3
TRIGRAM_WEIGHT = 0.2
NGRAM_WEIGHTS = ((2, BIGRAM_WEIGHT), (3, TRIGRAM_WEIGHT))


class SnapshotError(RuntimeError):
    """Raised when a persisted snapshot cannot be read or is malformed."""
    pass


def extract_ngrams(tokens: list[str], n: int) -> list[str]:
    """Return contiguous n-grams joined with underscores."""
    return ["_".join(tokens[idx : idx + n]) for idx in range(len(tokens) - n + 1)]


def smoothed_idf(total_docs: int, doc_freq: int) -> float:
    """Laplace-smoothed inverse document frequency, always positive."""
    return math.log((total_docs + 1) / (doc_freq + 1)) + 1.0


def normalize_vector(vector: dict[str, float]) -> dict[str, float]:
    """Scale a sparse vector to unit length, dropping zero weights."""
    magnitude = math.sqrt(sum(value * value for value in vector.values()))
    if magnitude == 0.0:
        return {}
    return {term: value / magnitude for term, value in vector.items() if value != 0.0}


def cosine_similarity(a: dict[str, float], b: dict[str, float]) -> float:
    """Dot product of two unit-length sparse vectors."""
    if not a or not b:
        return 0.0
    if len(a) > len(b):
        a, b = b, a
    return sum(value * b[term] for term, value in a.items() if term in b)


def weigh_terms(tokens: list[str], idf: dict[str, float]) -> dict[str, float]:
    """Build a normalized TF-IDF vector with n-gram contributions."""
    if not tokens:
        return {}
    counts = Counter(tokens)
    denominator = math.log(1 + len(tokens))
    vector: dict[str, float] = {
        term: (math.log(1 + tf) / denominator) * idf.get(term, 0.0)
        for term, tf in counts.items()
    }
    for n, weight in NGRAM_WEIGHTS:
        for gram in extract_ngrams(tokens, n):
            vector[gram] = vector.get(gram, 0.0) + weight * idf.get(gram, 0.0)
    return normalize_vector(vector)


@dataclass(frozen=True)
class _IndexState:
    """Immutable snapshot of a built index."""
    chunks: tuple[Chunk, ...] = ()
    vectors: tuple[dict[str, float], ...] = ()
    idf: dict[str, float] = field(default_factory=dict)
    created_at: str | None = None
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class TfidfVectorStore:
    """In-memory TF-IDF index over chunks, rebuilt wholesale on every add."""
    tokenizer: Tokenizer = field(default_factory=Tokenizer)
    _state: _IndexState = field(default_factory=_IndexState, init=False, repr=False)

    @classmethod
    def build(
        cls,
        chunks: Iterable[Chunk],
        tokenizer: Tokenizer | None = None,
        params: dict[str, Any] | None = None,
    ) -> TfidfVectorStore:
        """Create a store indexing the given chunks."""
        store = cls(tokenizer=tokenizer or Tokenizer())
        store.add_chunks(chunks, params=params)
        return store

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return self._state.chunks

    @property
    def vectors(self) -> tuple[dict[str, float], ...]:
        return self._state.vectors

    @property
    def idf_table(self) -> dict[str, float]:
        return self._state.idf

    @property
    def created_at(self) -> str | None:
        return self._state.created_at

    @property
    def params(self) -> dict[str, Any]:
        return self._state.params

    def add_chunks(self, chunks: Iterable[Chunk], params: dict[str, Any] | None = None) -> int:
        """Replace the whole index with one built from chunks."""
        started = time.perf_counter()
        ordered = tuple(chunks)
        token_lists = [self.tokenizer.tokenize(chunk.text) for chunk in ordered]

        doc_freq: Counter[str] = Counter()
        for tokens in token_lists:
            terms = set(tokens)
            for n, _ in NGRAM_WEIGHTS:
                terms.update(extract_ngrams(tokens, n))
            doc_freq.update(terms)

        total = len(ordered)
        idf = {term: smoothed_idf(total, df) for term, df in doc_freq.items()}
        vectors = tuple(weigh_terms(tokens, idf) for tokens in token_lists)

        self._state = _IndexState(
            chunks=ordered,
            vectors=vectors,
            idf=idf,
            created_at=datetime.now(timezone.utc).isoformat(),
            params=dict(params or {}),
        )
        logger.info(
            "index_built",
            extra={
                "chunks": total,
                "terms": len(idf),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return total

    def vectorize(self, text: str, idf: dict[str, float] | None = None) -> dict[str, float]:
        """Return the normalized term vector of text against the index's IDF table."""
        table = self._state.idf if idf is None else idf
        return weigh_terms(self.tokenizer.tokenize(text), table)

    def search(self, query: str, top_k: int = 3) -> list[SearchResult]:
        """Rank indexed chunks by cosine similarity to the query."""
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        if not query or not query.strip():
            return []
        state = self._state
        if not state.chunks:
            return []
        query_vector = self.vectorize(query, state.idf)
        if not query_vector:
            return []
        scored: list[tuple[float, int, int]] = []
        for position, vector in enumerate(state.vectors):
            similarity = cosine_similarity(query_vector, vector)
            if similarity <= 0.0:
                continue
            score = min(1.0, similarity)
            scored.append((score, state.chunks[position].sequence_index, position))
        scored.sort(key=lambda item: (-item[0], item[1], item[2]))
        return [
            SearchResult(chunk=state.chunks[position], score=score)
            for score, _, position in scored[:top_k]
        ]

    def to_snapshot(self) -> dict[str, Any]:
        """Serialize the full index to a JSON-compatible record."""
        state = self._state
        return {
            "version": SNAPSHOT_VERSION,
            "created_at": state.created_at or datetime.now(timezone.utc).isoformat(),
            "params": state.params,
            "chunks": [chunk.to_dict() for chunk in state.chunks],
            "index": {str(position): vector for position, vector in enumerate(state.vectors)},
            "idf": state.idf,
        }

    def save(self, path: Path) -> Path:
        """Write the index snapshot atomically to path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path = target.with_name(f".{target.name}.tmp")
        payload = json.dumps(self.to_snapshot(), ensure_ascii=False)
        temp_path.write_text(payload, encoding="utf-8")
        os.replace(temp_path, target)
        logger.info(
            "snapshot_saved",
            extra={"path": str(target), "chunks": len(self._state.chunks)},
        )
        return target

    @classmethod
    def from_snapshot(
        cls, data: Any, tokenizer: Tokenizer | None = None
    ) -> TfidfVectorStore:
        """Rebuild a store from a snapshot record, validating its schema."""
        if not isinstance(data, dict):
            raise SnapshotError("Snapshot root must be an object")
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise SnapshotError(f"Unsupported snapshot version: {version!r}")
        for key in ("chunks", "index", "idf"):
            if key not in data:
                raise SnapshotError(f"Snapshot is missing '{key}'")
        raw_chunks, raw_index, raw_idf = data["chunks"], data["index"], data["idf"]
        if not isinstance(raw_chunks, list) or not isinstance(raw_index, dict):
            raise SnapshotError("Snapshot chunks or index have the wrong shape")
        if not isinstance(raw_idf, dict):
            raise SnapshotError("Snapshot idf table has the wrong shape")
        if len(raw_index) != len(raw_chunks):
            raise SnapshotError(
                f"Snapshot has {len(raw_chunks)} chunks but {len(raw_index)} vectors"
            )
        try:
            chunks = tuple(Chunk.from_dict(item) for item in raw_chunks)
            vectors = tuple(
                {str(term): float(weight) for term, weight in raw_index[str(position)].items()}
                for position in range(len(chunks))
            )
            idf = {str(term): float(value) for term, value in raw_idf.items()}
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise SnapshotError(f"Snapshot is malformed: {exc}") from exc
        params = data.get("params") or {}
        store = cls(tokenizer=tokenizer or Tokenizer())
        store._state = _IndexState(
            chunks=chunks,
            vectors=vectors,
            idf=idf,
            created_at=data.get("created_at"),
            params=dict(params) if isinstance(params, dict) else {},
        )
        return store

    @classmethod
    def load(cls, path: Path, tokenizer: Tokenizer | None = None) -> TfidfVectorStore:
        """Load a store from a snapshot file."""
        source = Path(path)
        try:
            data = json.loads(source.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SnapshotError(f"Unable to read snapshot: {source}") from exc
        store = cls.from_snapshot(data, tokenizer=tokenizer)
        logger.info(
            "snapshot_loaded",
            extra={"path": str(source), "chunks": len(store.chunks)},
        )
        return store

    def stats(self) -> dict[str, int | str | None]:
        """Return basic stats for the index."""
        state = self._state
        return {
            "backend": "tfidf",
            "chunk_count": len(state.chunks),
            "source_count": len({chunk.source_id for chunk in state.chunks}),
            "term_count": len(state.idf),
            "created_at": state.created_at,
        }

    def health(self) -> dict[str, str | bool]:
        """Return health information for the index."""
        return {"backend": "tfidf", "ready": bool(self._state.chunks)}


def build_index(chunks: Iterable[Chunk], tokenizer: Tokenizer | None = None) -> TfidfVectorStore:
    """Build a new index from chunks."""
    return TfidfVectorStore.build(chunks, tokenizer=tokenizer)


def save_index(index: TfidfVectorStore, path: Path) -> Path:
    """Persist an index snapshot."""
    return index.save(path)


def load_index(path: Path, tokenizer: Tokenizer | None = None) -> TfidfVectorStore:
    """Load an index snapshot."""
    return TfidfVectorStore.load(path, tokenizer=tokenizer)
