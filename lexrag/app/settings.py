from __future__ import annotations

import os
from dataclasses import dataclass

try:
    from dotenv import load_dotenv
except ImportError:  # pragma: no cover - optional in minimal setups
    load_dotenv = None

if load_dotenv is not None:
    load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    documents_path: str = os.getenv("RAG_DOCUMENTS_PATH", "storage/documents")
    documents_pattern: str = os.getenv("RAG_DOCUMENTS_PATTERN", "*.txt")
    snapshot_path: str = os.getenv("RAG_SNAPSHOT_PATH", "storage/cache/vectors.json")
    auto_save: bool = _env_bool("RAG_AUTO_SAVE", "true")
    chunk_size: int = int(os.getenv("RAG_CHUNK_SIZE", "500"))
    chunk_overlap: int = int(os.getenv("RAG_CHUNK_OVERLAP", "50"))
    min_chunk_chars: int = int(os.getenv("RAG_MIN_CHUNK_CHARS", "50"))
    min_flush_ratio: float = float(os.getenv("RAG_MIN_FLUSH_RATIO", "0.4"))
    max_overlap_sentences: int = int(os.getenv("RAG_MAX_OVERLAP_SENTENCES", "2"))
    use_sections: bool = _env_bool("RAG_USE_SECTIONS", "true")
    max_chunks: int = int(os.getenv("RAG_MAX_CHUNKS", "3"))
    min_score: float = float(os.getenv("RAG_MIN_SCORE", "0.0"))
    max_query_chars: int = int(os.getenv("RAG_MAX_QUERY_CHARS", "2000"))
    log_level: str = os.getenv("RAG_LOG_LEVEL", "INFO")
    metrics_enabled: bool = _env_bool("RAG_METRICS_ENABLED", "true")


settings = Settings()
