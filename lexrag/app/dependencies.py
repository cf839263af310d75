from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from lexrag.app.settings import Settings, settings
from lexrag.loaders.chunking import ChunkAssembler
from lexrag.loaders.text import load_documents_from_directory
from lexrag.rag.answerer import ExtractiveAnswerer
from lexrag.rag.pipeline import RAGPipeline
from lexrag.vectorstore.tfidf import SnapshotError

logger = logging.getLogger(__name__)


def build_assembler(config: Settings = settings) -> ChunkAssembler:
    return ChunkAssembler(
        max_chars=config.chunk_size,
        overlap_words=config.chunk_overlap,
        min_chunk_chars=config.min_chunk_chars,
        min_flush_ratio=config.min_flush_ratio,
        max_overlap_sentences=config.max_overlap_sentences,
        use_sections=config.use_sections,
    )


def build_pipeline(config: Settings = settings) -> RAGPipeline:
    return RAGPipeline(
        answerer=ExtractiveAnswerer(),
        assembler=build_assembler(config),
        max_chunks=config.max_chunks,
        min_score=config.min_score,
        max_query_chars=config.max_query_chars,
    )


@lru_cache
def get_pipeline() -> RAGPipeline:
    return build_pipeline(settings)


def reset_pipeline_cache() -> None:
    get_pipeline.cache_clear()


def initialize(
    pipeline: RAGPipeline,
    config: Settings = settings,
    force_rebuild: bool = False,
) -> str:
    """Load the snapshot or rebuild from the documents directory.

    Returns "snapshot" or "rebuild" depending on the path taken. A snapshot
    that fails to load is logged and replaced by a full rebuild.
    """
    snapshot = Path(config.snapshot_path)
    if not force_rebuild and snapshot.exists():
        try:
            pipeline.load_snapshot(snapshot)
            return "snapshot"
        except SnapshotError as exc:
            logger.warning(
                "snapshot_load_failed",
                extra={"path": str(snapshot), "detail": str(exc)},
            )
    documents = load_documents_from_directory(
        Path(config.documents_path), pattern=config.documents_pattern
    )
    pipeline.ingest(documents)
    if config.auto_save:
        pipeline.save_snapshot(snapshot)
    return "rebuild"
