from __future__ import annotations

"""CLI utility to rebuild the index snapshot from a documents folder."""

import argparse
import logging
from dataclasses import replace

from lexrag.app.dependencies import build_pipeline, initialize
from lexrag.app.settings import settings
from lexrag.loaders.text import DocumentLoadError


def main() -> None:
    """Rebuild the configured snapshot using app settings."""
    parser = argparse.ArgumentParser(description="Rebuild the TF-IDF index snapshot.")
    parser.add_argument("--documents", default=settings.documents_path, help="Documents folder.")
    parser.add_argument("--pattern", default=settings.documents_pattern, help="File glob.")
    parser.add_argument("--snapshot", default=settings.snapshot_path, help="Snapshot file.")
    parser.add_argument("--max-chars", type=int, default=settings.chunk_size)
    parser.add_argument("--overlap-words", type=int, default=settings.chunk_overlap)
    parser.add_argument("--query", default=None, help="Optional query to run after rebuilding.")
    parser.add_argument("--top-k", type=int, default=settings.max_chunks)
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    config = replace(
        settings,
        documents_path=args.documents,
        documents_pattern=args.pattern,
        snapshot_path=args.snapshot,
        chunk_size=args.max_chars,
        chunk_overlap=args.overlap_words,
        auto_save=True,
    )
    pipeline = build_pipeline(config)
    try:
        initialize(pipeline, config, force_rebuild=True)
    except DocumentLoadError as exc:
        raise SystemExit(str(exc)) from exc

    stats = pipeline.vectorstore.stats()
    print(f"Indexed {stats['chunk_count']} chunks from {stats['source_count']} documents")
    print(f"Snapshot written to: {args.snapshot}")

    if args.query:
        for rank, result in enumerate(pipeline.retrieve(args.query, top_k=args.top_k), start=1):
            print(f"[{rank}] {result.chunk.source_id} score={result.score:.4f}")
            print(result.chunk.text)
            print("-" * 80)


if __name__ == "__main__":
    main()
