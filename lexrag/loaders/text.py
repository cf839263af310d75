from __future__ import annotations

"""Plain text loaders for building the index."""

import logging
from pathlib import Path
from typing import Mapping

from lexrag.rag.types import Document

logger = logging.getLogger(__name__)


class DocumentLoadError(RuntimeError):
    """Raised when a document source is missing or unreadable."""
    pass


def load_text_file(path: Path, source_id: str | None = None) -> Document:
    """Load a text file from disk into a Document."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentLoadError(f"Unable to read document: {path}") from exc
    return Document(
        source_id=source_id or path.name,
        content=content,
        metadata={"source": str(path), "size": len(content)},
    )


def load_documents_from_directory(path: Path, pattern: str = "*.txt") -> list[Document]:
    """Load every matching file in a directory, sorted by file name."""
    directory = Path(path)
    if not directory.is_dir():
        raise DocumentLoadError(f"Documents path does not exist: {directory}")
    files = sorted(item for item in directory.glob(pattern) if item.is_file())
    documents = [load_text_file(item) for item in files]
    logger.info(
        "documents_loaded",
        extra={"path": str(directory), "pattern": pattern, "documents": len(documents)},
    )
    return documents


def load_documents_from_mapping(contents: Mapping[str, str]) -> list[Document]:
    """Wrap an in-memory mapping of name to text as Documents."""
    return [
        Document(source_id=name, content=text, metadata={"source": name, "size": len(text)})
        for name, text in contents.items()
    ]
