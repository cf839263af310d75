from __future__ import annotations

"""Core data types for documents, chunks and retrieval."""

import hashlib
import re
from dataclasses import dataclass, field
from typing import Any

_WORD_RE = re.compile(r"\S+")
_LIST_LINE_RE = re.compile(r"(?m)^\s*(?:[-*•]\s+|\d+[.)]\s+)")
_TABLE_LINE_RE = re.compile(r"(?m)^\s*\|.*\|\s*$|\t\S+\t")


def chunk_id_for(source_id: str, sequence_index: int) -> str:
    """Return the stable identifier for a chunk position within a source."""
    return hashlib.md5(f"{source_id}{sequence_index}".encode("utf-8")).hexdigest()


def has_structure_markup(text: str) -> bool:
    """Return True when text contains list or table markup."""
    return bool(_LIST_LINE_RE.search(text) or _TABLE_LINE_RE.search(text))


@dataclass(frozen=True)
class Document:
    """Raw input document prior to chunking."""
    source_id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Chunk:
    """Bounded passage of a source document, the unit of retrieval."""
    id: str
    source_id: str
    text: str
    sequence_index: int
    char_count: int
    word_count: int
    has_structure: bool = False

    @classmethod
    def create(cls, source_id: str, text: str, sequence_index: int) -> Chunk:
        """Build a chunk from trimmed text, deriving the cached fields."""
        cleaned = text.strip()
        if not cleaned:
            raise ValueError("Chunk text must not be empty")
        return cls(
            id=chunk_id_for(source_id, sequence_index),
            source_id=source_id,
            text=cleaned,
            sequence_index=sequence_index,
            char_count=len(cleaned),
            word_count=len(_WORD_RE.findall(cleaned)),
            has_structure=has_structure_markup(cleaned),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "text": self.text,
            "sequence_index": self.sequence_index,
            "char_count": self.char_count,
            "word_count": self.word_count,
            "has_structure": self.has_structure,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chunk:
        return cls(
            id=str(data["id"]),
            source_id=str(data["source_id"]),
            text=str(data["text"]),
            sequence_index=int(data["sequence_index"]),
            char_count=int(data["char_count"]),
            word_count=int(data["word_count"]),
            has_structure=bool(data.get("has_structure", False)),
        )


@dataclass(frozen=True)
class SearchResult:
    """Search result with similarity score."""
    chunk: Chunk
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_id": self.chunk.id,
            "source_id": self.chunk.source_id,
            "text": self.chunk.text,
            "score": self.score,
        }


@dataclass(frozen=True)
class ContextChunk:
    """Context chunk handed to an answer-generation collaborator."""
    chunk_id: str
    source_id: str
    text: str
    score: float
