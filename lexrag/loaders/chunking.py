from __future__ import annotations

"""Sentence-aware chunking with bounded overlap and per-document dedup."""

import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Iterable

from lexrag.rag.segmenter import segment_into_paragraphs, segment_into_sentences, split_sections
from lexrag.rag.types import Chunk, Document

logger = logging.getLogger(__name__)

_INLINE_SPACE_RE = re.compile(r"[ \t\f\v]+")
_BLANK_RUN_RE = re.compile(r"\n(?:[ \t]*\n)+")


def normalize_text(text: str) -> str:
    """Normalize line endings, collapse spaces and cap blank-line runs at one."""
    if not text:
        return ""
    cleaned = text.replace("\r\n", "\n").replace("\r", "\n").replace("\u00a0", " ")
    cleaned = _INLINE_SPACE_RE.sub(" ", cleaned)
    cleaned = "\n".join(line.strip() for line in cleaned.split("\n"))
    cleaned = _BLANK_RUN_RE.sub("\n\n", cleaned)
    return cleaned.strip()


def _word_count(text: str) -> int:
    return len(text.split())


@dataclass(frozen=True)
class _Unit:
    """Sentence plus whether it opens a paragraph."""
    text: str
    opens_paragraph: bool


def _join(units: list[_Unit]) -> str:
    parts: list[str] = []
    for idx, unit in enumerate(units):
        if idx:
            parts.append("\n\n" if unit.opens_paragraph else " ")
        parts.append(unit.text)
    return "".join(parts)


class _DocumentState:
    """Bookkeeping for one assemble call."""

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id
        self.seen_hashes: set[str] = set()
        self.chunks: list[Chunk] = []
        self.discarded = 0


@dataclass
class ChunkAssembler:
    """Accumulate sentences into bounded, overlapping chunks."""
    max_chars: int = 500
    overlap_words: int = 50
    min_chunk_chars: int = 50
    min_flush_ratio: float = 0.4
    max_overlap_sentences: int = 2
    min_overlap_sentence_words: int = 5
    use_sections: bool = True

    def __post_init__(self) -> None:
        if self.max_chars <= 0:
            raise ValueError("max_chars must be greater than zero")
        if self.overlap_words < 0:
            raise ValueError("overlap_words must not be negative")
        if not 0.0 <= self.min_flush_ratio <= 1.0:
            raise ValueError("min_flush_ratio must be between 0 and 1")
        if self.max_overlap_sentences < 0:
            raise ValueError("max_overlap_sentences must not be negative")

    def assemble(self, document: Document) -> list[Chunk]:
        """Split a document into chunks; identical input yields identical chunks."""
        text = normalize_text(document.content)
        if not text:
            return []
        state = _DocumentState(document.source_id)
        sections = split_sections(text) if self.use_sections else [text]
        carry: list[_Unit] = []
        for section in sections:
            carry = self._assemble_section(section, state, carry)
        if carry:
            self._flush(_join(carry), state)
        logger.debug(
            "document_chunked",
            extra={
                "source_id": document.source_id,
                "sections": len(sections),
                "chunks": len(state.chunks),
                "discarded": state.discarded,
            },
        )
        return state.chunks

    def _assemble_section(
        self, section: str, state: _DocumentState, carry: list[_Unit]
    ) -> list[_Unit]:
        """Chunk one section, returning a tail too short to stand on its own.

        The returned units seed the next section so short sections are merged
        forward rather than discarded.
        """
        units = self._units(section)
        buffer: list[_Unit] = list(carry)
        previous_overlap: str | None = None
        flush_floor = self.min_flush_ratio * self.max_chars
        for unit in units:
            if buffer:
                current = _join(buffer)
                if (
                    len(_join([*buffer, unit])) > self.max_chars
                    and len(current) >= flush_floor
                ):
                    self._flush(current, state)
                    overlap = self._select_overlap(buffer, unit)
                    overlap_text = _join(overlap) if overlap else None
                    if overlap_text is not None and overlap_text == previous_overlap:
                        overlap = []
                    previous_overlap = overlap_text
                    buffer = overlap
            buffer.append(unit)
        if buffer and len(_join(buffer)) < self.min_chunk_chars:
            return buffer
        if buffer:
            self._flush(_join(buffer), state)
        return []

    def _units(self, section: str) -> list[_Unit]:
        units: list[_Unit] = []
        for paragraph in segment_into_paragraphs(section):
            sentences = segment_into_sentences(paragraph) or [paragraph]
            for idx, sentence in enumerate(sentences):
                units.append(_Unit(text=sentence, opens_paragraph=idx == 0))
        return units

    def _select_overlap(self, flushed: list[_Unit], incoming: _Unit) -> list[_Unit]:
        """Pick tail sentences of the flushed buffer to repeat in the next chunk."""
        if self.overlap_words <= 0 or self.max_overlap_sentences <= 0:
            return []
        chosen: list[_Unit] = []
        words = 0
        # Never repeat the whole flushed buffer.
        for unit in reversed(flushed[1:]):
            if len(chosen) >= self.max_overlap_sentences:
                break
            unit_words = _word_count(unit.text)
            if unit_words < self.min_overlap_sentence_words and chosen:
                continue
            if words + unit_words > self.overlap_words:
                break
            chosen.insert(0, unit)
            words += unit_words
        # The seeded buffer plus the incoming sentence must still fit.
        while chosen and len(_join([*chosen, incoming])) > self.max_chars:
            chosen.pop(0)
        return chosen

    def _flush(self, text: str, state: _DocumentState) -> None:
        cleaned = text.strip()
        if len(cleaned) < self.min_chunk_chars:
            state.discarded += 1
            return
        digest = hashlib.sha256(cleaned.encode("utf-8")).hexdigest()
        if digest in state.seen_hashes:
            state.discarded += 1
            return
        state.seen_hashes.add(digest)
        state.chunks.append(Chunk.create(state.source_id, cleaned, len(state.chunks)))


def chunk_document(
    document: Document,
    max_chars: int = 500,
    overlap_words: int = 50,
    **options,
) -> list[Chunk]:
    """Chunk a single document with the given parameters."""
    assembler = ChunkAssembler(max_chars=max_chars, overlap_words=overlap_words, **options)
    return assembler.assemble(document)


def chunk_documents(
    documents: Iterable[Document],
    assembler: ChunkAssembler | None = None,
) -> list[Chunk]:
    """Chunk documents in order, concatenating their chunks."""
    resolved = assembler or ChunkAssembler()
    chunks: list[Chunk] = []
    for document in documents:
        chunks.extend(resolved.assemble(document))
    return chunks
