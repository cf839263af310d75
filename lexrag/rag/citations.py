from __future__ import annotations

"""Citation helpers for handing ranked passages to a generation collaborator."""

from dataclasses import dataclass

from lexrag.rag.types import ContextChunk

CONTEXT_SEPARATOR = "\n---\n\n"


@dataclass(frozen=True)
class Citation:
    """Citation metadata for a single context chunk."""
    label: str
    chunk_id: str
    source_id: str
    score: float


def build_citations(contexts: list[ContextChunk]) -> list[Citation]:
    """Build citation labels for contexts."""
    return [
        Citation(
            label=f"[{idx}]",
            chunk_id=chunk.chunk_id,
            source_id=chunk.source_id,
            score=chunk.score,
        )
        for idx, chunk in enumerate(contexts, start=1)
    ]


def format_context(contexts: list[ContextChunk]) -> str:
    """Concatenate contexts with labeled source markers."""
    blocks = [f"[Source: {chunk.source_id}]\n{chunk.text}\n" for chunk in contexts]
    return CONTEXT_SEPARATOR.join(blocks)


def build_prompt(query: str, contexts: list[ContextChunk]) -> str:
    """Render a grounded prompt for an external language model."""
    return (
        f"Context:\n{format_context(contexts)}\n\n"
        f"Question: {query}\n\n"
        "Answer based only on the context above:"
    )


def to_tuples(contexts: list[ContextChunk]) -> list[tuple[str, str, float]]:
    """Return contexts as (text, source, score) tuples."""
    return [(chunk.text, chunk.source_id, chunk.score) for chunk in contexts]


def append_citation_footer(answer: str, citations: list[Citation]) -> str:
    """Append citation labels to the answer."""
    if not citations:
        return answer
    labels = " ".join(f"{citation.label} {citation.source_id}" for citation in citations)
    return f"{answer}\n\nSources: {labels}"
