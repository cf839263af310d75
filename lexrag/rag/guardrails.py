from __future__ import annotations

"""Pre-answer checks that decide whether a question can be answered at all."""

from dataclasses import dataclass

from lexrag.rag.tokenizer import Tokenizer
from lexrag.rag.types import ContextChunk

DEFAULT_REFUSAL = "I couldn't find any relevant information to answer your question."
EMPTY_QUERY_REFUSAL = "Please ask a question containing at least one searchable term."


@dataclass(frozen=True)
class GuardrailResult:
    allowed: bool
    reason: str

    @property
    def refusal(self) -> str:
        if self.reason in {"empty_query", "no_terms"}:
            return EMPTY_QUERY_REFUSAL
        return DEFAULT_REFUSAL


def require_terms(query: str, tokenizer: Tokenizer) -> GuardrailResult:
    """Reject blank questions and questions made only of stop words."""
    if not query.strip():
        return GuardrailResult(allowed=False, reason="empty_query")
    if not tokenizer.tokenize(query):
        return GuardrailResult(allowed=False, reason="no_terms")
    return GuardrailResult(allowed=True, reason="ok")


def require_context(contexts: list[ContextChunk]) -> GuardrailResult:
    if not contexts:
        return GuardrailResult(allowed=False, reason="no_context")
    if all(not chunk.text.strip() for chunk in contexts):
        return GuardrailResult(allowed=False, reason="empty_context")
    return GuardrailResult(allowed=True, reason="ok")
