from __future__ import annotations

"""Simple non-LLM answerer used when no generation service is configured."""

from dataclasses import dataclass, field
from typing import Protocol

from lexrag.rag.segmenter import segment_into_sentences
from lexrag.rag.tokenizer import Tokenizer
from lexrag.rag.types import ContextChunk


class Answerer(Protocol):
    """Protocol for answer-generation collaborators."""

    def generate(self, query: str, contexts: list[ContextChunk]) -> str:
        """Return an answer for query grounded in contexts."""
        raise NotImplementedError


@dataclass
class ExtractiveAnswerer:
    """Quote the best-matching sentence from each of the top chunks."""
    max_contexts: int = 2
    max_chars: int = 480
    tokenizer: Tokenizer = field(default_factory=Tokenizer)

    def generate(self, query: str, contexts: list[ContextChunk]) -> str:
        """Generate an extractive answer from context."""
        if not contexts:
            return ""
        query_terms = set(self.tokenizer.tokenize(query))
        lines: list[str] = []
        for chunk in contexts[: self.max_contexts]:
            sentence = self._best_sentence(chunk.text, query_terms)
            if sentence:
                lines.append(f"• {self._truncate(sentence)} (from: {chunk.source_id})")
        if not lines:
            return ""
        return "Based on the results:\n\n" + "\n".join(lines)

    def _best_sentence(self, text: str, query_terms: set[str]) -> str:
        """Return the sentence sharing the most terms with the query."""
        best = ""
        best_score = 0
        for sentence in segment_into_sentences(text):
            score = len(query_terms.intersection(self.tokenizer.tokenize(sentence)))
            if score > best_score:
                best, best_score = sentence, score
        return best

    def _truncate(self, text: str) -> str:
        """Trim text to max_chars without cutting words."""
        if len(text) <= self.max_chars:
            return text
        return text[: self.max_chars].rsplit(" ", 1)[0] + "..."
