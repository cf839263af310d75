from __future__ import annotations

"""Paragraph, sentence and section segmentation.

Every function here is pure: the same text always yields the same segments.
Sentence-ending punctuation that belongs to URLs, e-mail addresses, numbers or
known abbreviations is masked before splitting and restored afterwards.
"""

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class NamedPattern:
    """Compiled regular expression with a stable name for diagnostics."""
    name: str
    regex: re.Pattern[str]


def _named(name: str, pattern: str, flags: int = 0) -> NamedPattern:
    return NamedPattern(name=name, regex=re.compile(pattern, flags))


ABBREVIATIONS: tuple[str, ...] = (
    # titles
    "dr", "mr", "mrs", "ms", "prof", "sr", "jr", "st", "rev", "gen", "capt", "lt",
    # organisations
    "inc", "ltd", "corp", "co", "dept", "assn", "bros",
    # latin and editorial
    "e\\.g", "i\\.e", "etc", "vs", "cf", "al", "approx", "est", "fig", "vol", "ca",
    "a\\.m", "p\\.m",
    # units
    "kg", "km", "cm", "mm", "mg", "ml", "lb", "lbs", "oz", "ft", "yd",
    "sec", "min", "hr", "hrs",
)

# Order matters: URLs and e-mails are masked before numbers and abbreviations.
PROTECTED_PATTERNS: tuple[NamedPattern, ...] = (
    _named("url", r"(?:https?://|www\.)\S*[^\s.!?,;:)\]\"']"),
    _named("email", r"[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}"),
    _named("list_marker", r"(?m)^[ \t]*\d+\.(?=[ \t])"),
    _named("currency", r"[$€£¥]\s?\d[\d,]*(?:\.\d+)?"),
    _named("decimal", r"(?<![\w.])\d+(?:,\d{3})*\.\d+"),
    _named(
        "abbreviation",
        r"(?<![\w.])(?:" + "|".join(ABBREVIATIONS) + r")\.",
        re.IGNORECASE,
    ),
)

HEADING_PATTERNS: tuple[NamedPattern, ...] = (
    _named("markdown", r"^\s{0,3}#{1,6}\s+\S"),
    _named("numbered", r"^\s*(?:\d+(?:\.\d+)*\.?|[IVXLC]+\.)\s+[A-Z][^.!?]*$"),
    _named("all_caps", r"^(?=.*[A-Z]{2})[A-Z0-9\s&/,:'()\-]+$"),
    _named(
        "title_case",
        r"^[A-Z][\w'&-]*(?:\s+(?:[A-Z][\w'&-]*|of|and|the|a|an|in|on|for|to|with|or|&))*:?$",
    ),
)

MAX_HEADING_CHARS = 100

_LIST_ITEM_RE = re.compile(r"^\s*\d+[.)]\s+\S")

_MASKS = {".": "\ue000", "!": "\ue001", "?": "\ue002"}
_UNMASK = {value: key for key, value in _MASKS.items()}
_MASK_TABLE = str.maketrans(_MASKS)
_UNMASK_TABLE = str.maketrans(_UNMASK)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z])")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n[ \t]*\n\s*|\n(?=[ \t]{0,3}#{1,6}\s)")


def protect(text: str) -> str:
    """Mask sentence-ending punctuation inside protected spans."""
    for pattern in PROTECTED_PATTERNS:
        text = pattern.regex.sub(lambda match: match.group(0).translate(_MASK_TABLE), text)
    return text


def restore(text: str) -> str:
    """Undo the masking applied by protect."""
    return text.translate(_UNMASK_TABLE)


def segment_into_paragraphs(text: str) -> list[str]:
    """Split text on blank-line runs and before markdown heading lines."""
    if not text or not text.strip():
        return []
    return [part.strip() for part in _PARAGRAPH_SPLIT_RE.split(text) if part.strip()]


def segment_into_sentences(text: str) -> list[str]:
    """Split text into sentences without breaking on protected punctuation."""
    if not text or not text.strip():
        return []
    masked = protect(text.strip())
    sentences: list[str] = []
    for part in _SENTENCE_SPLIT_RE.split(masked):
        sentence = restore(part).strip()
        if sentence:
            sentences.append(sentence)
    return sentences


def is_heading(line: str) -> str | None:
    """Return the name of the heading pattern matching line, if any."""
    candidate = line.strip()
    if not candidate or len(candidate) >= MAX_HEADING_CHARS:
        return None
    for pattern in HEADING_PATTERNS:
        if pattern.regex.match(candidate):
            return pattern.name
    return None


def _in_numbered_list(lines: list[str], idx: int) -> bool:
    """Return True when the line at idx is one item of a run of numbered lines."""
    if not _LIST_ITEM_RE.match(lines[idx]):
        return False
    neighbours = lines[max(idx - 1, 0) : idx] + lines[idx + 1 : idx + 2]
    return any(_LIST_ITEM_RE.match(line) for line in neighbours)


def split_sections(text: str) -> list[str]:
    """Split text into sections starting at likely heading lines.

    Numbered lines that belong to a list of consecutive numbered items are
    list content, not headings.
    """
    if not text or not text.strip():
        return []
    lines = text.split("\n")
    sections: list[list[str]] = []
    current: list[str] = []
    for idx, line in enumerate(lines):
        heading = is_heading(line)
        if heading == "numbered" and _in_numbered_list(lines, idx):
            heading = None
        if heading and any(existing.strip() for existing in current):
            sections.append(current)
            current = []
        current.append(line)
    if current:
        sections.append(current)
    joined = ["\n".join(section_lines).strip() for section_lines in sections]
    joined = [section for section in joined if section]
    if len(joined) < 2:
        return [text.strip()]
    return joined
