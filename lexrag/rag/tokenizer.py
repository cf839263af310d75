from __future__ import annotations

"""Term extraction for the TF-IDF index and queries."""

import re
from functools import lru_cache

_EMAIL_RE = re.compile(r"([a-z0-9._%+-]+)@([a-z0-9.-]+)\.([a-z]{2,})")
_URL_RE = re.compile(r"https?://([^\s/]+)(/\S*)?")
_URL_SPLIT_RE = re.compile(r"[./\-_]+")
_PHONE_RES = (
    re.compile(r"(?<![\w+])(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}(?!\w)"),
    re.compile(r"(?<![\w+])\+\d{1,3}(?:[-.\s]?\(?\d{1,4}\)?){2,4}(?!\w)"),
)
_CONTRACTIONS = (
    ("can't", "can not"),
    ("won't", "will not"),
    ("n't", " not"),
    ("'re", " are"),
    ("'ve", " have"),
    ("'ll", " will"),
    ("'d", " would"),
    ("'m", " am"),
)
_PUNCT_RE = re.compile(r"[^\w\s]")
_YEAR_RE = re.compile(r"^(?:19|20)\d{2}$")
_NUMBER_RE = re.compile(r"^\d+$")

_URL_NOISE = frozenset({"www", "http", "https", "com", "org", "net"})

KEEP_SHORT_TERMS = frozenset(
    {
        "ai", "ml", "ui", "ux", "go", "js", "db", "os", "it", "qa", "hr", "pr", "pm",
        "vp", "ceo", "cto", "cfo", "api", "aws", "gcp", "ios", "sql", "css", "php",
        "vue", "mvp",
    }
)

STOP_WORDS = frozenset(
    {
        "a", "about", "above", "after", "again", "against", "all", "also", "am", "an",
        "and", "any", "are", "as", "at", "be", "because", "been", "before", "being",
        "below", "between", "both", "but", "by", "can", "could", "did", "do", "does",
        "doing", "down", "during", "each", "either", "else", "ever", "every", "few",
        "for", "from", "further", "get", "got", "had", "has", "have", "having", "he",
        "her", "here", "hers", "herself", "him", "himself", "his", "how", "however",
        "i", "if", "in", "into", "is", "its", "itself", "just", "let", "like", "may",
        "me", "might", "more", "most", "much", "must", "my", "myself", "neither",
        "no", "nor", "not", "now", "of", "off", "often", "on", "once", "only", "or",
        "other", "ought", "our", "ours", "ourselves", "out", "over", "own", "same",
        "shall", "she", "should", "so", "some", "such", "than", "that", "the",
        "their", "theirs", "them", "themselves", "then", "there", "these", "they",
        "this", "those", "through", "thus", "to", "too", "under", "until", "up",
        "upon", "us", "very", "was", "we", "were", "what", "when", "where", "whether",
        "which", "while", "who", "whom", "whose", "why", "will", "with", "within",
        "without", "would", "yet", "you", "your", "yours", "yourself", "yourselves",
    }
)


def normalize_word(word: str) -> str:
    """Fold common English plural forms to their singular."""
    if len(word) <= 3 or word in KEEP_SHORT_TERMS or not word.isalpha():
        return word
    if word.endswith("ies") and len(word) > 4:
        return word[:-3] + "y"
    if word.endswith(("sses", "ches", "shes", "xes", "zes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


class Tokenizer:
    """Convert text into index terms, memoizing results per instance."""

    def __init__(self, max_cache_entries: int = 10_000) -> None:
        self._cached_tokenize = lru_cache(maxsize=max_cache_entries)(self._tokenize)

    def tokenize(self, text: str, remove_stopwords: bool = True) -> list[str]:
        """Return index terms for text in left-to-right order."""
        if not text:
            return []
        return list(self._cached_tokenize(text, remove_stopwords))

    def clear_cache(self) -> None:
        """Drop all memoized tokenizations."""
        self._cached_tokenize.cache_clear()

    def cache_info(self):
        return self._cached_tokenize.cache_info()

    def _tokenize(self, text: str, remove_stopwords: bool) -> tuple[str, ...]:
        lowered = text.lower().replace("’", "'").strip()
        if not lowered:
            return ()
        lowered = _URL_RE.sub(_flatten_url, lowered)
        lowered = _EMAIL_RE.sub(_flatten_email, lowered)
        for pattern in _PHONE_RES:
            lowered = pattern.sub(" ", lowered)
        for contraction, expansion in _CONTRACTIONS:
            lowered = lowered.replace(contraction, expansion)
        lowered = lowered.replace("'s", "").replace("'", "")
        lowered = _PUNCT_RE.sub(" ", lowered)
        words = lowered.split()
        if remove_stopwords:
            words = [word for word in words if _keep(word)]
        return tuple(normalize_word(word) for word in words)


def _keep(word: str) -> bool:
    if word in KEEP_SHORT_TERMS or _YEAR_RE.match(word):
        return True
    if len(word) <= 2 or word in STOP_WORDS:
        return False
    return not _NUMBER_RE.match(word)


def _flatten_url(match: re.Match[str]) -> str:
    host = match.group(1)
    path = match.group(2) or ""
    parts = [
        part
        for part in _URL_SPLIT_RE.split(host + path)
        if len(part) > 1 and part not in _URL_NOISE
    ]
    return f" {' '.join(parts)} "


def _flatten_email(match: re.Match[str]) -> str:
    local = match.group(1)
    labels = [label for label in match.group(2).split(".") if len(label) > 1]
    return f" {' '.join([local, *labels])} "
