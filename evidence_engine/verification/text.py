"""Text normalization helpers shared by the query builder and adapters."""

import re
from typing import Iterable

_QUOTE_CHARS = re.compile(r"[“”‘’\"'`]+")
_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\s-]")
_HTML_TAG = re.compile(r"<[^>]+>")

STOP_WORDS = frozenset(
    [
        "a", "an", "the", "and", "or", "but", "if", "to", "of", "in", "for",
        "on", "with", "at", "by", "from", "as", "about", "into", "over",
        "is", "are", "was", "were", "be", "been", "being", "am",
        "have", "has", "had", "do", "does", "did", "will", "would", "can",
        "could", "should", "may", "might", "must", "shall",
        "that", "this", "these", "those", "there", "here", "which", "who",
        "whom", "what", "when", "where", "why", "how", "than", "then", "so",
        "it", "its", "they", "them", "their", "he", "she", "his", "her",
        "we", "our", "you", "your", "i", "me", "my", "not", "no", "all",
        "any", "some", "more", "most", "very", "just", "also", "only",
        "because", "according", "claim", "claims", "claimed", "reported", "reports",
        "said", "says", "say", "told", "stated", "denied", "shown", "showed",
    ]
)


def clean_text(value: str) -> str:
    """Strip quotation marks and collapse whitespace."""
    return _WHITESPACE.sub(" ", _QUOTE_CHARS.sub("", value or "")).strip()


def strip_html(value: str) -> str:
    return _WHITESPACE.sub(" ", _HTML_TAG.sub("", value or "")).strip()


def truncate_words(value: str, max_words: int) -> str:
    words = value.split()
    return " ".join(words[:max_words])


def tokenize(value: str, min_length: int = 3) -> list[str]:
    """Lowercase, drop punctuation and stop words, keep tokens >= min_length."""
    text = _NON_WORD.sub(" ", (value or "").lower())
    return [
        token
        for token in text.split()
        if len(token) >= min_length and token not in STOP_WORDS
    ]


def extract_search_keywords(value: str, limit: int = 10) -> str:
    """Keyword form of a free-text query for providers without phrase search.

    Falls back to the first six raw words when every token is a stop word.
    """
    cleaned = clean_text(value)
    words = [
        word
        for word in _NON_WORD.sub(" ", cleaned).split()
        if len(word) > 2 and word.lower() not in STOP_WORDS
    ]
    if not words:
        return " ".join(cleaned.split()[:6])
    return " ".join(words[:limit])


def unique(values: Iterable[str]) -> list[str]:
    """Order-preserving, case-insensitive dedupe that drops blanks."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        normalized = _WHITESPACE.sub(" ", value or "").strip()
        key = normalized.lower()
        if not normalized or key in seen:
            continue
        seen.add(key)
        result.append(normalized)
    return result
