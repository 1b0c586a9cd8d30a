"""Lightweight lexical similarity used by text search.

Scores combine keyword containment with character-bigram Jaccard similarity.
Both work on code points, so CJK text is handled the same way as Latin text.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence, Set

__all__ = [
    "char_bigrams",
    "jaccard_bigrams",
    "extract_keywords",
    "keyword_overlap",
]

_SEPARATORS = (
    " \t\n,.?!()[]{}"
    "\u3002\uff0c\uff1f\uff01\u3001\uff1a\uff1b\u201c\u201d\uff08\uff09"
)
_SPLIT_RE = re.compile("[" + re.escape(_SEPARATORS) + "]+")
_MIN_KEYWORD_LEN = 2


def char_bigrams(text: str) -> frozenset[str]:
    """Return the set of adjacent two-character substrings of ``text``."""
    return frozenset(text[i : i + 2] for i in range(len(text) - 1))


def jaccard_bigrams(a: Set[str], b: Set[str]) -> float:
    """Jaccard similarity of two bigram sets; 0 when either set is empty."""
    if not a or not b:
        return 0.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    if union == 0:
        return 0.0
    return intersection / union


def extract_keywords(text: str) -> list[str]:
    """Split ``text`` on whitespace and punctuation into unique lower-case keywords.

    Fields shorter than two characters are dropped; first-seen order is kept.
    """
    seen: dict[str, None] = {}
    for field in _SPLIT_RE.split(text):
        if len(field) < _MIN_KEYWORD_LEN:
            continue
        seen.setdefault(field.lower(), None)
    return list(seen)


def keyword_overlap(keywords: Sequence[str] | Iterable[str], text: str) -> float:
    """Fraction of ``keywords`` that occur as substrings of ``text``."""
    words = list(keywords)
    if not words:
        return 0.0
    matched = sum(1 for word in words if word in text)
    return matched / len(words)