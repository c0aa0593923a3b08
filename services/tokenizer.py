"""Text normalization shared by index build and query time."""

from __future__ import annotations

import re
from typing import List

__all__ = ["MIN_TOKEN_LENGTH", "normalize", "tokenize"]

MIN_TOKEN_LENGTH = 2

_PUNCTUATION_RE = re.compile(r"[^\w\s]|_", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    """Lower-case ``text`` and collapse runs of whitespace."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text.lower()).strip()


def tokenize(text: str | None) -> List[str]:
    """Split ``text`` into comparable terms.

    Punctuation is replaced by spaces, so ``"flare-ups"`` yields ``["flare", "ups"]``.
    Tokens shorter than :data:`MIN_TOKEN_LENGTH` are dropped. Order and
    duplicates are preserved.
    """
    if not text:
        return []
    cleaned = _PUNCTUATION_RE.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]
