"""Tokenizer shared by indexing and query processing.

Index and query must normalize identically, otherwise inverted index
lookups miss. Tokens are lowercase runs of ``[a-z0-9]``; anything else,
including accented letters, separates tokens.
"""

from __future__ import annotations

import re


_SEPARATOR_PATTERN = re.compile(r"[^a-z0-9]+")


def tokenize(text: str) -> list[str]:
    """Split text into lowercase alphanumeric tokens, in order, with repeats.

    >>> tokenize("Effects of Zero-Gravity (2021)")
    ['effects', 'of', 'zero', 'gravity', '2021']
    """
    if not text:
        return []
    return [token for token in _SEPARATOR_PATTERN.split(text.lower()) if token]


def unique_tokens(*texts: str) -> set[str]:
    """Return the union of tokens across all given texts."""
    tokens: set[str] = set()
    for text in texts:
        tokens.update(tokenize(text))
    return tokens
