"""Exact-phrase helpers for the literal match tiers."""

from __future__ import annotations

import re


_QUOTED_PATTERN = re.compile(r'^"(.+)"$', re.DOTALL)


def is_quoted(query: str) -> bool:
    return bool(_QUOTED_PATTERN.match(query))


def normalize_phrase(query: str) -> str:
    """Return the case-folded phrase a query asks for.

    A query wrapped in double quotes contributes only its inner text.

    >>> normalize_phrase('"Zero Gravity"')
    'zero gravity'
    >>> normalize_phrase("Mars")
    'mars'
    """
    match = _QUOTED_PATTERN.match(query)
    phrase = match.group(1) if match else query
    return phrase.lower()


def count_occurrences(haystack: str, phrase: str) -> int:
    """Count non-overlapping occurrences of ``phrase`` in ``haystack``."""
    if not phrase:
        return 0
    return haystack.count(phrase)
