"""Excerpt extraction and match highlighting for result previews.

Excerpts are fixed-width character windows: a window centred on the first
literal match, or the leading characters of the document when the query
only matched approximately. Truncated edges are marked with an ellipsis.
"""

from __future__ import annotations

from collections.abc import Sequence
import html
import re

from paper_search.search.analyzers import tokenize
from paper_search.search.phrase import is_quoted


ELLIPSIS = "…"


def centered_excerpt(text: str, position: int, length: int = 220) -> str:
    """Return a ``length``-character window centred on ``position``.

    Args:
        text: The full text to extract from.
        position: Index of the first character of the match.
        length: Width of the window.

    Returns:
        The window, prefixed and/or suffixed with an ellipsis when it does
        not reach the start or end of the text.
    """
    if not text:
        return ""
    start = max(0, position - length // 2)
    end = min(len(text), start + length)
    prefix = ELLIPSIS if start > 0 else ""
    suffix = ELLIPSIS if start + length < len(text) else ""
    return f"{prefix}{text[start:end]}{suffix}"


def leading_excerpt(text: str, length: int = 250) -> str:
    """Return the first ``length`` characters, with an ellipsis if truncated."""
    if len(text) > length:
        return text[:length] + ELLIPSIS
    return text


def excerpt_for_query(text: str, query: str, length: int = 220, lead_length: int = 250) -> str:
    """Build an excerpt around the first case-insensitive occurrence of ``query``."""
    position = text.lower().find(query.lower()) if query else -1
    if position == -1:
        return leading_excerpt(text, lead_length)
    return centered_excerpt(text, position, length)


def _mark_pattern(terms: Sequence[str]) -> re.Pattern[str] | None:
    unique = [term for term in dict.fromkeys(terms) if term]
    if not unique:
        return None
    # Longer alternatives first so a phrase wins over its own tokens
    unique.sort(key=len, reverse=True)
    return re.compile("|".join(re.escape(term) for term in unique), re.IGNORECASE)


def highlight(
    text: str,
    query: str,
    open_tag: str = "<mark>",
    close_tag: str = "</mark>",
    *,
    escape: bool = True,
) -> str:
    """HTML-escape ``text`` and wrap query matches in highlight tags.

    The phrase (the unquoted query) is highlighted wherever it occurs. Query
    tokens are highlighted too, except those already contained in the phrase
    when the phrase itself is present in the text.

    Args:
        text: Title or excerpt to render.
        query: The raw query string.
        open_tag: Markup inserted before each match.
        close_tag: Markup inserted after each match.
        escape: HTML-escape the text; disable for plain-text output.

    Returns:
        Escaped HTML with highlighted matches.
    """

    def render(fragment: str) -> str:
        return html.escape(fragment, quote=True) if escape else fragment

    if not text or not query:
        return render(text or "")

    phrase = query[1:-1] if is_quoted(query) else query
    tokens = tokenize(query)
    if phrase and phrase.lower() in text.lower():
        phrase_lower = phrase.lower()
        terms = [phrase, *(token for token in tokens if token not in phrase_lower)]
    else:
        terms = tokens

    pattern = _mark_pattern(terms)
    if pattern is None:
        return render(text)

    pieces: list[str] = []
    cursor = 0
    for match in pattern.finditer(text):
        pieces.append(render(text[cursor : match.start()]))
        pieces.append(f"{open_tag}{render(match.group(0))}{close_tag}")
        cursor = match.end()
    pieces.append(render(text[cursor:]))
    return "".join(pieces)
