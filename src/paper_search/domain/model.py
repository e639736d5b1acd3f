"""Domain model for documents, search results and browse listings.

Value objects are immutable: a document is built once per manifest entry
and never edited, and search results are recomputed for every query.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import re
from typing import Any
from urllib.parse import unquote

from pydantic import BaseModel, ConfigDict, Field


_TEXT_EXTENSION = re.compile(r"\.txt$", re.IGNORECASE)
_WORD_SEPARATORS = re.compile(r"[-_]")
_YEAR_PATTERN = re.compile(r"(?:19|20)\d{2}")
_AUTHOR_LINE = re.compile(r"^\s*Authors?:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
# Only the top of a paper is searched for an Authors/Year header
HEADER_SCAN_LENGTH = 1200


def title_from_identifier(identifier: str) -> str:
    """Derive a display title from a manifest filename.

    >>> title_from_identifier("Mars Soil.txt")
    'Mars Soil'
    """
    return _TEXT_EXTENSION.sub("", identifier)


@dataclass(frozen=True, slots=True)
class Document:
    """A fetched paper keyed by its manifest filename."""

    id: str
    title: str
    content: str = ""

    @classmethod
    def from_identifier(cls, identifier: str, content: str) -> Document:
        return cls(id=identifier, title=title_from_identifier(identifier), content=content)


class SearchResult(BaseModel):
    """Value object for one ranked hit.

    ``score`` is lower-is-better: 0 for a title phrase match, 10 for a content
    phrase match, 50 and above for fuzzy matches. ``matches`` counts literal
    phrase occurrences and only breaks ties between equal scores.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    excerpt: str = ""
    score: int = Field(ge=0)
    matches: int = Field(default=0, ge=0)

    def sort_key(self) -> tuple[int, int, str, str]:
        return (self.score, -self.matches, self.title.casefold(), self.id)


def listing_title(identifier: str) -> str:
    """Derive the title shown when browsing the manifest.

    Filenames are percent-decoded and word separators become spaces.

    >>> listing_title("mars-dust_properties.txt")
    'mars dust properties'
    >>> listing_title("Mars%20Soil.txt")
    'Mars Soil'
    """
    return _WORD_SEPARATORS.sub(" ", title_from_identifier(unquote(identifier)))


def _as_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def _extract_year(value: Any) -> str | None:
    text = _as_text(value)
    if text is None:
        return None
    match = _YEAR_PATTERN.search(text)
    return match.group(0) if match else text


class PaperMetadata(BaseModel):
    """Best-effort bibliographic details for one paper."""

    model_config = ConfigDict(frozen=True)

    authors: str | None = None
    year: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.authors is None and self.year is None

    @classmethod
    def from_sidecar(cls, data: Mapping[str, Any]) -> PaperMetadata:
        """Read a ``<name>.json`` sidecar.

        ``authors`` may be a list or a string (``author`` is accepted too);
        the year comes from ``year``, ``published`` or ``date``, reduced to
        its four-digit year when one is present.
        """
        authors = data.get("authors")
        if isinstance(authors, list):
            authors = ", ".join(str(author) for author in authors)
        else:
            authors = authors or data.get("author")
        year = data.get("year") or data.get("published") or data.get("date")
        return cls(authors=_as_text(authors), year=_extract_year(year))

    @classmethod
    def from_text_header(cls, text: str) -> PaperMetadata:
        """Scan the top of a paper for an ``Authors:`` line and a four-digit year."""
        head = text[:HEADER_SCAN_LENGTH]
        author_match = _AUTHOR_LINE.search(head)
        year_match = _YEAR_PATTERN.search(head)
        return cls(
            authors=author_match.group(1).strip() if author_match else None,
            year=year_match.group(0) if year_match else None,
        )


class PaperListing(BaseModel):
    """One manifest entry as shown when browsing, with optional metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    authors: str | None = None
    year: str | None = None
