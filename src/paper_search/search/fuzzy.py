"""Approximate title/content ranking for typo-tolerant search.

Each document is scored per field with rapidfuzz's partial alignment, so a
query matches when it closely resembles some stretch of the title or body.
Field dissimilarities ``d`` (0 = identical, 1 = unrelated) that fall within
the threshold are combined as ``prod(d ** weight)`` with normalised weights,
which favours title matches over body matches of the same quality.

Smart Defaults:
- Title weight 0.7, content weight 0.3
- Queries shorter than 2 characters never match approximately
- Lower scores are better
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

from rapidfuzz import fuzz

from paper_search.domain.model import Document


MIN_QUERY_LENGTH = 2
# Keeps perfect matches from collapsing the product to zero
_PERFECT_MATCH_FLOOR = 1e-3


@dataclass(frozen=True, slots=True)
class FuzzyHit:
    """A document with its normalised dissimilarity (higher is worse)."""

    document: Document
    score: float


class FuzzyRanker(Protocol):
    """Capability implemented by fuzzy rankers."""

    supports_incremental: bool

    def __len__(self) -> int:  # pragma: no cover - interface definition
        ...

    def add(self, document: Document) -> None:  # pragma: no cover - interface definition
        ...

    def rebuild(self, documents: Iterable[Document]) -> None:  # pragma: no cover - interface definition
        ...

    def search(self, query: str, limit: int | None = None) -> list[FuzzyHit]:  # pragma: no cover
        ...


def field_dissimilarity(query: str, text: str) -> float:
    """Return how poorly ``query`` matches the best-aligned part of ``text``.

    Both arguments are expected lowercased. Fields shorter than the query are
    compared whole, so a short title cannot look like a perfect match for a
    long query.

    >>> field_dissimilarity("gravity", "zero gravity")
    0.0
    >>> field_dissimilarity("abc", "")
    1.0
    """
    if not text or not query:
        return 1.0
    if len(text) <= len(query):
        similarity = fuzz.ratio(query, text)
    else:
        similarity = fuzz.partial_ratio(query, text)
    return 1.0 - similarity / 100.0


@dataclass(frozen=True, slots=True)
class _Entry:
    document: Document
    title: str
    content: str


class IncrementalFuzzyRanker:
    """Fuzzy ranker that accepts documents one at a time."""

    supports_incremental = True

    def __init__(
        self,
        documents: Iterable[Document] = (),
        *,
        threshold: float = 0.35,
        title_weight: float = 0.7,
        content_weight: float = 0.3,
    ) -> None:
        total_weight = title_weight + content_weight
        if total_weight <= 0:
            raise ValueError("Field weights must sum to a positive value")
        self.threshold = threshold
        self.title_weight = title_weight / total_weight
        self.content_weight = content_weight / total_weight
        self._entries: list[_Entry] = []
        for document in documents:
            self._append(document)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, document: Document) -> None:
        self._append(document)

    def rebuild(self, documents: Iterable[Document]) -> None:
        self._entries = []
        for document in documents:
            self._append(document)

    def _append(self, document: Document) -> None:
        self._entries.append(_Entry(document, document.title.lower(), document.content.lower()))

    def score(self, query: str, entry: _Entry) -> float | None:
        """Return the combined score for one entry, or None when no field matches."""
        combined = 1.0
        matched = False
        for text, weight in ((entry.title, self.title_weight), (entry.content, self.content_weight)):
            dissimilarity = field_dissimilarity(query, text)
            if dissimilarity <= self.threshold:
                matched = True
                combined *= max(dissimilarity, _PERFECT_MATCH_FLOOR) ** weight
        return combined if matched else None

    def search(self, query: str, limit: int | None = None) -> list[FuzzyHit]:
        """Rank documents approximately matching ``query``.

        Args:
            query: Raw query text.
            limit: Maximum number of hits, or None for all of them.

        Returns:
            Hits sorted best first (lowest score), ties broken by document id.
        """
        needle = query.strip().lower()
        if len(needle) < MIN_QUERY_LENGTH or limit == 0:
            return []

        hits: list[FuzzyHit] = []
        for entry in self._entries:
            combined = self.score(needle, entry)
            if combined is not None:
                hits.append(FuzzyHit(entry.document, combined))

        hits.sort(key=lambda hit: (hit.score, hit.document.id))
        return hits if limit is None else hits[:limit]


class RebuildingFuzzyRanker(IncrementalFuzzyRanker):
    """Fuzzy ranker without incremental adds: every add rebuilds from the corpus."""

    supports_incremental = False

    def __init__(
        self,
        corpus: Callable[[], Iterable[Document]],
        *,
        threshold: float = 0.35,
        title_weight: float = 0.7,
        content_weight: float = 0.3,
    ) -> None:
        super().__init__(threshold=threshold, title_weight=title_weight, content_weight=content_weight)
        self._corpus = corpus

    def add(self, document: Document) -> None:
        # The corpus supplier already holds ``document``
        self.rebuild(self._corpus())


def create_fuzzy_ranker(
    strategy: str,
    corpus: Callable[[], Iterable[Document]],
    *,
    threshold: float = 0.35,
    title_weight: float = 0.7,
    content_weight: float = 0.3,
) -> IncrementalFuzzyRanker:
    """Build the session-wide ranker for the configured strategy.

    Args:
        strategy: "incremental" or "rebuild".
        corpus: Supplier of the full current document table.
        threshold: Maximum field dissimilarity that still counts as a match.
        title_weight: Relative weight of title matches.
        content_weight: Relative weight of content matches.
    """
    if strategy == "incremental":
        return IncrementalFuzzyRanker(threshold=threshold, title_weight=title_weight, content_weight=content_weight)
    if strategy == "rebuild":
        return RebuildingFuzzyRanker(
            corpus, threshold=threshold, title_weight=title_weight, content_weight=content_weight
        )
    raise ValueError(f"Unknown fuzzy strategy: {strategy!r}")
