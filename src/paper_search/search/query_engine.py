"""Hybrid exact/fuzzy query engine.

Documents are placed by the first tier that matches them and never re-scored:

- Tier 0: the phrase occurs in the title (score 0)
- Tier 1: the phrase occurs in the content (score 10)
- Tier 2: fuzzy ranking over inverted-index candidates (score 50 and above)

Results are ordered by score, then by literal match count (descending), then
by case-insensitive title.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
import math
from typing import TYPE_CHECKING

from paper_search.domain.model import Document, SearchResult
from paper_search.observability import SEARCH_LATENCY, create_span, track_latency
from paper_search.search.analyzers import tokenize
from paper_search.search.fuzzy import FuzzyHit, FuzzyRanker, IncrementalFuzzyRanker
from paper_search.search.inverted_index import InvertedIndex
from paper_search.search.phrase import count_occurrences, normalize_phrase
from paper_search.search.snippet import centered_excerpt, excerpt_for_query


if TYPE_CHECKING:
    from paper_search.config import Settings

logger = logging.getLogger(__name__)

TITLE_PHRASE_SCORE = 0
CONTENT_PHRASE_SCORE = 10
FUZZY_SCORE_OFFSET = 50


def fuzzy_result_score(dissimilarity: float) -> int:
    """Map a fuzzy dissimilarity onto the tier-2 score range (half-up rounding)."""
    return math.floor(dissimilarity * 100 + 0.5) + FUZZY_SCORE_OFFSET


class QueryEngine:
    """Answers ranked queries against the live state of one search index."""

    def __init__(
        self,
        documents: Mapping[str, Document],
        inverted_index: InvertedIndex,
        fuzzy_ranker: FuzzyRanker,
        settings: Settings,
    ) -> None:
        self._documents = documents
        self._inverted_index = inverted_index
        self._fuzzy_ranker = fuzzy_ranker
        self.settings = settings

    def search(self, query: str) -> list[SearchResult]:
        """Return every matching document, best first.

        The view is whatever has been indexed at call time; pagination is
        left to the caller.
        """
        query = query.strip()
        if not query:
            return []

        with create_span("search.query", attributes={"search.query_length": len(query)}) as span:
            with track_latency(SEARCH_LATENCY):
                phrase = normalize_phrase(query)
                # Snapshot so documents indexed mid-query cannot appear in one tier only
                documents = list(self._documents.values())

                hits: dict[str, SearchResult] = {}
                self._score_title_phrase(documents, phrase, hits)
                self._score_content_phrase(documents, phrase, hits)
                path = self._score_fuzzy(documents, query, hits)

                results = sorted(hits.values(), key=SearchResult.sort_key)

            span.set_attribute("search.result_count", len(results))
            span.set_attribute("search.tier_path", path)

        logger.debug("Query %r matched %d of %d documents via %s", query, len(results), len(documents), path)
        return results

    def _score_title_phrase(self, documents: list[Document], phrase: str, hits: dict[str, SearchResult]) -> None:
        for document in documents:
            title_lower = document.title.lower()
            if phrase in title_lower:
                hits[document.id] = SearchResult(
                    id=document.id,
                    title=document.title,
                    excerpt=document.title,
                    score=TITLE_PHRASE_SCORE,
                    matches=count_occurrences(title_lower, phrase),
                )

    def _score_content_phrase(self, documents: list[Document], phrase: str, hits: dict[str, SearchResult]) -> None:
        for document in documents:
            if document.id in hits:
                continue
            content_lower = document.content.lower()
            position = content_lower.find(phrase)
            if position == -1:
                continue
            hits[document.id] = SearchResult(
                id=document.id,
                title=document.title,
                excerpt=centered_excerpt(document.content, position, self.settings.excerpt_length),
                score=CONTENT_PHRASE_SCORE,
                matches=count_occurrences(content_lower, phrase),
            )

    def _score_fuzzy(self, documents: list[Document], query: str, hits: dict[str, SearchResult]) -> str:
        """Add tier-2 hits and return which fuzzy index answered."""
        tokens = tokenize(query)
        known_ids = {document.id for document in documents}
        if tokens:
            candidate_ids = self._inverted_index.candidates(tokens) & known_ids
        else:
            candidate_ids = set(known_ids)
        candidate_ids.difference_update(hits)

        if not candidate_ids:
            return "empty"

        if len(candidate_ids) <= self.settings.candidate_threshold:
            path = "scoped"
            scoped = IncrementalFuzzyRanker(
                (document for document in documents if document.id in candidate_ids),
                threshold=self.settings.candidate_fuzzy_threshold,
                title_weight=self.settings.title_weight,
                content_weight=self.settings.content_weight,
            )
            fuzzy_hits = scoped.search(query, limit=self.settings.fuzzy_limit)
        else:
            # The session-wide index is not restricted to the candidates, so hits
            # outside the token intersection can surface here
            path = "global"
            fuzzy_hits = self._fuzzy_ranker.search(query, limit=self.settings.fuzzy_limit)

        for hit in fuzzy_hits:
            if hit.document.id in hits or hit.document.id not in known_ids:
                continue
            hits[hit.document.id] = self._fuzzy_result(hit, query)
        return path

    def _fuzzy_result(self, hit: FuzzyHit, query: str) -> SearchResult:
        document = hit.document
        return SearchResult(
            id=document.id,
            title=document.title,
            excerpt=excerpt_for_query(
                document.content,
                query,
                length=self.settings.excerpt_length,
                lead_length=self.settings.lead_excerpt_length,
            ),
            score=fuzzy_result_score(hit.score),
            matches=0,
        )
