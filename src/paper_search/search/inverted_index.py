"""In-memory inverted index mapping tokens to document identifiers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence


class InvertedIndex:
    """Token -> posting set mapping that only ever grows."""

    def __init__(self) -> None:
        self._postings: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._postings)

    def __contains__(self, token: object) -> bool:
        return token in self._postings

    def insert(self, token: str, doc_id: str) -> None:
        """Record that ``token`` occurs in ``doc_id``. Idempotent."""
        postings = self._postings.get(token)
        if postings is None:
            postings = set()
            self._postings[token] = postings
        postings.add(doc_id)

    def add_document(self, doc_id: str, tokens: Iterable[str]) -> None:
        for token in tokens:
            self.insert(token, doc_id)

    def postings(self, token: str) -> frozenset[str]:
        return frozenset(self._postings.get(token, ()))

    def candidates(self, tokens: Sequence[str]) -> set[str]:
        """Return the documents containing every token.

        Raises:
            ValueError: If ``tokens`` is empty. Callers decide what an empty
                token list should match.
        """
        if not tokens:
            raise ValueError("candidates() needs at least one token")

        # Smallest posting sets first keeps the intersection cheap
        posting_sets: list[set[str]] = []
        for token in dict.fromkeys(tokens):
            postings = self._postings.get(token)
            if not postings:
                return set()
            posting_sets.append(postings)

        posting_sets.sort(key=len)
        result = set(posting_sets[0])
        for postings in posting_sets[1:]:
            result.intersection_update(postings)
            if not result:
                break
        return result
