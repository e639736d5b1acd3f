"""Unit tests for tiered query evaluation and ranking."""

from unittest.mock import MagicMock

import pytest

from paper_search.search.fuzzy import IncrementalFuzzyRanker
from paper_search.search.query_engine import (
    CONTENT_PHRASE_SCORE,
    FUZZY_SCORE_OFFSET,
    TITLE_PHRASE_SCORE,
    QueryEngine,
    fuzzy_result_score,
)
from tests.support import build_engine, doc, make_settings


BONE_CORPUS = [
    doc("Density.txt", "A bone loss study in orbit."),
    doc("Tissue.txt", "bone tissue loss"),
    doc("Bone lss.txt"),
]


@pytest.mark.unit
class TestPhraseTiers:
    """Tests for the literal title and content tiers."""

    def test_title_matches_score_zero_and_tie_break_on_title(self):
        engine, _ = build_engine(
            [
                doc("mars-dust-properties.txt", "Dust grains."),
                doc("Mars Soil.txt", "Regolith samples."),
            ]
        )
        results = engine.search("mars")
        assert [result.id for result in results] == ["Mars Soil.txt", "mars-dust-properties.txt"]
        assert all(result.score == TITLE_PHRASE_SCORE for result in results)
        assert results[0].excerpt == "Mars Soil"

    def test_quoted_phrase_in_content_scores_ten(self):
        content = "Effects of zero gravity on bone density"
        engine, _ = build_engine([doc("Orbit.txt", content)])
        [result] = engine.search('"zero gravity"')
        assert result.score == CONTENT_PHRASE_SCORE
        assert result.matches == 1
        assert result.excerpt == content

    def test_document_is_placed_by_first_matching_tier_only(self):
        engine, _ = build_engine([doc("Mars Soil.txt", "mars mars mars")])
        results = engine.search("mars")
        assert len(results) == 1
        assert results[0].score == TITLE_PHRASE_SCORE
        assert results[0].matches == 1

    def test_more_literal_matches_rank_first_within_a_tier(self):
        engine, _ = build_engine([doc("Alpha.txt", "mars"), doc("Beta.txt", "mars, mars and mars")])
        results = engine.search("mars")
        assert [result.id for result in results] == ["Beta.txt", "Alpha.txt"]
        assert [result.matches for result in results] == [3, 1]

    def test_content_excerpt_is_centred_on_match(self):
        content = "x" * 300 + " zero gravity " + "y" * 300
        engine, _ = build_engine([doc("Long.txt", content)])
        [result] = engine.search("zero gravity")
        assert "zero gravity" in result.excerpt
        assert result.excerpt.startswith("…")
        assert result.excerpt.endswith("…")


@pytest.mark.unit
class TestFuzzyTier:
    """Tests for candidate-restricted fuzzy ranking."""

    def test_empty_query_touches_no_index(self):
        documents = MagicMock()
        inverted_index = MagicMock()
        fuzzy_ranker = MagicMock()
        engine = QueryEngine(documents, inverted_index, fuzzy_ranker, make_settings())

        assert engine.search("") == []
        assert engine.search("   ") == []
        documents.values.assert_not_called()
        inverted_index.candidates.assert_not_called()
        fuzzy_ranker.search.assert_not_called()

    def test_punctuation_query_falls_back_to_all_documents(self):
        engine, _ = build_engine([doc("Mystery.txt", "Why?? Nobody knows."), doc("Plain.txt", "nothing here")])
        results = engine.search("???")
        assert [result.id for result in results] == ["Mystery.txt"]
        assert results[0].score >= FUZZY_SCORE_OFFSET
        assert results[0].matches == 0

    def test_scoped_index_only_ranks_token_candidates(self):
        engine, _ = build_engine(BONE_CORPUS)
        results = engine.search("bone loss")
        assert [result.id for result in results] == ["Density.txt", "Tissue.txt"]
        assert results[0].score == CONTENT_PHRASE_SCORE
        assert results[1].score > FUZZY_SCORE_OFFSET

    def test_global_index_can_surface_non_candidates(self):
        engine, _ = build_engine(BONE_CORPUS, candidate_threshold=0)
        results = engine.search("bone loss")
        assert [result.id for result in results] == ["Density.txt", "Bone lss.txt", "Tissue.txt"]

    def test_no_candidates_means_no_fuzzy_results(self):
        engine, _ = build_engine(BONE_CORPUS)
        assert engine.search("bone venus") == []

    def test_typo_without_indexed_tokens_finds_nothing(self):
        engine, _ = build_engine([doc("Zero Gravity.txt", "weightlessness and gravity")])
        # "gravty" is not a token of any document, so the candidate set is empty
        assert engine.search("gravty") == []

    def test_quoted_fuzzy_match_uses_leading_excerpt(self):
        content = "bone  loss " + "x" * 300
        engine, _ = build_engine([doc("Spaced.txt", content)])
        [result] = engine.search('"bone loss"')
        assert result.score >= FUZZY_SCORE_OFFSET
        assert result.excerpt == content[:250] + "…"

    def test_results_are_sorted_by_score(self):
        engine, _ = build_engine(BONE_CORPUS, candidate_threshold=0)
        scores = [result.score for result in engine.search("bone loss")]
        assert scores == sorted(scores)


@pytest.mark.unit
class TestFuzzyResultScore:
    """Tests for the tier-2 score mapping."""

    def test_perfect_match_maps_to_offset(self):
        assert fuzzy_result_score(0.0) == FUZZY_SCORE_OFFSET

    def test_rounds_half_up(self):
        assert fuzzy_result_score(0.125) == 63
        assert fuzzy_result_score(0.124) == 62

    @pytest.mark.parametrize(
        ("document", "expected"),
        [
            (doc("Gravity.txt", "55555 000000"), 51),
            (doc("Bone.txt", "gravity"), 63),
            (doc("Gravity.txt", "gravity"), 50),
        ],
    )
    def test_perfect_fuzzy_hits_keep_the_floor_offset(self, document, expected):
        # Exact field matches are floored before weighting, so only a match on both fields reaches the offset
        [hit] = IncrementalFuzzyRanker([document]).search("gravity")
        assert fuzzy_result_score(hit.score) == expected
