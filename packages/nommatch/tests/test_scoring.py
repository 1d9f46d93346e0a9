"""Tests for edit-distance similarity and the similarity strategy."""

import math

import pytest

from nommatch.config import EngineConfig
from nommatch.scoring import clamp, match_by_similarity, similarity, weighted_similarity
from nommatch.types import Candidate, MatchType, Strategy


def test_similarity_identical_after_normalization():
    assert similarity("Пеноплэкс", "  пеноплэкс ") == 1.0


def test_similarity_both_empty():
    assert similarity("", "") == 1.0


def test_similarity_disjoint():
    assert similarity("abc", "xyz") == 0.0


def test_similarity_single_edit():
    # one substitution over eleven characters
    assert similarity("цемент м500", "цемент м400") == pytest.approx(1 - 1 / 11)


def test_weighted_similarity_scales_by_weight():
    config = EngineConfig(similarity_weight=0.5)
    assert weighted_similarity("цемент м500", "цемент м400", config) == pytest.approx(
        0.5 * (1 - 1 / 11)
    )


def test_clamp():
    assert clamp(1.7) == 1.0
    assert clamp(-0.2) == 0.0
    assert clamp(math.nan) == 0.0


class TestMatchBySimilarity:
    def test_exact_name_is_exact_with_full_confidence(self):
        results = match_by_similarity(
            "Пеноплэкс 50мм", [Candidate("1", "ПЕНОПЛЭКС 50мм")], EngineConfig()
        )
        assert len(results) == 1
        assert results[0].confidence == pytest.approx(1.0)
        assert results[0].match_type == MatchType.EXACT
        assert results[0].strategy == Strategy.SIMILARITY

    def test_partial_match(self):
        results = match_by_similarity(
            "пеноплэкс", [Candidate("1", "Пеноплэкс 50мм")], EngineConfig()
        )
        assert results[0].match_type == MatchType.PARTIAL
        assert 0.0 < results[0].confidence < 1.0

    def test_empty_names_skipped(self):
        results = match_by_similarity(
            "бетон", [Candidate("1", ""), Candidate("2", "  ,, ")], EngineConfig()
        )
        assert results == []

    def test_empty_query(self):
        assert match_by_similarity("", [Candidate("1", "бетон")], EngineConfig()) == []

    def test_closer_name_scores_higher(self):
        results = match_by_similarity(
            "цемент м500",
            [Candidate("1", "Цемент М500"), Candidate("2", "Цемент М400 Д20")],
            EngineConfig(),
        )
        by_id = {r.id: r.confidence for r in results}
        assert by_id["1"] > by_id["2"]
