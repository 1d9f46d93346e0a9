"""Tests for merging, thresholding and ranking strategy outputs."""

import math

from nommatch.config import Algorithm, EngineConfig
from nommatch.ranking import merge, rank, validate_results
from nommatch.types import MatchDetails, MatchResult, MatchType


def _r(id: str, confidence: float, name: str | None = None, match_type: MatchType = MatchType.PARTIAL) -> MatchResult:
    return MatchResult(
        id=id,
        name=name or f"item {id}",
        confidence=confidence,
        match_details=MatchDetails(match_type=match_type),
    )


class TestValidateResults:
    def test_valid(self):
        assert validate_results([_r("1", 0.0), _r("2", 1.0)])
        assert validate_results([])

    def test_not_a_list(self):
        assert not validate_results(None)
        assert not validate_results((_r("1", 0.5),))

    def test_bad_confidence(self):
        assert not validate_results([_r("1", 1.5)])
        assert not validate_results([_r("1", -0.1)])
        assert not validate_results([_r("1", math.nan)])
        assert not validate_results([_r("1", True)])

    def test_wrong_item_type(self):
        assert not validate_results([{"id": "1", "confidence": 0.5}])


def test_merge_keeps_highest_confidence():
    merged = merge([[_r("1", 0.4)], [_r("1", 0.9)], [_r("2", 0.5)]])
    by_id = {r.id: r.confidence for r in merged}
    assert by_id == {"1": 0.9, "2": 0.5}


def test_merge_tie_prefers_stronger_match_type():
    merged = merge([[_r("1", 0.7, match_type=MatchType.PARTIAL)], [_r("1", 0.7, match_type=MatchType.BRAND)]])
    assert merged[0].match_type == MatchType.BRAND


class TestRank:
    def test_sorted_descending(self):
        ranked = rank([[_r("1", 0.4), _r("2", 0.9)], [_r("3", 0.6)]], EngineConfig())
        assert [r.id for r in ranked] == ["2", "3", "1"]

    def test_threshold_filters(self):
        ranked = rank([[_r("1", 0.29), _r("2", 0.3)]], EngineConfig(confidence_threshold=0.3))
        assert [r.id for r in ranked] == ["2"]

    def test_strict_raises_threshold(self):
        config = EngineConfig(confidence_threshold=0.4, algorithm=Algorithm.STRICT)
        assert [r.id for r in rank([[_r("1", 0.45), _r("2", 0.55)]], config)] == ["2"]

    def test_fuzzy_lowers_threshold(self):
        config = EngineConfig(confidence_threshold=0.4, algorithm=Algorithm.FUZZY)
        assert [r.id for r in rank([[_r("1", 0.35)]], config)] == ["1"]

    def test_cap(self):
        results = [_r(str(i), 0.5 + i / 100) for i in range(10)]
        ranked = rank([results], EngineConfig(max_suggestions=3))
        assert [r.id for r in ranked] == ["9", "8", "7"]

    def test_tie_break_order(self):
        ranked = rank(
            [[
                _r("3", 0.8, name="Бетон", match_type=MatchType.PARTIAL),
                _r("2", 0.8, name="Арматура", match_type=MatchType.PARTIAL),
                _r("1", 0.8, name="Кирпич", match_type=MatchType.EXACT),
                _r("0", 0.8, name="Арматура", match_type=MatchType.PARTIAL),
            ]],
            EngineConfig(),
        )
        assert [r.id for r in ranked] == ["1", "0", "2", "3"]

    def test_disabled(self):
        assert rank([[_r("1", 0.9)]], EngineConfig(enabled=False)) == []

    def test_invalid_strategy_list_dropped(self):
        ranked = rank([[_r("1", 1.2)], [_r("2", 0.8)]], EngineConfig())
        assert [r.id for r in ranked] == ["2"]

    def test_no_duplicate_ids(self):
        ranked = rank([[_r("1", 0.5), _r("2", 0.6)], [_r("1", 0.7)]], EngineConfig())
        ids = [r.id for r in ranked]
        assert len(ids) == len(set(ids))
        assert ranked[0].id == "1"
