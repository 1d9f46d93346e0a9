"""Tests for engine configuration: defaults, sanitizing and loading."""

import json
import math
from pathlib import Path

import pytest

from nommatch.config import (
    Algorithm,
    CascadeConfig,
    EngineConfig,
    cascade_stages,
    config_from_dict,
    config_to_dict,
    effective_threshold,
    load_config,
    relaxed_similarity_floor,
    sanitize,
)


def test_defaults():
    config = EngineConfig()
    assert config.enabled
    assert config.confidence_threshold == 0.3
    assert config.max_suggestions == 5
    assert config.algorithm == Algorithm.BALANCED
    assert config.similarity_weight == 0.6
    assert "м3" in config.ignored_terms
    assert config.cascade.min_results == 60


class TestSanitize:
    def test_clamps_unit_values(self):
        config = sanitize(EngineConfig(confidence_threshold=1.5, similarity_weight=-0.2))
        assert config.confidence_threshold == 1.0
        assert config.similarity_weight == 0.0

    def test_nan_falls_back_to_default(self):
        assert sanitize(EngineConfig(keyword_bonus=math.nan)).keyword_bonus == 0.3

    def test_non_numeric_falls_back_to_default(self):
        assert sanitize(EngineConfig(prefix_bonus="lots")).prefix_bonus == 0.25

    def test_counts_at_least_one(self):
        config = sanitize(EngineConfig(max_suggestions=0, min_word_length=-3))
        assert config.max_suggestions == 1
        assert config.min_word_length == 1

    def test_unknown_algorithm(self):
        assert sanitize(EngineConfig(algorithm="turbo")).algorithm == Algorithm.BALANCED

    def test_algorithm_from_string(self):
        assert sanitize(EngineConfig(algorithm="STRICT")).algorithm == Algorithm.STRICT

    def test_ignored_terms_coerced(self):
        assert sanitize(EngineConfig(ignored_terms="шт")).ignored_terms == ("шт",)
        assert sanitize(EngineConfig(ignored_terms=None)).ignored_terms == ()

    def test_non_list_ignored_terms_dropped(self):
        assert sanitize(EngineConfig(ignored_terms=5)).ignored_terms == ()
        assert sanitize(EngineConfig(ignored_terms={"шт": 1})).ignored_terms == ()

    @pytest.mark.parametrize("value, expected", [
        ("false", False),
        ("False", False),
        ("0", False),
        ("no", False),
        ("yes", True),
        ("on", True),
        (0, False),
        (1, True),
        ("maybe", True),
        (None, True),
    ])
    def test_enabled_coerced(self, value, expected):
        assert sanitize(EngineConfig(enabled=value)).enabled is expected

    def test_malformed_section_falls_back_to_defaults(self):
        config = sanitize(EngineConfig(runtime="fast", cascade=None))
        assert config.runtime == EngineConfig().runtime
        assert config.cascade == EngineConfig().cascade

    def test_does_not_mutate_input(self):
        original = EngineConfig(confidence_threshold=2.0)
        sanitize(original)
        assert original.confidence_threshold == 2.0

    def test_valid_config_unchanged(self):
        assert sanitize(EngineConfig()) == EngineConfig()


class TestAlgorithmScaling:
    def test_balanced(self):
        config = EngineConfig(confidence_threshold=0.4)
        assert effective_threshold(config) == 0.4
        assert cascade_stages(config) == (1, 2, 3, 4)

    def test_strict(self):
        config = EngineConfig(confidence_threshold=0.4, algorithm=Algorithm.STRICT)
        assert effective_threshold(config) == pytest.approx(0.5)
        assert cascade_stages(config) == (1, 2, 3)

    def test_strict_capped_at_one(self):
        config = EngineConfig(confidence_threshold=0.95, algorithm=Algorithm.STRICT)
        assert effective_threshold(config) == 1.0

    def test_fuzzy(self):
        config = EngineConfig(confidence_threshold=0.4, algorithm=Algorithm.FUZZY)
        assert effective_threshold(config) == pytest.approx(0.3)
        assert cascade_stages(config) == (1, 2, 3, 4)
        assert relaxed_similarity_floor(config) == pytest.approx(0.375)


class TestConfigFromDict:
    def test_camel_case_partial(self):
        config = config_from_dict({
            "confidenceThreshold": 0.5,
            "maxSuggestions": 10,
            "algorithm": "strict",
            "ignoredTerms": ["шт"],
            "cascade": {"minResults": 5},
            "somethingElse": True,
        })
        assert config.confidence_threshold == 0.5
        assert config.max_suggestions == 10
        assert config.algorithm == Algorithm.STRICT
        assert config.ignored_terms == ("шт",)
        assert config.cascade == CascadeConfig(min_results=5)
        assert config.similarity_weight == 0.6

    def test_snake_case(self):
        assert config_from_dict({"similarity_weight": 0.8}).similarity_weight == 0.8

    def test_bad_values_sanitized(self):
        assert config_from_dict({"confidenceThreshold": 7}).confidence_threshold == 1.0

    def test_non_list_ignored_terms(self):
        assert config_from_dict({"ignoredTerms": 5}).ignored_terms == ()
        assert config_from_dict({"ignoredTerms": ["м3", "шт"]}).ignored_terms == ("м3", "шт")

    def test_string_enabled(self):
        assert config_from_dict({"enabled": "false"}).enabled is False
        assert config_from_dict({"enabled": "true"}).enabled is True

    def test_round_trip(self):
        config = EngineConfig(algorithm=Algorithm.FUZZY, max_suggestions=7)
        assert config_from_dict(config_to_dict(config)) == config


class TestLoadConfig:
    def test_missing_file(self, tmp_path: Path):
        assert load_config(tmp_path / "missing.json") == EngineConfig()

    def test_broken_file(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{oops", encoding="utf-8")
        assert load_config(path) == EngineConfig()

    def test_not_an_object(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config(path) == EngineConfig()

    def test_loads_values(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"enabled": False, "prefixBonus": 0.1}), encoding="utf-8")
        config = load_config(path)
        assert not config.enabled
        assert config.prefix_bonus == 0.1
