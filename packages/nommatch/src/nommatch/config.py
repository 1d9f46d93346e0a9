"""Configuration for the nommatch matching engine."""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

log = structlog.get_logger()


class Algorithm(str, Enum):
    STRICT = "strict"
    BALANCED = "balanced"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class CascadeConfig:
    min_results: int = 60
    token_overlap_threshold: float = 0.8
    relaxed_similarity: float = 0.5


@dataclass(frozen=True)
class AdaptiveConfig:
    base_points: float = 80.0
    article_bonus: float = 20.0
    size_bonus: float = 10.0
    brand_bonus: float = 8.0
    score_scale: float = 100.0


@dataclass(frozen=True)
class KeywordConfig:
    overlap_weight: float = 0.5
    # share of the score lost as the name grows longer than the query
    length_damping: float = 0.5


@dataclass(frozen=True)
class AlgorithmScaling:
    strict_threshold_factor: float = 1.25
    fuzzy_threshold_factor: float = 0.75


@dataclass(frozen=True)
class RuntimeConfig:
    cancel_check_interval: int = 256
    max_workers: int = 4
    fallback_confidence: float = 0.5
    fallback_limit: int = 5


DEFAULT_IGNORED_TERMS = ("м3", "м2", "кг", "шт", "п.м.", "компл.", "м.п.", "т")


@dataclass(frozen=True)
class EngineConfig:
    enabled: bool = True
    confidence_threshold: float = 0.3
    max_suggestions: int = 5
    algorithm: Algorithm = Algorithm.BALANCED
    keyword_bonus: float = 0.3
    exact_match_bonus: float = 0.2
    prefix_bonus: float = 0.25
    similarity_weight: float = 0.6
    min_word_length: int = 3
    ignored_terms: tuple[str, ...] = DEFAULT_IGNORED_TERMS
    cascade: CascadeConfig = field(default_factory=CascadeConfig)
    adaptive: AdaptiveConfig = field(default_factory=AdaptiveConfig)
    keyword: KeywordConfig = field(default_factory=KeywordConfig)
    scaling: AlgorithmScaling = field(default_factory=AlgorithmScaling)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)


_UNIT_FIELDS = (
    "confidence_threshold",
    "keyword_bonus",
    "exact_match_bonus",
    "prefix_bonus",
    "similarity_weight",
)


def _clamp_unit(name: str, value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if math.isnan(number):
        log.debug("config_value_clamped", field=name, value=value, clamped=default)
        return default
    clamped = min(1.0, max(0.0, number))
    if clamped != number:
        log.debug("config_value_clamped", field=name, value=value, clamped=clamped)
    return clamped


def _clamp_float(name: str, value: Any, minimum: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if math.isnan(number) or math.isinf(number):
        log.debug("config_value_clamped", field=name, value=value, clamped=default)
        return default
    if number < minimum:
        log.debug("config_value_clamped", field=name, value=value, clamped=minimum)
        return minimum
    return number


def _clamp_int(name: str, value: Any, minimum: int, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        log.debug("config_value_clamped", field=name, value=value, clamped=default)
        return default
    if number < minimum:
        log.debug("config_value_clamped", field=name, value=value, clamped=minimum)
        return minimum
    return number


def _coerce_algorithm(value: Any) -> Algorithm:
    if isinstance(value, Algorithm):
        return value
    try:
        return Algorithm(str(value).lower())
    except ValueError:
        log.debug("config_value_clamped", field="algorithm", value=value, clamped="balanced")
        return Algorithm.BALANCED


_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off", ""})


def _coerce_bool(name: str, value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    elif isinstance(value, (int, float)) and not math.isnan(value):
        return bool(value)
    log.debug("config_value_clamped", field=name, value=value, clamped=default)
    return default


def _coerce_terms(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    elif not isinstance(value, (list, tuple, set, frozenset)):
        log.debug("config_value_clamped", field="ignored_terms", value=value, clamped=[])
        return ()
    return tuple(str(t) for t in value if str(t).strip())


def _section(name: str, value: Any, cls: type) -> Any:
    if isinstance(value, cls):
        return value
    log.debug("config_value_clamped", field=name, value=value, clamped="defaults")
    return cls()


def sanitize(config: EngineConfig) -> EngineConfig:
    """Return a copy of config with every malformed value clamped to the nearest valid one.

    Never raises: a single bad setting must not break suggestion delivery.
    """
    defaults = EngineConfig()
    changes: dict[str, Any] = {
        name: _clamp_unit(name, getattr(config, name), getattr(defaults, name))
        for name in _UNIT_FIELDS
    }
    changes["enabled"] = _coerce_bool("enabled", config.enabled, defaults.enabled)
    changes["max_suggestions"] = _clamp_int(
        "max_suggestions", config.max_suggestions, 1, defaults.max_suggestions
    )
    changes["min_word_length"] = _clamp_int(
        "min_word_length", config.min_word_length, 1, defaults.min_word_length
    )
    changes["algorithm"] = _coerce_algorithm(config.algorithm)

    changes["ignored_terms"] = _coerce_terms(config.ignored_terms)

    cascade = _section("cascade", config.cascade, CascadeConfig)
    changes["cascade"] = replace(
        cascade,
        min_results=_clamp_int("cascade.min_results", cascade.min_results, 1, 60),
        token_overlap_threshold=_clamp_unit(
            "cascade.token_overlap_threshold", cascade.token_overlap_threshold, 0.8
        ),
        relaxed_similarity=_clamp_unit(
            "cascade.relaxed_similarity", cascade.relaxed_similarity, 0.5
        ),
    )
    runtime = _section("runtime", config.runtime, RuntimeConfig)
    changes["runtime"] = replace(
        runtime,
        cancel_check_interval=_clamp_int(
            "runtime.cancel_check_interval", runtime.cancel_check_interval, 1, 256
        ),
        max_workers=_clamp_int("runtime.max_workers", runtime.max_workers, 1, 4),
        fallback_confidence=_clamp_unit(
            "runtime.fallback_confidence", runtime.fallback_confidence, 0.5
        ),
        fallback_limit=_clamp_int("runtime.fallback_limit", runtime.fallback_limit, 1, 5),
    )
    adaptive = _section("adaptive", config.adaptive, AdaptiveConfig)
    adaptive_defaults = AdaptiveConfig()
    changes["adaptive"] = replace(
        adaptive,
        **{
            f.name: _clamp_float(
                f"adaptive.{f.name}",
                getattr(adaptive, f.name),
                1.0 if f.name == "score_scale" else 0.0,
                getattr(adaptive_defaults, f.name),
            )
            for f in fields(adaptive)
        },
    )
    keyword = _section("keyword", config.keyword, KeywordConfig)
    changes["keyword"] = replace(
        keyword,
        overlap_weight=_clamp_unit("keyword.overlap_weight", keyword.overlap_weight, 0.5),
        length_damping=_clamp_unit("keyword.length_damping", keyword.length_damping, 0.5),
    )
    scaling = _section("scaling", config.scaling, AlgorithmScaling)
    changes["scaling"] = replace(
        scaling,
        strict_threshold_factor=_clamp_float(
            "scaling.strict_threshold_factor", scaling.strict_threshold_factor, 1.0, 1.25
        ),
        fuzzy_threshold_factor=_clamp_unit(
            "scaling.fuzzy_threshold_factor", scaling.fuzzy_threshold_factor, 0.75
        ),
    )
    return replace(config, **changes)


def effective_threshold(config: EngineConfig) -> float:
    """Confidence threshold after algorithm scaling (strict raises, fuzzy lowers)."""
    threshold = config.confidence_threshold
    if config.algorithm is Algorithm.STRICT:
        return min(1.0, threshold * config.scaling.strict_threshold_factor)
    if config.algorithm is Algorithm.FUZZY:
        return max(0.0, threshold * config.scaling.fuzzy_threshold_factor)
    return threshold


def cascade_stages(config: EngineConfig) -> tuple[int, ...]:
    """Edit-mode cascade stages enabled for the configured algorithm."""
    if config.algorithm is Algorithm.STRICT:
        return (1, 2, 3)
    return (1, 2, 3, 4)


def relaxed_similarity_floor(config: EngineConfig) -> float:
    floor = config.cascade.relaxed_similarity
    if config.algorithm is Algorithm.FUZZY:
        return floor * config.scaling.fuzzy_threshold_factor
    return floor


_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")

_SECTIONS = {
    "cascade": CascadeConfig,
    "adaptive": AdaptiveConfig,
    "keyword": KeywordConfig,
    "scaling": AlgorithmScaling,
    "runtime": RuntimeConfig,
}


def _snake(key: str) -> str:
    return _CAMEL.sub("_", key).lower()


def config_from_dict(data: dict[str, Any]) -> EngineConfig:
    """Merge a partial mapping (camelCase or snake_case keys) over the defaults.

    Unknown keys are ignored. The result is sanitized.
    """
    top_level = {f.name for f in fields(EngineConfig)}
    values: dict[str, Any] = {}
    for raw_key, value in data.items():
        key = _snake(raw_key)
        if key not in top_level:
            log.debug("config_key_ignored", key=raw_key)
            continue
        if key in _SECTIONS:
            if not isinstance(value, dict):
                log.debug("config_key_ignored", key=raw_key)
                continue
            section_cls = _SECTIONS[key]
            allowed = {f.name for f in fields(section_cls)}
            section_values = {
                _snake(k): v for k, v in value.items() if _snake(k) in allowed
            }
            values[key] = section_cls(**section_values)
        else:
            values[key] = value
    return sanitize(EngineConfig(**values))


def load_config(path: str | Path) -> EngineConfig:
    """Load a JSON config file, falling back to defaults when missing or unreadable."""
    path = Path(path)
    if not path.exists():
        log.info("config_file_not_found", path=str(path))
        return EngineConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        log.warning("config_file_unreadable", path=str(path), error=str(e))
        return EngineConfig()
    if not isinstance(data, dict):
        log.warning("config_file_unreadable", path=str(path), error="not an object")
        return EngineConfig()
    return config_from_dict(data)


def config_to_dict(config: EngineConfig) -> dict[str, Any]:
    """Serialize a config to a JSON-friendly dict (snake_case keys)."""
    data: dict[str, Any] = {}
    for f in fields(config):
        value = getattr(config, f.name)
        if f.name in _SECTIONS:
            data[f.name] = {sf.name: getattr(value, sf.name) for sf in fields(value)}
        elif isinstance(value, Algorithm):
            data[f.name] = value.value
        elif isinstance(value, tuple):
            data[f.name] = list(value)
        else:
            data[f.name] = value
    return data
