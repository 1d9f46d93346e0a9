"""Merge, deduplicate, threshold and rank strategy outputs."""

from __future__ import annotations

import math
from collections.abc import Sequence

import structlog

from nommatch.config import EngineConfig, effective_threshold, sanitize
from nommatch.types import MatchResult

log = structlog.get_logger()


def validate_results(results: object) -> bool:
    """Check that a strategy returned a list of MatchResult with confidences in [0, 1]."""
    if not isinstance(results, list):
        return False
    for r in results:
        if not isinstance(r, MatchResult):
            return False
        c = r.confidence
        if isinstance(c, bool) or not isinstance(c, (int, float)):
            return False
        if not math.isfinite(c) or c < 0.0 or c > 1.0:
            return False
    return True


def sort_key(result: MatchResult) -> tuple[float, int, str, str]:
    """Confidence desc, then match type precedence, then name and id ascending."""
    return (-result.confidence, result.match_type.precedence, result.name, str(result.id))


def merge(results_by_strategy: Sequence[list[MatchResult]]) -> list[MatchResult]:
    """Deduplicate by id, keeping the best-ranked result per candidate."""
    best: dict[str, MatchResult] = {}
    for results in results_by_strategy:
        for r in results:
            current = best.get(r.id)
            if current is None or sort_key(r) < sort_key(current):
                best[r.id] = r
    return list(best.values())


def rank(
    results_by_strategy: Sequence[list[MatchResult]],
    config: EngineConfig,
) -> list[MatchResult]:
    """Merge all strategy outputs into one ranked, thresholded, capped list."""
    config = sanitize(config)
    if not config.enabled:
        return []

    valid: list[list[MatchResult]] = []
    for i, results in enumerate(results_by_strategy):
        if validate_results(results):
            valid.append(results)
        else:
            log.warning("strategy_results_dropped", index=i)

    merged = merge(valid)
    threshold = effective_threshold(config)
    kept = [r for r in merged if r.confidence >= threshold]
    kept.sort(key=sort_key)

    log.debug(
        "rank_done",
        merged=len(merged),
        above_threshold=len(kept),
        threshold=round(threshold, 4),
        returned=min(len(kept), config.max_suggestions),
    )
    return kept[: config.max_suggestions]
