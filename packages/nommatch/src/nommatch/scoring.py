"""Edit-distance similarity scoring and the plain similarity strategy."""

from __future__ import annotations

import math
from collections.abc import Iterable

import structlog
from rapidfuzz import fuzz
from rapidfuzz.distance import Levenshtein

from nommatch.cancellation import CancellationToken, iter_checked
from nommatch.config import EngineConfig
from nommatch.tokenize import normalize_query, tokenize
from nommatch.types import Candidate, MatchDetails, MatchResult, MatchType, Strategy

log = structlog.get_logger()


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def normalized_similarity(q: str, n: str) -> float:
    """1 - levenshtein / max(len) over already-normalized strings."""
    if not q and not n:
        return 1.0
    return Levenshtein.normalized_similarity(q, n)


def similarity(query: str, name: str) -> float:
    """Normalized Levenshtein similarity in [0, 1] between a query and a candidate name."""
    return normalized_similarity(normalize_query(query), normalize_query(name))


def weighted_similarity(query: str, name: str, config: EngineConfig) -> float:
    """Similarity scaled by the configured similarity weight."""
    return config.similarity_weight * similarity(query, name)


def match_by_similarity(
    query: str,
    candidates: Iterable[Candidate],
    config: EngineConfig,
    cancel: CancellationToken | None = None,
) -> list[MatchResult]:
    """Score every candidate by edit distance blended with a substring-aware ratio."""
    q = normalize_query(query)
    if not q:
        return []

    tokens = tokenize(query, config)
    weight = config.similarity_weight
    results: list[MatchResult] = []

    for cand in iter_checked(candidates, cancel, config.runtime.cancel_check_interval):
        n = normalize_query(cand.name)
        if not n:
            continue
        sim = normalized_similarity(q, n)
        partial = fuzz.partial_ratio(q, n) / 100.0
        confidence = clamp(weight * sim + (1.0 - weight) * partial)
        if confidence <= 0.0:
            continue

        match_type = MatchType.EXACT if q == n else MatchType.PARTIAL
        explanation = f"levenshtein {sim:.2f} x {weight:.2f} + partial {partial:.2f} x {1.0 - weight:.2f}"
        results.append(MatchResult(
            id=cand.id,
            name=cand.name,
            confidence=confidence,
            reasoning=f"similarity {sim:.0%}",
            match_details=MatchDetails(
                material_tokens=list(tokens.material),
                size_tokens=list(tokens.size),
                brand_tokens=list(tokens.brand),
                article_tokens=list(tokens.article),
                match_type=match_type,
                score=round(confidence * 100, 2),
                explanation=explanation,
            ),
            strategy=Strategy.SIMILARITY,
        ))

    log.debug("similarity_strategy_done", query=q, results=len(results))
    return results
