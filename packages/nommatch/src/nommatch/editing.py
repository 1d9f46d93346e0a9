"""Edit-mode matching: an ordered cascade that mirrors picking the nearest name by hand.

Stages run in a fixed order and each only adds candidates an earlier stage
did not claim, so every candidate keeps its strongest classification:

1. exact case-insensitive equality
2. containment (name contains query or query contains name)
3. token overlap above a strict threshold
4. relaxed edit-distance similarity (disabled for the strict algorithm)

The cascade stops after any stage once enough results have been collected.
Stage confidences live in disjoint bands, so a later stage can never
outrank an earlier one after merging.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

import structlog

from nommatch.cancellation import CancellationToken, iter_checked
from nommatch.config import EngineConfig, cascade_stages, relaxed_similarity_floor
from nommatch.scoring import clamp, normalized_similarity
from nommatch.tokenize import normalize_query, tokenize
from nommatch.types import Candidate, MatchDetails, MatchResult, MatchType, Strategy, TokenSet

log = structlog.get_logger()

EXACT_CONFIDENCE = 1.0
CONTAINMENT_BASE = 0.75
CONTAINMENT_SPAN = 0.20
OVERLAP_BASE = 0.45
OVERLAP_SPAN = 0.15
OVERLAP_SIMILARITY_SPAN = 0.10
RELAXED_SPAN = 0.50

STAGE_NAMES = {1: "exact", 2: "containment", 3: "token_overlap", 4: "relaxed_similarity"}


class _Entry:
    __slots__ = ("candidate", "name_norm", "tokens")

    def __init__(self, candidate: Candidate, name_norm: str, tokens: set[str]) -> None:
        self.candidate = candidate
        self.name_norm = name_norm
        self.tokens = tokens


def match_editing_mode(
    query: str,
    candidates: Iterable[Candidate],
    config: EngineConfig,
    cancel: CancellationToken | None = None,
) -> list[MatchResult]:
    """Run the edit-mode cascade and return results in stage order."""
    q = normalize_query(query)
    if not q:
        return []

    interval = config.runtime.cancel_check_interval
    query_tokens = tokenize(query, config)
    q_token_set = set(query_tokens.all_tokens())

    entries = [
        _Entry(cand, name_norm, set(tokenize(cand.name, config).all_tokens()))
        for cand in iter_checked(candidates, cancel, interval)
        if (name_norm := normalize_query(cand.name))
    ]

    floor = relaxed_similarity_floor(config)
    overlap_threshold = config.cascade.token_overlap_threshold

    def exact(e: _Entry) -> tuple[float, str] | None:
        if e.name_norm == q:
            return EXACT_CONFIDENCE, "exact match"
        return None

    def containment(e: _Entry) -> tuple[float, str] | None:
        if q in e.name_norm or e.name_norm in q:
            sim = normalized_similarity(q, e.name_norm)
            return CONTAINMENT_BASE + CONTAINMENT_SPAN * sim, f"containment, similarity {sim:.2f}"
        return None

    def token_overlap(e: _Entry) -> tuple[float, str] | None:
        if not q_token_set:
            return None
        overlap = len(q_token_set & e.tokens) / len(q_token_set)
        if overlap < overlap_threshold:
            return None
        sim = normalized_similarity(q, e.name_norm)
        confidence = OVERLAP_BASE + OVERLAP_SPAN * overlap + OVERLAP_SIMILARITY_SPAN * sim
        return confidence, f"token overlap {overlap:.2f}, similarity {sim:.2f}"

    def relaxed(e: _Entry) -> tuple[float, str] | None:
        sim = normalized_similarity(q, e.name_norm)
        if sim < floor or sim >= 1.0:
            return None
        return RELAXED_SPAN * sim, f"relaxed similarity {sim:.2f}"

    stage_fns: dict[int, Callable[[_Entry], tuple[float, str] | None]] = {
        1: exact,
        2: containment,
        3: token_overlap,
        4: relaxed,
    }

    results: list[MatchResult] = []
    claimed: set[str] = set()

    for stage in cascade_stages(config):
        fn = stage_fns[stage]
        added = 0
        for e in iter_checked(entries, cancel, interval):
            if e.candidate.id in claimed:
                continue
            hit = fn(e)
            if hit is None:
                continue
            confidence, why = hit
            claimed.add(e.candidate.id)
            added += 1
            results.append(_result(e.candidate, clamp(confidence), stage, why, query_tokens))

        log.debug(
            "editing_stage_done",
            stage=STAGE_NAMES[stage],
            added=added,
            total=len(results),
        )
        if len(results) >= config.cascade.min_results:
            log.debug("editing_cascade_stopped", stage=STAGE_NAMES[stage], total=len(results))
            break

    return results


def _result(
    cand: Candidate,
    confidence: float,
    stage: int,
    why: str,
    tokens: TokenSet,
) -> MatchResult:
    match_type = MatchType.EXACT if stage == 1 else MatchType.PARTIAL
    return MatchResult(
        id=cand.id,
        name=cand.name,
        confidence=confidence,
        reasoning=f"edit mode: {STAGE_NAMES[stage]}",
        match_details=MatchDetails(
            material_tokens=list(tokens.material),
            size_tokens=list(tokens.size),
            brand_tokens=list(tokens.brand),
            article_tokens=list(tokens.article),
            match_type=match_type,
            score=round(confidence * 100, 2),
            explanation=f"stage {stage} ({STAGE_NAMES[stage]}): {why}",
        ),
        strategy=Strategy.EDITING,
    )
