"""Adaptive hybrid matching: classify the query, then weight strategies by its shape."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from nommatch.cancellation import CancellationToken, iter_checked
from nommatch.classify import classify
from nommatch.config import EngineConfig, sanitize
from nommatch.keywords import SynonymLookup, score_keywords
from nommatch.ranking import rank
from nommatch.scoring import clamp, normalized_similarity
from nommatch.tokenize import normalize_query, tokenize
from nommatch.types import (
    Candidate,
    MatchDetails,
    MatchResult,
    MatchType,
    Query,
    QueryKind,
    Strategy,
    TokenSet,
    as_query,
    strongest,
)

log = structlog.get_logger()


@dataclass
class StructuralBonus:
    """Article, size and brand bonus points one candidate earns for a query."""

    points: float = 0.0
    match_types: list[MatchType] = field(default_factory=list)
    trace: list[str] = field(default_factory=list)


def structural_bonus(
    kind: QueryKind,
    tokens: TokenSet,
    name_norm: str,
    name_tokens: set[str],
    config: EngineConfig,
) -> StructuralBonus:
    """Article hits pay off for TECHNICAL and MIXED queries, size and brand hits for MIXED only."""
    ac = config.adaptive
    bonus = StructuralBonus()

    if kind in (QueryKind.TECHNICAL, QueryKind.MIXED):
        article_hits = [a for a in tokens.article if a in name_tokens or a in name_norm]
        if article_hits:
            bonus.points += ac.article_bonus
            bonus.match_types.append(MatchType.EXACT)
            bonus.trace.append(f"+{ac.article_bonus:g} article {', '.join(article_hits)}")

    if kind is QueryKind.MIXED:
        size_hits = [s for s in tokens.size if s in name_tokens]
        if size_hits:
            bonus.points += ac.size_bonus
            bonus.match_types.append(MatchType.SIZE)
            bonus.trace.append(f"+{ac.size_bonus:g} size {', '.join(size_hits)}")
        brand_hits = [b for b in tokens.brand if b in name_tokens]
        if brand_hits:
            bonus.points += ac.brand_bonus
            bonus.match_types.append(MatchType.BRAND)
            bonus.trace.append(f"+{ac.brand_bonus:g} brand {', '.join(brand_hits)}")

    return bonus


def score_adaptive(
    query: str,
    candidates: Iterable[Candidate],
    config: EngineConfig,
    synonyms: SynonymLookup | None = None,
    cancel: CancellationToken | None = None,
) -> list[MatchResult]:
    """Score every candidate with classification-dependent weights and structural bonuses.

    SIMPLE and MIXED queries blend similarity with the keyword score by
    similarity_weight; TECHNICAL queries rely on similarity alone. On top of
    the base points, an article hit earns the article bonus (TECHNICAL and
    MIXED) while size and brand hits earn their bonuses for MIXED queries.
    """
    q = normalize_query(query)
    tokens = tokenize(query, config)
    if not q or tokens.is_empty():
        return []

    kind = classify(tokens)
    ac = config.adaptive
    weight = config.similarity_weight
    log.debug(
        "adaptive_query_classified",
        query=q,
        kind=kind.value,
        material=list(tokens.material),
        size=list(tokens.size),
        brand=list(tokens.brand),
        article=list(tokens.article),
    )

    results: list[MatchResult] = []
    for cand in iter_checked(candidates, cancel, config.runtime.cancel_check_interval):
        n = normalize_query(cand.name)
        if not n:
            continue
        name_tokens = set(tokenize(cand.name, config).all_tokens())

        sim = normalized_similarity(q, n)
        ks = score_keywords(tokens.material, q, n, name_tokens, config, synonyms)
        if kind is QueryKind.TECHNICAL:
            blend = sim
            trace = [f"{kind.value}: similarity {sim:.2f}"]
        else:
            blend = weight * sim + (1.0 - weight) * ks.confidence
            trace = [f"{kind.value}: similarity {sim:.2f}, keywords {ks.confidence:.2f}"]

        score = ac.base_points * blend
        trace.append(f"base {score:.1f}")
        reasons: list[MatchType] = []

        if q == n:
            reasons.append(MatchType.EXACT)
            trace.append("exact name")

        bonus = structural_bonus(kind, tokens, n, name_tokens, config)
        score += bonus.points
        reasons.extend(bonus.match_types)
        trace.extend(bonus.trace)

        if kind is not QueryKind.TECHNICAL and ks.semantic:
            reasons.append(MatchType.SEMANTIC)
            trace.append(f"semantic ({ks.explain()})")

        if score <= 0.0:
            continue

        confidence = clamp(score / ac.score_scale)
        match_type = strongest(reasons)
        results.append(MatchResult(
            id=cand.id,
            name=cand.name,
            confidence=confidence,
            reasoning=f"adaptive {kind.value}: {match_type.value}",
            match_details=MatchDetails(
                material_tokens=list(tokens.material),
                size_tokens=list(tokens.size),
                brand_tokens=list(tokens.brand),
                article_tokens=list(tokens.article),
                match_type=match_type,
                score=round(score, 2),
                explanation="; ".join(trace),
            ),
            strategy=Strategy.ADAPTIVE,
        ))

    log.debug("adaptive_strategy_done", kind=kind.value, results=len(results))
    return results


def apply_structural_bonuses(
    results: list[MatchResult],
    query: str,
    config: EngineConfig,
) -> list[MatchResult]:
    """Add the structural bonus a candidate earns to another strategy's confidence.

    Keeps article, size and brand evidence alive when the ranker later keeps
    only one result per candidate. The match type is raised to the bonus
    reason when that reason takes precedence. Results are updated in place.
    """
    tokens = tokenize(query, config)
    kind = classify(tokens)
    if kind is QueryKind.SIMPLE or not results:
        return results

    scale = config.adaptive.score_scale
    cache: dict[str, StructuralBonus] = {}
    boosted = 0
    for r in results:
        bonus = cache.get(r.id)
        if bonus is None:
            n = normalize_query(r.name)
            name_tokens = set(tokenize(r.name, config).all_tokens())
            bonus = cache[r.id] = structural_bonus(kind, tokens, n, name_tokens, config)
        if bonus.points <= 0.0:
            continue

        details = r.match_details
        if details is None:
            details = r.match_details = MatchDetails(
                material_tokens=list(tokens.material),
                size_tokens=list(tokens.size),
                brand_tokens=list(tokens.brand),
                article_tokens=list(tokens.article),
            )
        r.confidence = clamp(r.confidence + bonus.points / scale)
        details.match_type = strongest([details.match_type, *bonus.match_types])
        details.explanation = "; ".join(p for p in (details.explanation, *bonus.trace) if p)
        boosted += 1

    log.debug("structural_bonuses_applied", kind=kind.value, boosted=boosted)
    return results


def adaptive_match(
    query: Query | str,
    candidates: Iterable[Candidate],
    config: EngineConfig | None = None,
    synonyms: SynonymLookup | None = None,
    cancel: CancellationToken | None = None,
) -> list[MatchResult]:
    """Run only the adaptive strategy and rank its output (comparison and testing views)."""
    if candidates is None:
        raise TypeError("candidates must not be None")
    config = sanitize(config or EngineConfig())
    if not config.enabled:
        return []
    text = as_query(query).text
    return rank([score_adaptive(text, list(candidates), config, synonyms, cancel)], config)
