"""Engine entry points: run every strategy over a corpus and rank the merged output."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor

import structlog

from nommatch.adaptive import apply_structural_bonuses, score_adaptive
from nommatch.cancellation import CancellationToken, iter_checked
from nommatch.config import EngineConfig, sanitize
from nommatch.editing import match_editing_mode
from nommatch.errors import (
    REASON_DISABLED,
    REASON_EMPTY_QUERY,
    REASON_NO_CANDIDATES,
    REASON_NO_MATCHES,
    REASON_SHORT_QUERY,
    Cancelled,
    dropped_reason,
)
from nommatch.keywords import SynonymLookup, match_by_keywords
from nommatch.ranking import rank, validate_results
from nommatch.scoring import match_by_similarity
from nommatch.tokenize import normalize_query, tokenize
from nommatch.types import (
    Candidate,
    MatchDetails,
    MatchResult,
    MatchType,
    ModelUsed,
    Prediction,
    Query,
    Strategy,
    StrategyComparison,
    TokenSet,
    as_query,
)

log = structlog.get_logger()

StrategyFn = Callable[[], list[MatchResult]]


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000.0, 3)


def _empty(start: float, reason: str) -> Prediction:
    return Prediction(
        suggestions=[],
        processing_time_ms=_elapsed_ms(start),
        model_used=ModelUsed.FALLBACK,
        fallback_reason=reason,
    )


def _strategies(
    text: str,
    tokens: TokenSet,
    corpus: list[Candidate],
    config: EngineConfig,
    synonyms: SynonymLookup | None,
    cancel: CancellationToken | None,
) -> dict[Strategy, StrategyFn]:
    return {
        Strategy.SIMILARITY: lambda: match_by_similarity(text, corpus, config, cancel),
        Strategy.KEYWORD: lambda: match_by_keywords(
            tokens, corpus, config, synonyms, cancel, query_text=text
        ),
        Strategy.EDITING: lambda: match_editing_mode(text, corpus, config, cancel),
        Strategy.ADAPTIVE: lambda: score_adaptive(text, corpus, config, synonyms, cancel),
    }


def _run_strategies(
    strategies: dict[Strategy, StrategyFn],
    config: EngineConfig,
    cancel: CancellationToken | None,
) -> tuple[dict[Strategy, list[MatchResult]], list[str]]:
    """Fan the strategies out over a thread pool and join their outputs.

    A strategy that raises or returns malformed results is dropped and
    reported by name. Cancelled propagates once the pool has drained.
    """
    outputs: dict[Strategy, list[MatchResult]] = {}
    dropped: list[str] = []
    workers = min(config.runtime.max_workers, len(strategies))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="nommatch") as pool:
        futures = {name: pool.submit(fn) for name, fn in strategies.items()}
        for name, future in futures.items():
            try:
                results = future.result()
            except Cancelled:
                if cancel is not None:
                    cancel.cancel()
                raise
            except Exception as e:
                log.warning("strategy_dropped", strategy=name.value, error=str(e))
                dropped.append(name.value)
                continue
            if not validate_results(results):
                log.warning("strategy_dropped", strategy=name.value, error="malformed results")
                dropped.append(name.value)
                continue
            log.debug("strategy_done", strategy=name.value, results=len(results))
            outputs[name] = results

    if cancel is not None:
        cancel.raise_if_cancelled()
    return outputs, dropped


def fallback_search(
    query: str,
    candidates: Iterable[Candidate],
    config: EngineConfig,
    cancel: CancellationToken | None = None,
) -> list[MatchResult]:
    """Plain case-insensitive substring search used when every strategy came up empty."""
    q = normalize_query(query)
    if not q:
        return []
    limit = config.runtime.fallback_limit
    confidence = config.runtime.fallback_confidence
    results: list[MatchResult] = []
    for cand in iter_checked(candidates, cancel, config.runtime.cancel_check_interval):
        if q not in normalize_query(cand.name):
            continue
        results.append(MatchResult(
            id=cand.id,
            name=cand.name,
            confidence=confidence,
            reasoning="plain text search",
            match_details=MatchDetails(
                match_type=MatchType.PARTIAL,
                score=round(confidence * 100, 2),
                explanation=f"name contains '{q}'",
            ),
            strategy=Strategy.FALLBACK,
        ))
        if len(results) >= limit:
            break
    return results


def predict(
    query: Query | str,
    candidates: Iterable[Candidate],
    config: EngineConfig | None = None,
    *,
    synonyms: SynonymLookup | None = None,
    cancel: CancellationToken | None = None,
) -> Prediction:
    """Suggest ranked candidates for a free-text material name.

    Never raises for bad input: a disabled config, blank or meaningless
    query, empty corpus or failing strategy all come back as a Prediction
    whose fallback_reason says what happened. Only Cancelled and a
    missing corpus (TypeError) reach the caller.
    """
    start = time.perf_counter()
    if candidates is None:
        raise TypeError("candidates must not be None")

    config = sanitize(config or EngineConfig())
    q = as_query(query)

    if not config.enabled:
        log.debug("predict_skipped", reason=REASON_DISABLED)
        return _empty(start, REASON_DISABLED)
    if not q.text.strip():
        return _empty(start, REASON_EMPTY_QUERY)

    tokens = tokenize(q.text, config)
    if tokens.is_empty():
        log.debug("predict_skipped", reason=REASON_SHORT_QUERY, query=q.text)
        return _empty(start, REASON_SHORT_QUERY)

    corpus = list(candidates)
    if not corpus:
        return _empty(start, REASON_NO_CANDIDATES)

    context = q.context
    log.info(
        "predict_start",
        query=q.text,
        candidates=len(corpus),
        algorithm=config.algorithm.value,
        project_id=context.project_id if context else None,
        category_id=context.category_id if context else None,
    )

    outputs, dropped = _run_strategies(
        _strategies(q.text, tokens, corpus, config, synonyms, cancel), config, cancel
    )
    for name, results in outputs.items():
        if name is not Strategy.ADAPTIVE:
            apply_structural_bonuses(results, q.text, config)
    suggestions = rank(list(outputs.values()), config)

    reasons: list[str] = []
    model_used = ModelUsed.SIMILARITY
    if not suggestions:
        suggestions = rank([fallback_search(q.text, corpus, config, cancel)], config)
        model_used = ModelUsed.FALLBACK
        reasons.append(REASON_NO_MATCHES)
    if dropped:
        reasons.append(dropped_reason(dropped))

    prediction = Prediction(
        suggestions=suggestions,
        processing_time_ms=_elapsed_ms(start),
        model_used=model_used,
        fallback_reason="; ".join(reasons) or None,
    )
    log.info(
        "predict_done",
        suggestions=len(suggestions),
        model_used=model_used.value,
        fallback_reason=prediction.fallback_reason,
        top_confidence=round(suggestions[0].confidence, 4) if suggestions else None,
        processing_time_ms=prediction.processing_time_ms,
    )
    return prediction


def compare_strategies(
    query: Query | str,
    candidates: Iterable[Candidate],
    config: EngineConfig | None = None,
    *,
    synonyms: SynonymLookup | None = None,
    cancel: CancellationToken | None = None,
) -> StrategyComparison:
    """Rank each strategy's output on its own, for side-by-side comparison."""
    if candidates is None:
        raise TypeError("candidates must not be None")
    config = sanitize(config or EngineConfig())
    text = as_query(query).text
    comparison = StrategyComparison()
    if not config.enabled or not text.strip():
        return comparison

    tokens = tokenize(text, config)
    corpus = list(candidates)
    if tokens.is_empty() or not corpus:
        return comparison

    outputs, _ = _run_strategies(
        _strategies(text, tokens, corpus, config, synonyms, cancel), config, cancel
    )
    comparison.similarity = rank([outputs.get(Strategy.SIMILARITY, [])], config)
    comparison.keyword = rank([outputs.get(Strategy.KEYWORD, [])], config)
    comparison.editing = rank([outputs.get(Strategy.EDITING, [])], config)
    comparison.adaptive = rank([outputs.get(Strategy.ADAPTIVE, [])], config)

    log.info("compare_done", query=text, overlap=comparison.overlap_with_adaptive())
    return comparison
