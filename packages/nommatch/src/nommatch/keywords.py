"""Keyword overlap matching with synonym and morphology expansion."""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import structlog

from nommatch.cancellation import CancellationToken, iter_checked
from nommatch.config import EngineConfig
from nommatch.scoring import clamp
from nommatch.tokenize import DATA_DIR, normalize_query, tokenize
from nommatch.types import (
    Candidate,
    MatchDetails,
    MatchResult,
    MatchType,
    Strategy,
    TokenSet,
)

log = structlog.get_logger()


class SynonymLookup(Protocol):
    """Protocol for synonym tables (e.g. a curated construction glossary)."""

    def expand(self, token: str) -> set[str]: ...


class StaticSynonyms:
    """Symmetric, in-memory synonym table."""

    def __init__(self, groups: dict[str, list[str]] | None = None) -> None:
        self._map: dict[str, set[str]] = defaultdict(set)
        for word, synonyms in (groups or {}).items():
            w = normalize_query(word)
            for syn in synonyms:
                s = normalize_query(syn)
                if not w or not s or w == s:
                    continue
                self._map[w].add(s)
                self._map[s].add(w)

    def expand(self, token: str) -> set[str]:
        return set(self._map.get(token, ()))

    def __len__(self) -> int:
        return len(self._map)


def load_synonyms(path: str | Path | None = None) -> StaticSynonyms:
    """Load a {word: [synonyms]} JSON table; an absent or broken file gives an empty table."""
    path = Path(path) if path is not None else DATA_DIR / "synonyms.json"
    if not path.exists():
        return StaticSynonyms()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        log.warning("synonyms_load_error", path=str(path), error=str(e))
        return StaticSynonyms()
    table = StaticSynonyms(data if isinstance(data, dict) else {})
    log.info("synonyms_loaded", path=str(path), words=len(table))
    return table


def shares_stem(a: str, b: str) -> bool:
    """True when the shorter word minus up to two trailing letters prefixes the longer.

    The stem keeps at least four characters, so "кирпич" matches "кирпича"
    while "пеноплэкс" does not match "пенополистирол".
    """
    shorter, longer = sorted((a, b), key=len)
    if len(shorter) < 4:
        return False
    stem = shorter[: max(4, len(shorter) - 2)]
    return longer.startswith(stem)


@dataclass
class KeywordScore:
    overlap: float = 0.0
    exact_hits: list[str] = field(default_factory=list)
    synonym_hits: list[str] = field(default_factory=list)
    stem_hits: list[str] = field(default_factory=list)
    substring: bool = False
    prefix: bool = False
    closeness: float = 0.0
    confidence: float = 0.0

    @property
    def semantic(self) -> bool:
        return bool(self.synonym_hits or self.stem_hits)

    @property
    def hit_count(self) -> int:
        return len(self.exact_hits) + len(self.synonym_hits) + len(self.stem_hits)

    def explain(self) -> str:
        parts: list[str] = []
        if self.exact_hits:
            parts.append(f"exact: {', '.join(self.exact_hits)}")
        if self.synonym_hits:
            parts.append(f"synonym: {', '.join(self.synonym_hits)}")
        if self.stem_hits:
            parts.append(f"stem: {', '.join(self.stem_hits)}")
        if self.substring:
            parts.append("query in name")
        if self.prefix:
            parts.append("name starts with query")
        return "; ".join(parts)


def score_keywords(
    keywords: tuple[str, ...],
    query_norm: str,
    name_norm: str,
    name_tokens: set[str],
    config: EngineConfig,
    synonyms: SynonymLookup | None = None,
) -> KeywordScore:
    """Score one candidate against the query keywords (material tokens)."""
    result = KeywordScore()
    if not keywords:
        return result

    for kw in keywords:
        if kw in name_tokens:
            result.exact_hits.append(kw)
        elif synonyms is not None and synonyms.expand(kw) & name_tokens:
            result.synonym_hits.append(kw)
        elif any(shares_stem(kw, t) for t in name_tokens):
            result.stem_hits.append(kw)

    if result.hit_count == 0:
        return result

    result.overlap = result.hit_count / len(keywords)
    result.substring = bool(query_norm) and query_norm in name_norm
    result.prefix = bool(query_norm) and name_norm.startswith(query_norm)

    score = config.keyword.overlap_weight * result.overlap
    score += config.keyword_bonus * len(result.exact_hits) / len(keywords)
    if result.substring:
        score += config.exact_match_bonus
    if result.prefix:
        score += config.prefix_bonus

    # Only a name no longer than the query keeps the full score, so a
    # longer name that merely contains the query ranks below a closer one.
    result.closeness = _length_ratio(query_norm, name_norm)
    damping = config.keyword.length_damping * (1.0 - result.closeness)
    result.confidence = clamp(clamp(score) * (1.0 - damping))
    return result


def _length_ratio(query_norm: str, name_norm: str) -> float:
    longest = max(len(query_norm), len(name_norm))
    if longest == 0:
        return 1.0
    return min(len(query_norm), len(name_norm)) / longest


def match_by_keywords(
    tokens: TokenSet,
    candidates: Iterable[Candidate],
    config: EngineConfig,
    synonyms: SynonymLookup | None = None,
    cancel: CancellationToken | None = None,
    query_text: str | None = None,
) -> list[MatchResult]:
    """Score candidates by overlap of the query's material keywords with their names."""
    keywords = tokens.material
    if not keywords:
        return []

    query_norm = normalize_query(query_text) if query_text is not None else " ".join(tokens.all_tokens())
    results: list[MatchResult] = []

    for cand in iter_checked(candidates, cancel, config.runtime.cancel_check_interval):
        name_norm = normalize_query(cand.name)
        name_tokens = set(tokenize(cand.name, config).all_tokens())
        ks = score_keywords(keywords, query_norm, name_norm, name_tokens, config, synonyms)
        if ks.hit_count == 0 or ks.confidence <= 0.0:
            continue

        results.append(MatchResult(
            id=cand.id,
            name=cand.name,
            confidence=ks.confidence,
            reasoning=f"keywords {ks.hit_count}/{len(keywords)}",
            match_details=MatchDetails(
                material_tokens=list(tokens.material),
                size_tokens=list(tokens.size),
                brand_tokens=list(tokens.brand),
                article_tokens=list(tokens.article),
                match_type=MatchType.SEMANTIC if ks.semantic else MatchType.PARTIAL,
                score=round(ks.confidence * 100, 2),
                explanation=ks.explain(),
            ),
            strategy=Strategy.KEYWORD,
        ))

    log.debug("keyword_strategy_done", keywords=list(keywords), results=len(results))
    return results
