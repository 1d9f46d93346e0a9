"""Core types for the nommatch nomenclature matching engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MatchType(str, Enum):
    EXACT = "EXACT"
    PARTIAL = "PARTIAL"
    SEMANTIC = "SEMANTIC"
    BRAND = "BRAND"
    SIZE = "SIZE"

    @property
    def precedence(self) -> int:
        """Lower is stronger: EXACT > BRAND > SIZE > SEMANTIC > PARTIAL."""
        return _MATCH_TYPE_ORDER.index(self)


_MATCH_TYPE_ORDER = [
    MatchType.EXACT,
    MatchType.BRAND,
    MatchType.SIZE,
    MatchType.SEMANTIC,
    MatchType.PARTIAL,
]


def strongest(match_types: list[MatchType]) -> MatchType:
    """Pick the dominant match type by precedence (PARTIAL when empty)."""
    if not match_types:
        return MatchType.PARTIAL
    return min(match_types, key=lambda m: m.precedence)


class QueryKind(str, Enum):
    SIMPLE = "SIMPLE"
    TECHNICAL = "TECHNICAL"
    MIXED = "MIXED"


class Strategy(str, Enum):
    SIMILARITY = "similarity"
    KEYWORD = "keyword"
    EDITING = "editing"
    ADAPTIVE = "adaptive"
    FALLBACK = "fallback"


class ModelUsed(str, Enum):
    SIMILARITY = "similarity"
    EMBEDDING = "embedding"
    LLM = "llm"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Candidate:
    id: str
    name: str
    supplier: str | None = None
    price: float | None = None
    characteristics: str | None = None


@dataclass(frozen=True)
class QueryContext:
    project_id: str | None = None
    category_id: str | None = None
    type_id: str | None = None


@dataclass(frozen=True)
class Query:
    text: str
    context: QueryContext | None = None


@dataclass(frozen=True)
class TokenSet:
    material: tuple[str, ...] = ()
    size: tuple[str, ...] = ()
    brand: tuple[str, ...] = ()
    article: tuple[str, ...] = ()

    @property
    def structured(self) -> tuple[str, ...]:
        return self.article + self.size + self.brand

    def all_tokens(self) -> tuple[str, ...]:
        return self.material + self.size + self.brand + self.article

    def is_empty(self) -> bool:
        return not (self.material or self.size or self.brand or self.article)


@dataclass
class MatchDetails:
    material_tokens: list[str] = field(default_factory=list)
    size_tokens: list[str] = field(default_factory=list)
    brand_tokens: list[str] = field(default_factory=list)
    article_tokens: list[str] = field(default_factory=list)
    match_type: MatchType = MatchType.PARTIAL
    score: float = 0.0
    explanation: str = ""


@dataclass
class MatchResult:
    id: str
    name: str
    confidence: float
    reasoning: str | None = None
    match_details: MatchDetails | None = None
    strategy: Strategy | None = None

    @property
    def match_type(self) -> MatchType:
        if self.match_details is None:
            return MatchType.PARTIAL
        return self.match_details.match_type


@dataclass
class Prediction:
    suggestions: list[MatchResult]
    processing_time_ms: float
    model_used: ModelUsed
    fallback_reason: str | None = None


@dataclass
class StrategyComparison:
    """Per-strategy ranked outputs for side-by-side comparison."""

    similarity: list[MatchResult] = field(default_factory=list)
    keyword: list[MatchResult] = field(default_factory=list)
    editing: list[MatchResult] = field(default_factory=list)
    adaptive: list[MatchResult] = field(default_factory=list)

    def overlap_with_adaptive(self) -> dict[str, int]:
        """Count how many of each strategy's ids the adaptive strategy also found."""
        adaptive_ids = {r.id for r in self.adaptive}
        return {
            "similarity": sum(1 for r in self.similarity if r.id in adaptive_ids),
            "keyword": sum(1 for r in self.keyword if r.id in adaptive_ids),
            "editing": sum(1 for r in self.editing if r.id in adaptive_ids),
        }


def as_query(query: Query | str | None) -> Query:
    """Accept either a Query or plain text."""
    if isinstance(query, Query):
        return query
    return Query(text=query or "")
