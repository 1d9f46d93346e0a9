"""nommatch - Nomenclature and supplier name matching engine."""

from nommatch.adaptive import adaptive_match, apply_structural_bonuses
from nommatch.cancellation import CancellationToken
from nommatch.config import Algorithm, EngineConfig, config_from_dict, load_config
from nommatch.engine import compare_strategies, predict
from nommatch.errors import Cancelled, NommatchError
from nommatch.keywords import StaticSynonyms, load_synonyms
from nommatch.metrics import Metrics, MetricsSink
from nommatch.types import (
    Candidate,
    MatchDetails,
    MatchResult,
    MatchType,
    ModelUsed,
    Prediction,
    Query,
    QueryContext,
    QueryKind,
    StrategyComparison,
)

__all__ = [
    "Algorithm",
    "Cancelled",
    "CancellationToken",
    "Candidate",
    "EngineConfig",
    "MatchDetails",
    "MatchResult",
    "MatchType",
    "Metrics",
    "MetricsSink",
    "ModelUsed",
    "NommatchError",
    "Prediction",
    "Query",
    "QueryContext",
    "QueryKind",
    "StaticSynonyms",
    "StrategyComparison",
    "adaptive_match",
    "apply_structural_bonuses",
    "compare_strategies",
    "config_from_dict",
    "load_config",
    "load_synonyms",
    "predict",
]
