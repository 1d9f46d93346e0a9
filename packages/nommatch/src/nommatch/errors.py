"""Error taxonomy and fallback reasons for the matching engine."""

from __future__ import annotations


class NommatchError(Exception):
    """Base class for nommatch errors."""


class Cancelled(NommatchError):
    """A matching pass was cancelled by its caller (not a failure)."""


# Fallback reasons reported in Prediction.fallback_reason
REASON_DISABLED = "disabled"
REASON_EMPTY_QUERY = "empty_query"
REASON_SHORT_QUERY = "short_query"
REASON_NO_CANDIDATES = "no_candidates"
REASON_NO_MATCHES = "no_matches"
REASON_STRATEGY_DROPPED = "strategy_dropped"


def dropped_reason(strategies: list[str]) -> str:
    return f"{REASON_STRATEGY_DROPPED}:{','.join(sorted(strategies))}"
