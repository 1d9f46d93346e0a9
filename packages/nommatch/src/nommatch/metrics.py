"""Caller-side prediction metrics (the engine itself keeps no state between calls)."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Protocol

import structlog

from nommatch.types import ModelUsed, Prediction

log = structlog.get_logger()


class MetricsSink(Protocol):
    """Protocol for anything that wants to observe completed predictions."""

    def record(
        self,
        success: bool,
        confidence: float | None,
        processing_time_ms: float,
        model_used: str,
    ) -> None: ...


@dataclass
class Metrics:
    """Running totals and averages over recorded predictions."""

    total_predictions: int = 0
    successful_predictions: int = 0
    average_confidence: float = 0.0
    confidence_samples: int = 0
    average_processing_time: float = 0.0
    model_usage_stats: dict[str, int] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.total_predictions == 0:
            return 0.0
        return self.successful_predictions / self.total_predictions

    def record(
        self,
        success: bool,
        confidence: float | None,
        processing_time_ms: float,
        model_used: str,
    ) -> None:
        self.total_predictions += 1
        if success:
            self.successful_predictions += 1

        n = self.total_predictions
        self.average_processing_time = (
            self.average_processing_time * (n - 1) + processing_time_ms
        ) / n

        # Averaged over the successful predictions that reported a confidence
        if success and confidence is not None:
            self.confidence_samples += 1
            k = self.confidence_samples
            self.average_confidence = (self.average_confidence * (k - 1) + confidence) / k

        key = model_used.value if isinstance(model_used, ModelUsed) else str(model_used)
        self.model_usage_stats[key] = self.model_usage_stats.get(key, 0) + 1

    def record_prediction(self, prediction: Prediction) -> None:
        """Record a Prediction; success means at least one suggestion came back."""
        suggestions = prediction.suggestions
        confidence = None
        if suggestions:
            confidence = sum(s.confidence for s in suggestions) / len(suggestions)
        self.record(
            success=bool(suggestions),
            confidence=confidence,
            processing_time_ms=prediction.processing_time_ms,
            model_used=prediction.model_used,
        )

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)
        log.info("metrics_saved", path=str(path), total=self.total_predictions)


def load_metrics(path: str | Path) -> Metrics:
    """Load metrics saved by Metrics.save; a missing or broken file starts from zero."""
    path = Path(path)
    if not path.exists():
        return Metrics()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return Metrics(
            total_predictions=int(data.get("total_predictions", 0)),
            successful_predictions=int(data.get("successful_predictions", 0)),
            average_confidence=float(data.get("average_confidence", 0.0)),
            confidence_samples=int(
                data.get("confidence_samples", data.get("successful_predictions", 0))
            ),
            average_processing_time=float(data.get("average_processing_time", 0.0)),
            model_usage_stats={str(k): int(v) for k, v in data.get("model_usage_stats", {}).items()},
        )
    except (json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
        log.error("metrics_load_error", path=str(path), error=str(e))
        return Metrics()
