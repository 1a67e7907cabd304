"""
Prediction Data Types

Result models for the respiratory classification service.
"""

import math
from dataclasses import dataclass
from typing import Any

LABELS = ("Normal", "Bronquite", "Pneumonia")


@dataclass(frozen=True)
class PredictionResult:
    """Class scores for one analyzed recording."""

    normal: float
    bronquite: float
    pneumonia: float

    @classmethod
    def zero(cls) -> "PredictionResult":
        """The all-zero result shown when analysis fails."""
        return cls(0.0, 0.0, 0.0)

    @property
    def scores(self) -> dict[str, float]:
        """Scores keyed by the service's class labels."""
        return dict(zip(LABELS, (self.normal, self.bronquite, self.pneumonia)))

    @property
    def total(self) -> float:
        return self.normal + self.bronquite + self.pneumonia

    @property
    def top_label(self) -> str | None:
        """Label with the highest score, or None when all are zero."""
        if self.total <= 0:
            return None
        return max(self.scores.items(), key=lambda item: item[1])[0]

    def percentages(self) -> dict[str, int]:
        """Whole-number percentages, truncated toward zero."""
        return {
            label: int(min(max(value, 0.0), 1.0) * 100)
            for label, value in self.scores.items()
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return self.scores

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PredictionResult":
        """Create from a response object, defaulting missing scores to 0.0."""
        return cls(
            normal=_score(data, "Normal"),
            bronquite=_score(data, "Bronquite"),
            pneumonia=_score(data, "Pneumonia"),
        )


@dataclass(frozen=True)
class PredictionFailure:
    """Any transport or decoding failure. Carries no detail to the caller."""

    reason: str = ""


def _score(data: dict[str, Any], key: str) -> float:
    value = data.get(key)
    # bool is an int subclass but not a score
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return 0.0
    try:
        value = float(value)
    except ValueError:
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def normalize(normal: float, bronquite: float, pneumonia: float) -> PredictionResult:
    """Scale raw scores so they sum to 1.0, or all zeros if none is positive."""
    total = normal + bronquite + pneumonia
    if math.isinf(total):
        # Rescale finite scores whose sum overflows
        peak = max(normal, bronquite, pneumonia)
        normal, bronquite, pneumonia = normal / peak, bronquite / peak, pneumonia / peak
        total = normal + bronquite + pneumonia
    if total > 0:
        return PredictionResult(
            normal=normal / total,
            bronquite=bronquite / total,
            pneumonia=pneumonia / total,
        )
    return PredictionResult.zero()
