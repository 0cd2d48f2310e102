# =============================================================================
# POLYEDGE ANALYTICS - CALIBRATION METRICS
# =============================================================================
#
# Pure mathematical functions over (probability, label) pairs.
# No I/O, no model state.
#
# =============================================================================

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple, Any

from shared.exceptions import InvalidInputError

# Probabilities are clamped to [LOG_EPSILON, 1 - LOG_EPSILON] before log()
LOG_EPSILON = 1e-10


def _check_pairs(probs: Sequence[float], labels: Sequence[float]) -> None:
    if len(probs) != len(labels):
        raise InvalidInputError(
            f"Length mismatch: {len(probs)} probabilities vs {len(labels)} labels"
        )
    if not probs:
        raise InvalidInputError("Empty input")


# =============================================================================
# CORE METRICS
# =============================================================================


def brier_score(probs: Sequence[float], labels: Sequence[float]) -> float:
    """
    Compute Brier score: mean( (probability - outcome)^2 ).

    Lower is better. 0.0 = perfect. 0.25 = no skill (coin flip at 50%).

    Raises:
        InvalidInputError: On empty or mismatched inputs.
    """
    _check_pairs(probs, labels)
    return sum((p - y) ** 2 for p, y in zip(probs, labels)) / len(probs)


def log_loss(probs: Sequence[float], labels: Sequence[float]) -> float:
    """
    Mean negative log-likelihood of binary labels.

    Probabilities are clamped away from exactly 0 and 1 so the result
    is always finite.
    """
    _check_pairs(probs, labels)
    total = 0.0
    for p, y in zip(probs, labels):
        p = min(max(p, LOG_EPSILON), 1.0 - LOG_EPSILON)
        total -= math.log(p) if y == 1 else math.log(1.0 - p)
    return total / len(probs)


def accuracy(probs: Sequence[float], labels: Sequence[float], threshold: float = 0.5) -> float:
    """Fraction of labels matched by (probability > threshold)."""
    _check_pairs(probs, labels)
    correct = sum(
        1 for p, y in zip(probs, labels)
        if (1 if p > threshold else 0) == y
    )
    return correct / len(probs)


def mean_and_std(values: Sequence[float]) -> Tuple[float, float]:
    """Mean and population standard deviation. (0, 0) for no values."""
    if not values:
        return 0.0, 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return mean, math.sqrt(variance)


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class PerformanceMetrics:
    """Accuracy, Brier score and log-loss on one evaluation set."""
    accuracy: float
    brier_score: float
    log_loss: float
    sample_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accuracy": round(self.accuracy, 6),
            "brier_score": round(self.brier_score, 6),
            "log_loss": round(self.log_loss, 6),
            "sample_size": self.sample_size,
        }


@dataclass(frozen=True)
class CrossValidationResult:
    """Mean and population std-dev of per-fold metrics."""
    mean_accuracy: float
    mean_brier_score: float
    mean_log_loss: float
    std_accuracy: float
    std_brier_score: float
    std_log_loss: float
    folds: List[PerformanceMetrics]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean_accuracy": self.mean_accuracy,
            "mean_brier_score": self.mean_brier_score,
            "mean_log_loss": self.mean_log_loss,
            "std_accuracy": self.std_accuracy,
            "std_brier_score": self.std_brier_score,
            "std_log_loss": self.std_log_loss,
            "folds": [f.to_dict() for f in self.folds],
        }


def evaluate(probs: Sequence[float], labels: Sequence[float]) -> PerformanceMetrics:
    """Compute all metrics for one evaluation set."""
    return PerformanceMetrics(
        accuracy=accuracy(probs, labels),
        brier_score=brier_score(probs, labels),
        log_loss=log_loss(probs, labels),
        sample_size=len(probs),
    )


def summarize_folds(folds: List[PerformanceMetrics]) -> CrossValidationResult:
    """Aggregate per-fold metrics into a CrossValidationResult."""
    mean_acc, std_acc = mean_and_std([f.accuracy for f in folds])
    mean_brier, std_brier = mean_and_std([f.brier_score for f in folds])
    mean_ll, std_ll = mean_and_std([f.log_loss for f in folds])
    return CrossValidationResult(
        mean_accuracy=mean_acc,
        mean_brier_score=mean_brier,
        mean_log_loss=mean_ll,
        std_accuracy=std_acc,
        std_brier_score=std_brier,
        std_log_loss=std_ll,
        folds=list(folds),
    )
