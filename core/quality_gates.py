# =============================================================================
# POLYEDGE ANALYTICS - EDGE & QUALITY GATES
# =============================================================================
#
# DECISION LOGIC:
# A pick is actionable only if ALL of the following hold:
# 1. Quality gates pass (freshness, confidence, dispersion, time) AND
#    edge >= EDGE_THRESHOLD
# 2. edge >= PICK_MIN_EDGE
# 3. Confidence bin is not LOW
#
# GATE NOTES:
# - confidence_ok only checks the upper side (calibrated_prob >= MED).
# - dispersion_ok and time_to_start_ok are configurable checks that are
#   disabled in production and then always pass.
# - EDGE_THRESHOLD and PICK_MIN_EDGE are independent thresholds. Both
#   apply. They should probably be one value; that decision is open.
#
# =============================================================================

from dataclasses import dataclass, asdict
from typing import Dict

from shared.enums import ConfidenceBin

from .analytics_config import AnalyticsConfig, DEFAULT_CONFIG
from .features import MarketFeatures


@dataclass(frozen=True)
class QualityGates:
    """Result of the quality gate checks for one market."""
    freshness_ok: bool
    confidence_ok: bool
    dispersion_ok: bool
    time_to_start_ok: bool
    all_passed: bool

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    def failed_gates(self):
        """Names of the individual gates that did not pass."""
        return [
            name for name in ("freshness_ok", "confidence_ok", "dispersion_ok", "time_to_start_ok")
            if not getattr(self, name)
        ]

    @classmethod
    def none_passed(cls) -> "QualityGates":
        """Gate result attached to heuristic fallback picks."""
        return cls(
            freshness_ok=False,
            confidence_ok=False,
            dispersion_ok=False,
            time_to_start_ok=False,
            all_passed=False,
        )


def compute_edge(calibrated_prob: float, platform_price: float) -> float:
    """
    Edge between fair price and platform price.

    Positive edge means the platform underprices YES.
    """
    return calibrated_prob - platform_price


def apply_quality_gates(
    features: MarketFeatures,
    calibrated_prob: float,
    edge: float,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> QualityGates:
    """
    Apply quality gates to determine if a pick may be made.

    Args:
        features: Market features
        calibrated_prob: Calibrated model probability
        edge: calibrated_prob - platform price
        config: Thresholds

    Returns:
        QualityGates
    """
    freshness_ok = features.data_freshness_minutes <= config.freshness_threshold_minutes

    confidence_ok = calibrated_prob >= config.confidence_bins["MED"]

    if config.dispersion_check_enabled:
        dispersion_ok = features.cross_book_dispersion <= config.max_dispersion
    else:
        dispersion_ok = True

    if config.time_to_start_check_enabled:
        time_to_start_ok = features.minutes_to_start >= config.min_minutes_to_start
    else:
        time_to_start_ok = True

    all_passed = (
        freshness_ok
        and confidence_ok
        and dispersion_ok
        and time_to_start_ok
        and edge >= config.edge_threshold
    )

    return QualityGates(
        freshness_ok=freshness_ok,
        confidence_ok=confidence_ok,
        dispersion_ok=dispersion_ok,
        time_to_start_ok=time_to_start_ok,
        all_passed=all_passed,
    )


def should_make_pick(
    prediction,
    edge: float,
    gates: QualityGates,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> bool:
    """
    Final pick eligibility.

    prediction is anything with a confidence_bin attribute
    (CalibratedPrediction or ModelPrediction).
    """
    return (
        gates.all_passed
        and edge >= config.pick_min_edge
        and prediction.confidence_bin is not ConfidenceBin.LOW
    )
