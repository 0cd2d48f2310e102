# =============================================================================
# POLYEDGE ANALYTICS - CORE MODULE
# =============================================================================
#
# Scoring pipeline for prediction markets.
# No persistence, no network access.
#
# MODULES:
# - analytics_config: YAML configuration and defaults
# - features: Market -> fixed-shape feature vector
# - calibration: Platt / isotonic calibration and the selecting wrapper
# - calibration_metrics: Brier score, log-loss, accuracy
# - model: Logistic regression, calibrated model, registry, cross-validation
# - quality_gates: Edge, quality gates and the pick rule
# - pick_generator: Orchestrator with heuristic fallback
# - market_metrics: Descriptive market metrics and scores
# - top_picks: Heuristic ranking by market metrics
#
# =============================================================================

from .analytics_config import (
    AnalyticsConfig,
    DEFAULT_CONFIG,
    load_config,
    validate_config,
)
from .features import (
    MarketFeatures,
    FEATURE_NAMES,
    build_market_features,
    features_to_array,
)
from .calibration import (
    CalibratedPrediction,
    CalibrationWrapper,
    IsotonicRegression,
    PlattScaling,
)
from .model import (
    CalibratedModel,
    LogisticRegression,
    ModelPrediction,
    ModelRegistry,
    cross_validate,
    get_market_type,
)
from .quality_gates import (
    QualityGates,
    apply_quality_gates,
    compute_edge,
    should_make_pick,
)
from .pick_generator import (
    PickFailure,
    PickGenerator,
    PickResult,
    to_stored_recommendation,
)
from .market_metrics import MarketMetrics, calculate_market_metrics
from .top_picks import RankedPick, TopPicksConfig, rank_top_picks

__all__ = [
    "AnalyticsConfig",
    "DEFAULT_CONFIG",
    "load_config",
    "validate_config",
    "MarketFeatures",
    "FEATURE_NAMES",
    "build_market_features",
    "features_to_array",
    "CalibratedPrediction",
    "CalibrationWrapper",
    "IsotonicRegression",
    "PlattScaling",
    "CalibratedModel",
    "LogisticRegression",
    "ModelPrediction",
    "ModelRegistry",
    "cross_validate",
    "get_market_type",
    "QualityGates",
    "apply_quality_gates",
    "compute_edge",
    "should_make_pick",
    "PickFailure",
    "PickGenerator",
    "PickResult",
    "to_stored_recommendation",
    "MarketMetrics",
    "calculate_market_metrics",
    "RankedPick",
    "TopPicksConfig",
    "rank_top_picks",
]
