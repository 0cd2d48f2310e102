# =============================================================================
# POLYEDGE ANALYTICS - PICK GENERATOR
# =============================================================================
#
# Top-level orchestrator. For one market at one point in time:
#
# 1. Build features
# 2. Select the model for the market type (binary model if unmapped)
# 3. Predict calibrated probability
# 4. Price edge against the YES outcome
# 5. Apply quality gates and the pick rule
# 6. Decide side (with a looser secondary rule before WATCH)
# 7. Build reasoning text
#
# FAILURE HANDLING:
# Steps 1-6 run as _primary_pick(), which returns either a PickResult or
# a PickFailure. A PickFailure (missing YES outcome, dimension mismatch,
# any unexpected error) switches to the heuristic fallback.
# generate_pick() never raises. Worst case it returns a WATCH pick that
# explains the missing signal.
#
# =============================================================================

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from models.data_models import (
    HistoricalSample,
    Market,
    MarketBundle,
    Outcome,
    PriceHistoryPoint,
    StoredRecommendation,
)
from shared.enums import ConfidenceBin, MarketType, PickSide, Recommendation
from shared.exceptions import AnalyticsError, MissingYesOutcomeError
from shared.logging_config import AuditLogger

from .analytics_config import AnalyticsConfig, DEFAULT_CONFIG
from .calibration import round_half_up
from .features import (
    MarketFeatures,
    build_market_features,
    features_from_dict,
    find_yes_outcome,
)
from .model import ModelPrediction, ModelRegistry, get_market_type
from .quality_gates import (
    QualityGates,
    apply_quality_gates,
    compute_edge,
    should_make_pick,
)

logger = logging.getLogger(__name__)

SOURCE_MODEL = "model"
SOURCE_FALLBACK = "fallback"


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass(frozen=True)
class PickResult:
    """
    Pick decision for one market at one point in time.

    Built fresh per call and never mutated. features is None for picks
    produced by the heuristic fallback.
    """
    market_id: str
    side: PickSide
    calibrated_prob: float
    edge: float
    confidence_bin: ConfidenceBin
    reasoning: str
    features: Optional[MarketFeatures]
    quality_gates: QualityGates
    should_pick: bool
    source: str = SOURCE_MODEL

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_id": self.market_id,
            "side": self.side.value,
            "calibrated_prob": self.calibrated_prob,
            "edge": self.edge,
            "confidence_bin": self.confidence_bin.value,
            "reasoning": self.reasoning,
            "features": self.features.to_dict() if self.features else None,
            "quality_gates": self.quality_gates.to_dict(),
            "should_pick": self.should_pick,
            "source": self.source,
        }


@dataclass(frozen=True)
class PickFailure:
    """Why the model path could not produce a pick."""
    market_id: str
    reason: str
    error: Optional[BaseException] = None


PickOutcome = Union[PickResult, PickFailure]


# =============================================================================
# SYNTHETIC SEED DATA
# =============================================================================


def _seed_features(consensus: float, dispersion: float, spread: float, drift: float) -> MarketFeatures:
    return features_from_dict({
        "consensus_price": consensus,
        "cross_book_dispersion": dispersion,
        "minutes_to_start": 1440.0,
        "data_freshness_minutes": 5.0,
        "drift_5m": drift / 3,
        "drift_15m": drift / 2,
        "drift_60m": drift,
        "volatility_5m": 0.01,
        "volatility_15m": 0.02,
        "volatility_60m": 0.03,
        "velocity_5m": 0.0,
        "velocity_15m": 0.0,
        "velocity_60m": 0.0,
        "volume_24h_log": 8.0,
        "liquidity_score": 0.8,
        "outcome_count": 2.0,
        "price_spread": spread,
        "platform_polymarket": 1.0,
        "platform_kalshi": 0.0,
        "platform_manifold": 0.0,
        "platform_other": 0.0,
    })


# Neutral, bullish, bearish. Placeholder weights only, not market data.
SEED_FEATURES = (
    _seed_features(consensus=0.5, dispersion=0.0, spread=0.0, drift=0.0),
    _seed_features(consensus=0.7, dispersion=0.2, spread=0.4, drift=0.03),
    _seed_features(consensus=0.3, dispersion=0.2, spread=0.4, drift=-0.03),
)
SEED_LABELS = (0.5, 0.7, 0.3)


# =============================================================================
# PICK GENERATOR
# =============================================================================


class PickGenerator:
    """
    Orchestrates features -> model -> edge -> gates -> side -> reasoning.

    The model registry is injected (a fresh one by default) so each
    generator, and each test, owns its models.
    """

    DEFAULT_MARKET_TYPES = (MarketType.BINARY, MarketType.MULTI_OUTCOME)

    def __init__(
        self,
        registry: Optional[ModelRegistry] = None,
        config: AnalyticsConfig = DEFAULT_CONFIG,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.config = config
        self.registry = registry if registry is not None else ModelRegistry(config)
        self.audit_logger = audit_logger
        for market_type in self.DEFAULT_MARKET_TYPES:
            self.registry.get_model(market_type)

    # -------------------------------------------------------------------------
    # PICKS
    # -------------------------------------------------------------------------

    def generate_pick(
        self,
        market: Market,
        outcomes: Sequence[Outcome],
        price_history: Sequence[PriceHistoryPoint],
        as_of: Optional[datetime] = None,
    ) -> PickResult:
        """
        Generate a pick for a single market. Never raises.

        Args:
            market: Market record
            outcomes: Current outcomes
            price_history: Price observations
            as_of: Evaluation time (default: now)

        Returns:
            PickResult from the model path, or from the heuristic fallback
        """
        logger.debug(f"Generating pick for market: {market.title}")

        outcome = self._primary_pick(market, outcomes, price_history, as_of)
        if isinstance(outcome, PickFailure):
            logger.warning(
                f"Falling back to heuristic pick for market {outcome.market_id}: {outcome.reason}"
            )
            outcome = self._fallback_pick(market, outcomes)

        self._audit(outcome)
        return outcome

    def generate_picks(
        self,
        bundles: Sequence[MarketBundle],
        as_of: Optional[datetime] = None,
    ) -> List[PickResult]:
        """Generate one pick per market bundle."""
        picks = [
            self.generate_pick(b.market, b.outcomes, b.price_history, as_of)
            for b in bundles
        ]
        actionable = sum(1 for p in picks if p.side is not PickSide.WATCH)
        logger.info(f"Generated {len(picks)} picks ({actionable} actionable)")
        return picks

    def _primary_pick(
        self,
        market: Market,
        outcomes: Sequence[Outcome],
        price_history: Sequence[PriceHistoryPoint],
        as_of: Optional[datetime],
    ) -> PickOutcome:
        try:
            features = build_market_features(market, outcomes, price_history, as_of, self.config)
            market_type = get_market_type(features)

            if self.registry.has_model(market_type):
                model = self.registry.get_model(market_type)
            else:
                model = self.registry.get_model(MarketType.BINARY)

            prediction = model.predict(features)

            yes_outcome = find_yes_outcome(outcomes)
            if yes_outcome is None:
                error = MissingYesOutcomeError(market.id)
                return PickFailure(market_id=market.id, reason=str(error), error=error)

            edge = compute_edge(prediction.calibrated_prob, yes_outcome.current_price)
            gates = apply_quality_gates(features, prediction.calibrated_prob, edge, self.config)
            pick = should_make_pick(prediction, edge, gates, self.config)
            side = self._decide_side(prediction, edge, pick)

        except AnalyticsError as e:
            return PickFailure(market_id=market.id, reason=str(e), error=e)
        except Exception as e:
            logger.warning(
                f"Unexpected error generating pick for market {market.id}", exc_info=True
            )
            return PickFailure(market_id=market.id, reason=f"Unexpected error: {e}", error=e)

        return PickResult(
            market_id=market.id,
            side=side,
            calibrated_prob=prediction.calibrated_prob,
            edge=edge,
            confidence_bin=prediction.confidence_bin,
            reasoning=build_reasoning(features, prediction, edge, gates, side),
            features=features,
            quality_gates=gates,
            should_pick=pick,
            source=SOURCE_MODEL,
        )

    def _decide_side(self, prediction: ModelPrediction, edge: float, pick: bool) -> PickSide:
        """
        Side from the pick rule, else a looser secondary rule, else WATCH.
        """
        prob = prediction.calibrated_prob
        if pick:
            return PickSide.YES if prob > 0.5 else PickSide.NO

        if abs(edge) > self.config.fallback_min_edge and prob > self.config.fallback_min_prob:
            return PickSide.YES if prob > 0.5 else PickSide.NO
        return PickSide.WATCH

    def _fallback_pick(self, market: Market, outcomes: Sequence[Outcome]) -> PickResult:
        """
        Heuristic pick from the YES price alone.

        pseudo-probability: 0.55 + 0.4 * |p - 0.5| above 0.5,
                            0.45 - 0.4 * |p - 0.5| otherwise, clamped to [0.45, 0.95]
        pseudo-edge:        0.1 * |p - 0.5|, reported clamped to [-0.05, 0.15]
        """
        yes_outcome = find_yes_outcome(outcomes)
        platform_price = yes_outcome.current_price if yes_outcome is not None else 0.5

        deviation = abs(platform_price - 0.5)
        simple_edge = deviation * 0.1
        if platform_price > 0.5:
            raw_prob = 0.55 + deviation * 0.4
        else:
            raw_prob = 0.45 - deviation * 0.4
        simple_prob = min(0.95, max(0.45, raw_prob))

        pick = simple_edge > 0.005 and 0.55 < simple_prob < 0.95
        if pick:
            side = PickSide.YES if platform_price > 0.5 else PickSide.NO
            reasoning = (
                f"Simple heuristic: {side.value} at {simple_prob * 100:.1f}% confidence "
                f"with {simple_edge * 100:.1f}% edge"
            )
        else:
            side = PickSide.WATCH
            reasoning = "Insufficient signal strength for confident prediction"

        if simple_prob > 0.7:
            confidence_bin = ConfidenceBin.HIGH
        elif simple_prob > 0.6:
            confidence_bin = ConfidenceBin.MED
        else:
            confidence_bin = ConfidenceBin.LOW

        return PickResult(
            market_id=market.id,
            side=side,
            calibrated_prob=simple_prob,
            edge=max(-0.05, min(0.15, simple_edge)),
            confidence_bin=confidence_bin,
            reasoning=reasoning,
            features=None,
            quality_gates=QualityGates.none_passed(),
            should_pick=pick,
            source=SOURCE_FALLBACK,
        )

    def _audit(self, pick: PickResult) -> None:
        if self.audit_logger is None:
            return
        try:
            self.audit_logger.log_pick(
                market_id=pick.market_id,
                side=pick.side.value,
                gates=pick.quality_gates.to_dict(),
                reasoning=pick.reasoning,
                features=pick.features.to_dict() if pick.features else None,
                source=pick.source,
            )
        except OSError as e:
            logger.error(f"Failed to write audit record for {pick.market_id}: {e}")

    # -------------------------------------------------------------------------
    # TRAINING
    # -------------------------------------------------------------------------

    def train_model(self) -> None:
        """
        Seed the binary model with a small synthetic dataset.

        Keeps predict() off the untrained default in production until
        real resolved markets are available. The seed is a placeholder,
        not a representative sample.
        """
        logger.info("Training binary model with synthetic seed data")
        try:
            self.registry.train_model(MarketType.BINARY, list(SEED_FEATURES), list(SEED_LABELS))
            logger.info("Model pre-trained with default weights")
        except AnalyticsError as e:
            logger.error(f"Error pre-training model: {e}")

    def train_models(
        self,
        training_data: Sequence[HistoricalSample],
        as_of: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """
        Train one model per detected market type from resolved markets.

        Types with fewer than MIN_TRAINING_SAMPLES samples are skipped and
        keep their current model.

        Returns:
            market type -> number of samples its new model was fitted on
        """
        logger.info(f"Training models with {len(training_data)} samples")

        by_type: Dict[str, List[MarketFeatures]] = {}
        labels_by_type: Dict[str, List[int]] = {}
        for sample in training_data:
            try:
                features = build_market_features(
                    sample.market, sample.outcomes, sample.price_history, as_of, self.config
                )
            except (AnalyticsError, ValueError, TypeError) as e:
                logger.warning(f"Skipping training sample {sample.market.id}: {e}")
                continue
            key = get_market_type(features).value
            by_type.setdefault(key, []).append(features)
            labels_by_type.setdefault(key, []).append(sample.actual_outcome)

        trained: Dict[str, int] = {}
        for market_type, features in by_type.items():
            if len(features) < self.config.min_training_samples:
                logger.warning(
                    f"Insufficient samples for {market_type} model: {len(features)}"
                )
                continue
            self.registry.train_model(market_type, features, labels_by_type[market_type])
            trained[market_type] = len(features)
            logger.info(f"Trained {market_type} model with {len(features)} samples")

        return trained

    # -------------------------------------------------------------------------
    # INTROSPECTION
    # -------------------------------------------------------------------------

    def get_model_metrics(self, market_type: Union[str, MarketType]) -> Optional[Dict[str, Any]]:
        """Fitted state of a registered model, None if the type is unknown."""
        if not self.registry.has_model(market_type):
            return None
        model = self.registry.get_model(market_type)
        key = market_type.value if isinstance(market_type, MarketType) else market_type
        return {
            "fitted": model.fitted,
            "market_type": key,
            "calibration_method": model.calibrator.method.value,
            "training_samples": model.training_samples,
        }

    def get_model_types(self) -> List[str]:
        return self.registry.market_types()


# =============================================================================
# REASONING
# =============================================================================


def build_reasoning(
    features: MarketFeatures,
    prediction: ModelPrediction,
    edge: float,
    gates: QualityGates,
    side: PickSide,
) -> str:
    """
    Human-readable reasoning for a model pick.

    Deterministic for the same inputs. Clauses are joined with ". ".
    """
    reasons: List[str] = []

    # Confidence level
    if prediction.confidence_bin is ConfidenceBin.HIGH:
        reasons.append("High confidence prediction based on strong signal patterns")
    elif prediction.confidence_bin is ConfidenceBin.MED:
        reasons.append("Medium confidence prediction with moderate signal strength")
    else:
        reasons.append("Low confidence prediction due to weak or conflicting signals")

    # Edge
    if edge > 0.05:
        reasons.append(f"Strong positive edge of {edge * 100:.1f}%")
    elif edge > 0.02:
        reasons.append(f"Moderate positive edge of {edge * 100:.1f}%")
    elif edge < -0.02:
        reasons.append(f"Negative edge of {edge * 100:.1f}% suggests unfavorable pricing")

    # Data quality
    if features.data_freshness_minutes <= 1:
        reasons.append("Very fresh data (under 1 minute)")
    elif features.data_freshness_minutes <= 5:
        reasons.append("Recent data (under 5 minutes)")
    else:
        reasons.append("Stale data may affect prediction accuracy")

    # Market activity
    if features.volume_24h_log > 8:
        reasons.append("High trading volume indicates active market")
    elif features.volume_24h_log > 6:
        reasons.append("Moderate trading volume")
    else:
        reasons.append("Low trading volume may indicate limited interest")

    # Price movement
    if abs(features.drift_15m) > 0.05:
        direction = "upward" if features.drift_15m > 0 else "downward"
        reasons.append(f"Recent {direction} price movement in last 15 minutes")

    # Volatility
    if features.volatility_60m > 0.1:
        reasons.append("High volatility suggests uncertain market conditions")
    elif features.volatility_60m < 0.02:
        reasons.append("Low volatility indicates stable market conditions")

    # Failed gates
    if not gates.freshness_ok:
        reasons.append("Data freshness below threshold")
    if not gates.confidence_ok:
        reasons.append("Calibrated probability below confidence threshold")
    if not gates.dispersion_ok:
        reasons.append("High price dispersion across platforms")
    if not gates.time_to_start_ok:
        reasons.append("Insufficient time before market resolution")

    # Final decision
    if side is PickSide.WATCH:
        reasons.append("Recommendation: Watch - insufficient edge or quality concerns")
    else:
        reasons.append(
            f"Recommendation: {side.value} - calibrated probability "
            f"{prediction.calibrated_prob * 100:.1f}%"
        )

    return ". ".join(reasons) + "."


# =============================================================================
# OUTBOUND MAPPING
# =============================================================================

_RECOMMENDATION_BY_SIDE = {
    PickSide.YES: Recommendation.BUY,
    PickSide.NO: Recommendation.SELL,
    PickSide.WATCH: Recommendation.WATCH,
}


def to_stored_recommendation(
    pick: PickResult,
    expires_at: Optional[datetime] = None,
) -> StoredRecommendation:
    """
    Map a pick to the stored recommendation shape.

    confidence_score = calibrated_prob * 100, halves rounded up
    value_score      = max(0, edge * 100)
    """
    return StoredRecommendation(
        market_id=pick.market_id,
        recommendation=_RECOMMENDATION_BY_SIDE[pick.side],
        confidence_score=round_half_up(pick.calibrated_prob * 100),
        value_score=max(0.0, pick.edge * 100),
        reasoning=pick.reasoning,
        expires_at=expires_at,
    )
