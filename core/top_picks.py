# =============================================================================
# POLYEDGE ANALYTICS - HEURISTIC TOP PICKS
# =============================================================================
#
# Ranks markets by market metrics alone, without the trained model.
#
# PROCESS:
# 1. Drop markets below min_volume
# 2. Metrics, value score, confidence score per market
# 3. total = 0.6 * value + 0.4 * confidence
# 4. Keep liquidity >= min_liquidity and confidence >= min_confidence
# 5. Sort by total (descending), keep max_picks
#
# Persistence and expiry are handled by the caller.
#
# =============================================================================

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from models.data_models import Market, MarketBundle
from shared.enums import Platform, Recommendation

from .calibration import round_half_up
from .market_metrics import (
    MarketMetrics,
    calculate_confidence_score,
    calculate_market_metrics,
    calculate_value_score,
)

logger = logging.getLogger(__name__)

VALUE_WEIGHT = 0.6
CONFIDENCE_WEIGHT = 0.4


@dataclass(frozen=True)
class TopPicksConfig:
    """Selection thresholds for the heuristic ranking."""
    max_picks: int = 20
    min_volume: float = 1000.0
    min_liquidity: float = 0.3
    min_confidence: float = 60.0


@dataclass(frozen=True)
class RankedPick:
    """One market in the heuristic ranking."""
    market: Market
    metrics: MarketMetrics
    value_score: float
    confidence_score: float
    total_score: float
    recommendation: Recommendation
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_id": self.market.id,
            "title": self.market.title,
            "platform": self.market.platform,
            "recommendation": self.recommendation.value,
            "value_score": round(self.value_score, 2),
            "confidence_score": round(self.confidence_score, 2),
            "total_score": round(self.total_score, 2),
            "reasoning": self.reasoning,
            "metrics": self.metrics.to_dict(),
        }


def rank_top_picks(
    candidates: Sequence[MarketBundle],
    config: TopPicksConfig = TopPicksConfig(),
    as_of: Optional[datetime] = None,
) -> List[RankedPick]:
    """
    Rank markets by combined value and confidence score.

    Args:
        candidates: Market bundles (market, outcomes, price history)
        config: Selection thresholds
        as_of: Evaluation time for the movement windows (default: now)

    Returns:
        At most config.max_picks picks, best first
    """
    scored: List[RankedPick] = []
    for bundle in candidates:
        market = bundle.market
        if market.volume_24h < config.min_volume:
            continue

        metrics = calculate_market_metrics(market, bundle.outcomes, bundle.price_history, as_of)
        value_score = calculate_value_score(metrics)
        confidence_score = calculate_confidence_score(metrics)

        if metrics.liquidity_score < config.min_liquidity:
            continue
        if confidence_score < config.min_confidence:
            continue

        scored.append(RankedPick(
            market=market,
            metrics=metrics,
            value_score=value_score,
            confidence_score=confidence_score,
            total_score=value_score * VALUE_WEIGHT + confidence_score * CONFIDENCE_WEIGHT,
            recommendation=determine_recommendation(metrics, value_score),
            reasoning=build_top_pick_reasoning(market, metrics, value_score),
        ))

    scored.sort(key=lambda pick: pick.total_score, reverse=True)
    ranked = scored[:config.max_picks]
    logger.info(f"Found {len(ranked)} eligible markets for top picks ({len(candidates)} candidates)")
    return ranked


def determine_recommendation(metrics: MarketMetrics, value_score: float) -> Recommendation:
    """First matching rule wins."""
    if value_score > 70 and metrics.probability_movement_24h > 0.05:
        return Recommendation.BUY
    if value_score > 70 and metrics.probability_movement_24h < -0.05:
        return Recommendation.SELL
    if metrics.sharp_movement:
        return Recommendation.WATCH
    if metrics.arbitrage_opportunity:
        return Recommendation.BUY
    return Recommendation.WATCH


def build_top_pick_reasoning(market: Market, metrics: MarketMetrics, value_score: float) -> str:
    reasons: List[str] = []

    if metrics.liquidity_score > 0.8:
        reasons.append("High liquidity provides good trading opportunities")

    if abs(metrics.probability_movement_24h) > 0.1:
        direction = "increased" if metrics.probability_movement_24h > 0 else "decreased"
        reasons.append(f"Probability has {direction} significantly in the last 24 hours")

    if metrics.arbitrage_opportunity:
        reasons.append("Arbitrage opportunity detected across platforms")

    if metrics.sharp_movement:
        reasons.append("Recent sharp price movement indicates high activity")

    if metrics.volume_velocity > 0.5:
        reasons.append("Increasing trading volume suggests growing interest")

    platform = Platform.from_name(market.platform)
    if platform is Platform.POLYMARKET:
        reasons.append("Polymarket provides deep liquidity and active trading")
    elif platform is Platform.KALSHI:
        reasons.append("Kalshi offers regulated, reliable market data")

    if not reasons:
        reasons.append(f"Strong value score of {round_half_up(value_score)} based on market analysis")

    return ". ".join(reasons) + "."
