# =============================================================================
# POLYEDGE ANALYTICS - MARKET METRICS
# =============================================================================
#
# Market-level descriptive metrics used by the heuristic top-pick ranking.
# Independent of the model pipeline: no features, no calibration.
#
# SCORES:
# - value score      = 100 * (0.3 divergence + 0.2 arbitrage + 0.2 liquidity
#                              + 0.1 sharp + 0.2 |movement_24h|), in [0, 100]
# - confidence score = 50 + 20 liquidity - 30 volatility
#                      + 20 historical accuracy - 10 if arbitrage, in [0, 100]
#
# Zero starting prices and volumes are skipped, never divided by.
#
# =============================================================================

import math
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Any

from models.data_models import Market, Outcome, PriceHistoryPoint, parse_timestamp, utc_now

from .features import compute_liquidity_score, compute_price_spread

# Sum of outcome prices may deviate this much from 1.0 before it counts as arbitrage
ARBITRAGE_THRESHOLD = 0.05

# |1h movement| above this is a sharp movement
SHARP_MOVEMENT_THRESHOLD = 0.1


@dataclass(frozen=True)
class MarketMetrics:
    """Descriptive metrics for one market."""
    implied_probability: float
    probability_movement_1h: float
    probability_movement_24h: float
    volatility_index: float
    divergence_score: float
    arbitrage_opportunity: bool
    liquidity_score: float
    volume_velocity: float
    sharp_movement: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_market_metrics(
    market: Market,
    outcomes: Sequence[Outcome],
    price_history: Sequence[PriceHistoryPoint] = (),
    as_of: Optional[datetime] = None,
) -> MarketMetrics:
    """
    Compute all market metrics.

    Args:
        market: Market record
        outcomes: Current outcomes
        price_history: Price observations (any order)
        as_of: Evaluation time (default: now)

    Returns:
        MarketMetrics
    """
    as_of = utc_now() if as_of is None else parse_timestamp(as_of)

    movement_1h = probability_movement(outcomes, price_history, as_of, hours=1)
    movement_24h = probability_movement(outcomes, price_history, as_of, hours=24)

    return MarketMetrics(
        implied_probability=implied_probability(outcomes),
        probability_movement_1h=movement_1h,
        probability_movement_24h=movement_24h,
        volatility_index=volatility_index(price_history),
        # No cross-platform prices available
        divergence_score=0.0,
        arbitrage_opportunity=has_arbitrage_opportunity(outcomes),
        liquidity_score=compute_liquidity_score(market.volume_24h, compute_price_spread(outcomes)),
        volume_velocity=volume_velocity(price_history),
        sharp_movement=abs(movement_1h) > SHARP_MOVEMENT_THRESHOLD,
    )


def implied_probability(outcomes: Sequence[Outcome]) -> float:
    """Mean outcome price, 0 without outcomes."""
    if not outcomes:
        return 0.0
    return sum(o.current_price for o in outcomes) / len(outcomes)


def probability_movement(
    outcomes: Sequence[Outcome],
    price_history: Sequence[PriceHistoryPoint],
    as_of: datetime,
    hours: float,
) -> float:
    """
    Average fractional price change per outcome over the last `hours`.

    Only points in [as_of - hours, as_of] count. Outcomes with fewer than
    two points (or a zero starting price) contribute 0.
    """
    cutoff = as_of - timedelta(hours=hours)
    window = [p for p in price_history if cutoff <= p.timestamp <= as_of]
    if not window or not outcomes:
        return 0.0

    movements = []
    for outcome in outcomes:
        points = sorted(
            (p for p in window if p.outcome_label == outcome.outcome_label),
            key=lambda p: p.timestamp,
        )
        if len(points) < 2 or points[0].price == 0:
            movements.append(0.0)
            continue
        movements.append((points[-1].price - points[0].price) / points[0].price)

    return sum(movements) / len(movements)


def volatility_index(price_history: Sequence[PriceHistoryPoint]) -> float:
    """Population std-dev of consecutive returns over the time-sorted history."""
    points = sorted(price_history, key=lambda p: p.timestamp)
    changes = [
        (curr.price - prev.price) / prev.price
        for prev, curr in zip(points, points[1:])
        if prev.price != 0
    ]
    if not changes:
        return 0.0
    mean = sum(changes) / len(changes)
    return math.sqrt(sum((c - mean) ** 2 for c in changes) / len(changes))


def has_arbitrage_opportunity(outcomes: Sequence[Outcome]) -> bool:
    """Outcome prices of a market should sum to about 1."""
    if len(outcomes) < 2:
        return False
    total = sum(o.current_price for o in outcomes)
    return abs(total - 1.0) > ARBITRAGE_THRESHOLD


def volume_velocity(price_history: Sequence[PriceHistoryPoint]) -> float:
    """Mean relative volume change between consecutive observations."""
    points = sorted(price_history, key=lambda p: p.timestamp)
    changes: List[float] = [
        (curr.volume - prev.volume) / prev.volume
        for prev, curr in zip(points, points[1:])
        if prev.volume > 0
    ]
    if not changes:
        return 0.0
    return sum(changes) / len(changes)


# =============================================================================
# SCORES
# =============================================================================


def calculate_value_score(metrics: MarketMetrics) -> float:
    """Value score in [0, 100]."""
    score = 0.0
    score += metrics.divergence_score * 0.3
    score += (1.0 if metrics.arbitrage_opportunity else 0.0) * 0.2
    score += metrics.liquidity_score * 0.2
    score += (1.0 if metrics.sharp_movement else 0.0) * 0.1
    score += abs(metrics.probability_movement_24h) * 0.2
    return min(max(score * 100, 0.0), 100.0)


def calculate_confidence_score(
    metrics: MarketMetrics,
    historical_accuracy: Optional[float] = None,
) -> float:
    """
    Confidence score in [0, 100].

    Liquidity raises it, volatility and arbitrage lower it. A historical
    accuracy of 0 or None is ignored.
    """
    confidence = 50.0
    confidence += metrics.liquidity_score * 20
    confidence -= metrics.volatility_index * 30
    if historical_accuracy:
        confidence += historical_accuracy * 20
    if metrics.arbitrage_opportunity:
        confidence -= 10
    return min(max(confidence, 0.0), 100.0)
