# =============================================================================
# POLYEDGE ANALYTICS - FEATURE BUILDER
# =============================================================================
#
# Converts a market, its outcomes and a price-history window into a
# fixed-shape MarketFeatures vector.
#
# INVARIANTS:
# - FEATURE_NAMES order == MarketFeatures field order == weight order
#   of the logistic regression. Never reorder without retraining.
# - Pure function of its inputs (as_of defaults to wall-clock now).
# - Empty or sparse history never raises: freshness degrades to the
#   999 sentinel, drift/volatility/velocity degrade to 0.
#
# NOTE: minutes_to_start measures minutes until end_date (resolution),
# not until an event start. The name is kept for model compatibility.
#
# =============================================================================

import logging
import math
from dataclasses import dataclass, fields, asdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from models.data_models import Market, Outcome, PriceHistoryPoint, utc_now, parse_timestamp
from shared.enums import Platform

from .analytics_config import AnalyticsConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)

# Sentinel freshness when there is no price history at all
NO_HISTORY_FRESHNESS_MINUTES = 999.0

# Neutral consensus for markets without outcomes
NEUTRAL_PRICE = 0.5

# Volume at which the volume part of the liquidity score saturates
LIQUIDITY_VOLUME_CAP = 10000.0


# =============================================================================
# FEATURE VECTOR
# =============================================================================


@dataclass(frozen=True)
class MarketFeatures:
    """
    Flat numeric feature record for one market at one point in time.

    Immutable once built. Field order is the model input order.
    """
    # Consensus and dispersion
    consensus_price: float
    cross_book_dispersion: float

    # Time-based
    minutes_to_start: float
    data_freshness_minutes: float

    # Price movement
    drift_5m: float
    drift_15m: float
    drift_60m: float
    volatility_5m: float
    volatility_15m: float
    volatility_60m: float
    velocity_5m: float
    velocity_15m: float
    velocity_60m: float

    # Market quality
    volume_24h_log: float
    liquidity_score: float
    outcome_count: float
    price_spread: float

    # Platform one-hot
    platform_polymarket: float
    platform_kalshi: float
    platform_manifold: float
    platform_other: float

    def to_array(self) -> List[float]:
        return features_to_array(self)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


FEATURE_NAMES: Tuple[str, ...] = tuple(f.name for f in fields(MarketFeatures))
FEATURE_COUNT = len(FEATURE_NAMES)


def features_to_array(features: MarketFeatures) -> List[float]:
    """Convert features to a list in FEATURE_NAMES order."""
    return [float(getattr(features, name)) for name in FEATURE_NAMES]


def features_from_dict(data: Dict[str, float]) -> MarketFeatures:
    """
    Build MarketFeatures from a name -> value mapping.

    Raises:
        ValueError: If any feature is missing or an unknown one is given.
    """
    missing = [name for name in FEATURE_NAMES if name not in data]
    extra = [name for name in data if name not in FEATURE_NAMES]
    if missing or extra:
        raise ValueError(f"Feature mismatch: missing={missing} extra={extra}")
    return MarketFeatures(**{name: float(data[name]) for name in FEATURE_NAMES})


# =============================================================================
# BUILDER
# =============================================================================


def build_market_features(
    market: Market,
    outcomes: Sequence[Outcome],
    price_history: Sequence[PriceHistoryPoint],
    as_of: Optional[datetime] = None,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> MarketFeatures:
    """
    Build features for a market as of a specific timestamp.

    Args:
        market: Market record
        outcomes: Current outcomes of the market
        price_history: Price observations (any order, any outcome)
        as_of: Evaluation time (default: now, UTC)
        config: Pipeline configuration (drift windows)

    Returns:
        MarketFeatures
    """
    as_of = utc_now() if as_of is None else parse_timestamp(as_of)
    short, medium, long_ = config.window_minutes

    movement = {}
    for window in (short, medium, long_):
        window_groups = _window_groups(price_history, window, as_of)
        movement[window] = (
            _average(_drift(points) for points in window_groups),
            _average(_volatility(points) for points in window_groups),
            _average(_velocity(points) for points in window_groups),
        )

    price_spread = compute_price_spread(outcomes)
    platform = Platform.from_name(market.platform)

    return MarketFeatures(
        consensus_price=compute_consensus_price(outcomes),
        cross_book_dispersion=compute_cross_book_dispersion(outcomes),
        minutes_to_start=compute_minutes_to_start(market, as_of),
        data_freshness_minutes=compute_data_freshness(price_history, as_of),
        drift_5m=movement[short][0],
        drift_15m=movement[medium][0],
        drift_60m=movement[long_][0],
        volatility_5m=movement[short][1],
        volatility_15m=movement[medium][1],
        volatility_60m=movement[long_][1],
        velocity_5m=movement[short][2],
        velocity_15m=movement[medium][2],
        velocity_60m=movement[long_][2],
        volume_24h_log=math.log(max(market.volume_24h, 1.0)),
        liquidity_score=compute_liquidity_score(market.volume_24h, price_spread),
        outcome_count=float(len(outcomes)),
        price_spread=price_spread,
        platform_polymarket=1.0 if platform is Platform.POLYMARKET else 0.0,
        platform_kalshi=1.0 if platform is Platform.KALSHI else 0.0,
        platform_manifold=1.0 if platform is Platform.MANIFOLD else 0.0,
        platform_other=1.0 if platform is Platform.OTHER else 0.0,
    )


# =============================================================================
# CONSENSUS / DISPERSION
# =============================================================================


def find_yes_outcome(outcomes: Sequence[Outcome]) -> Optional[Outcome]:
    """First outcome whose label is 'yes' (case-insensitive), else None."""
    for outcome in outcomes:
        if outcome.is_yes:
            return outcome
    return None


def compute_consensus_price(outcomes: Sequence[Outcome]) -> float:
    """YES price if present, else mean outcome price, 0.5 without outcomes."""
    if not outcomes:
        return NEUTRAL_PRICE
    yes_outcome = find_yes_outcome(outcomes)
    if yes_outcome is not None:
        return yes_outcome.current_price
    return sum(o.current_price for o in outcomes) / len(outcomes)


def compute_cross_book_dispersion(outcomes: Sequence[Outcome]) -> float:
    """Population standard deviation of outcome prices."""
    if len(outcomes) < 2:
        return 0.0
    return _pstdev([o.current_price for o in outcomes])


def compute_price_spread(outcomes: Sequence[Outcome]) -> float:
    """Highest minus lowest outcome price, 0 with fewer than 2 outcomes."""
    if len(outcomes) < 2:
        return 0.0
    prices = [o.current_price for o in outcomes]
    return max(prices) - min(prices)


def compute_liquidity_score(volume_24h: float, price_spread: float) -> float:
    """0.7 * volume score (saturating at 10k) + 0.3 * spread penalty score."""
    volume_score = min(volume_24h / LIQUIDITY_VOLUME_CAP, 1.0)
    spread_score = max(0.0, 1.0 - price_spread * 10)
    return volume_score * 0.7 + spread_score * 0.3


# =============================================================================
# TIME
# =============================================================================


def compute_minutes_to_start(market: Market, as_of: datetime) -> float:
    """Minutes until end_date, floored at 0. 0 for open-ended markets."""
    if market.end_date is None:
        return 0.0
    diff = parse_timestamp(market.end_date) - as_of
    return max(0.0, diff.total_seconds() / 60.0)


def compute_data_freshness(price_history: Sequence[PriceHistoryPoint], as_of: datetime) -> float:
    """
    Minutes since the latest observation.

    Not clamped: a latest timestamp after as_of yields a negative value.
    """
    if not price_history:
        return NO_HISTORY_FRESHNESS_MINUTES
    latest = max(p.timestamp for p in price_history)
    return (as_of - latest).total_seconds() / 60.0


# =============================================================================
# PRICE MOVEMENT
# =============================================================================


def _window_groups(
    price_history: Sequence[PriceHistoryPoint],
    window_minutes: float,
    as_of: datetime,
) -> List[List[PriceHistoryPoint]]:
    """
    Time-sorted per-outcome groups of points at or after as_of - window.

    Returns no groups when fewer than 2 points fall in the window.
    """
    cutoff = as_of - timedelta(minutes=window_minutes)
    recent = [p for p in price_history if p.timestamp >= cutoff]
    if len(recent) < 2:
        return []

    groups: Dict[str, List[PriceHistoryPoint]] = {}
    for point in recent:
        groups.setdefault(point.outcome_label, []).append(point)
    return [sorted(points, key=lambda p: p.timestamp) for points in groups.values()]


def _drift(points: List[PriceHistoryPoint]) -> float:
    """Fractional change first -> last. Single points and zero starts give 0."""
    if len(points) < 2 or points[0].price == 0:
        return 0.0
    return (points[-1].price - points[0].price) / points[0].price


def _volatility(points: List[PriceHistoryPoint]) -> float:
    """Population std-dev of step returns (steps from a zero price skipped)."""
    if len(points) < 2:
        return 0.0
    returns = [
        (curr.price - prev.price) / prev.price
        for prev, curr in zip(points, points[1:])
        if prev.price != 0
    ]
    if not returns:
        return 0.0
    return _pstdev(returns)


def _velocity(points: List[PriceHistoryPoint]) -> float:
    """Absolute price change per minute between first and last point."""
    if len(points) < 2:
        return 0.0
    span_minutes = (points[-1].timestamp - points[0].timestamp).total_seconds() / 60.0
    if span_minutes == 0:
        return 0.0
    return abs(points[-1].price - points[0].price) / span_minutes


# =============================================================================
# HELPERS
# =============================================================================


def _average(values) -> float:
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def _pstdev(values: Sequence[float]) -> float:
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance)
