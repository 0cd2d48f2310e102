# =============================================================================
# POLYEDGE ANALYTICS
# Module: models/data_models.py
# Purpose: Plain data records exchanged with the ingestion and storage layers
# =============================================================================
#
# INBOUND (supplied by the data-ingestion collaborator):
# - Market, Outcome, PriceHistoryPoint
# - HistoricalSample (market bundle + resolved outcome) for training
#
# OUTBOUND (consumed by the persistence / UI collaborator):
# - StoredRecommendation
#
# All timestamps are timezone-aware UTC datetimes. Naive datetimes and
# ISO8601 strings are accepted on input and normalized to UTC.
#
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Union

from shared.enums import MarketStatus, Recommendation

TimestampLike = Union[datetime, str]


def parse_timestamp(value: TimestampLike) -> datetime:
    """
    Normalize a datetime or ISO8601 string to an aware UTC datetime.

    Raises:
        ValueError: If the string cannot be parsed.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# INBOUND RECORDS
# =============================================================================


@dataclass(frozen=True)
class Market:
    """
    A prediction market.

    FIELDS:
    - id: Internal identifier (used as PickResult.market_id)
    - market_id: Platform-side identifier
    - platform: Platform name (polymarket, kalshi, manifold, ...)
    - volume_24h: Traded volume over the last 24 hours
    - end_date: Resolution time, None for open-ended markets
    """
    id: str
    market_id: str
    platform: str
    title: str
    status: str = MarketStatus.OPEN.value
    volume_24h: float = 0.0
    liquidity: float = 0.0
    end_date: Optional[datetime] = None
    category: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        if self.end_date is not None:
            object.__setattr__(self, "end_date", parse_timestamp(self.end_date))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Market":
        """Create Market from dictionary."""
        end_date = data.get("end_date")
        return cls(
            id=str(data["id"]),
            market_id=str(data.get("market_id", data["id"])),
            platform=str(data.get("platform", "")),
            title=str(data.get("title", "")),
            status=str(data.get("status", MarketStatus.OPEN.value)),
            volume_24h=float(data.get("volume_24h") or 0.0),
            liquidity=float(data.get("liquidity") or 0.0),
            end_date=parse_timestamp(end_date) if end_date else None,
            category=data.get("category"),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Outcome:
    """One tradeable outcome of a market with its current price in [0, 1]."""
    market_id: str
    outcome_label: str
    current_price: float
    previous_price: Optional[float] = None
    price_change_24h: float = 0.0

    @property
    def is_yes(self) -> bool:
        return self.outcome_label.lower() == "yes"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Outcome":
        """Create Outcome from dictionary."""
        previous = data.get("previous_price")
        return cls(
            market_id=str(data.get("market_id", "")),
            outcome_label=str(data["outcome_label"]),
            current_price=float(data["current_price"]),
            previous_price=float(previous) if previous is not None else None,
            price_change_24h=float(data.get("price_change_24h") or 0.0),
        )


@dataclass(frozen=True)
class PriceHistoryPoint:
    """A single price observation for one outcome."""
    market_id: str
    outcome_label: str
    price: float
    timestamp: datetime
    volume: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "timestamp", parse_timestamp(self.timestamp))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceHistoryPoint":
        """Create PriceHistoryPoint from dictionary."""
        return cls(
            market_id=str(data.get("market_id", "")),
            outcome_label=str(data["outcome_label"]),
            price=float(data["price"]),
            timestamp=parse_timestamp(data["timestamp"]),
            volume=float(data.get("volume") or 0.0),
        )


@dataclass(frozen=True)
class MarketBundle:
    """A market together with its outcomes and price history."""
    market: Market
    outcomes: List[Outcome] = field(default_factory=list)
    price_history: List[PriceHistoryPoint] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MarketBundle":
        """Create MarketBundle from {"market", "outcomes", "price_history"}."""
        return cls(
            market=Market.from_dict(data["market"]),
            outcomes=[Outcome.from_dict(o) for o in data.get("outcomes", [])],
            price_history=[
                PriceHistoryPoint.from_dict(p) for p in data.get("price_history", [])
            ],
        )


@dataclass(frozen=True)
class HistoricalSample:
    """
    A resolved market used for training.

    actual_outcome: 1 if the market resolved YES, 0 if NO.
    """
    market: Market
    outcomes: List[Outcome]
    price_history: List[PriceHistoryPoint]
    actual_outcome: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalSample":
        """Create HistoricalSample from dictionary."""
        bundle = MarketBundle.from_dict(data)
        actual = int(data["actual_outcome"])
        if actual not in (0, 1):
            raise ValueError(f"actual_outcome must be 0 or 1, got {actual}")
        return cls(
            market=bundle.market,
            outcomes=bundle.outcomes,
            price_history=bundle.price_history,
            actual_outcome=actual,
        )


# =============================================================================
# OUTBOUND RECORDS
# =============================================================================


@dataclass(frozen=True)
class StoredRecommendation:
    """
    A pick mapped to the storage shape used by the dashboard.

    FIELDS:
    - recommendation: buy / sell / watch
    - confidence_score: 0-100 (calibrated probability x 100, rounded)
    - value_score: edge x 100, floored at 0
    - expires_at: set by the caller
    """
    market_id: str
    recommendation: Recommendation
    confidence_score: int
    value_score: float
    reasoning: str
    expires_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "market_id": self.market_id,
            "recommendation": self.recommendation.value,
            "confidence_score": self.confidence_score,
            "value_score": self.value_score,
            "reasoning": self.reasoning,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
