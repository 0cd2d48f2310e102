# =============================================================================
# POLYEDGE ANALYTICS
# Module: models/__init__.py
# Purpose: Package initialization for data records
# =============================================================================

from .data_models import (
    Market,
    Outcome,
    PriceHistoryPoint,
    MarketBundle,
    HistoricalSample,
    StoredRecommendation,
    parse_timestamp,
    utc_now,
)

__all__ = [
    "Market",
    "Outcome",
    "PriceHistoryPoint",
    "MarketBundle",
    "HistoricalSample",
    "StoredRecommendation",
    "parse_timestamp",
    "utc_now",
]
