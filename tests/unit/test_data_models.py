# =============================================================================
# UNIT TESTS - Data Records
# =============================================================================

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from models.data_models import (
    HistoricalSample,
    Market,
    MarketBundle,
    Outcome,
    PriceHistoryPoint,
    StoredRecommendation,
    parse_timestamp,
)
from shared.enums import Platform, Recommendation


class TestTimestamps:

    def test_z_suffix(self):
        dt = parse_timestamp("2025-06-01T12:00:00Z")
        assert dt == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        dt = parse_timestamp("2025-06-01T14:00:00+02:00")
        assert dt == datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert dt.utcoffset() == timedelta(0)

    def test_naive_assumed_utc(self):
        dt = parse_timestamp(datetime(2025, 6, 1, 12, 0))
        assert dt.tzinfo is not None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")

    def test_records_normalize_timestamps(self):
        point = PriceHistoryPoint("m", "Yes", 0.5, datetime(2025, 6, 1, 12, 0))
        assert point.timestamp.tzinfo is not None


class TestFromDict:

    def test_bundle(self):
        bundle = MarketBundle.from_dict({
            "market": {"id": "m-1", "platform": "kalshi", "title": "T",
                       "volume_24h": "1200", "end_date": "2025-07-01T00:00:00Z"},
            "outcomes": [{"outcome_label": "Yes", "current_price": 0.4}],
            "price_history": [{"outcome_label": "Yes", "price": 0.4,
                               "timestamp": "2025-06-01T12:00:00Z"}],
        })
        assert bundle.market.market_id == "m-1"
        assert bundle.market.volume_24h == 1200.0
        assert bundle.market.end_date.year == 2025
        assert bundle.outcomes[0].is_yes
        assert len(bundle.price_history) == 1

    def test_market_missing_id_raises(self):
        with pytest.raises(KeyError):
            Market.from_dict({"title": "no id"})

    def test_sample_label_must_be_binary(self):
        data = {"market": {"id": "m"}, "outcomes": [], "price_history": [], "actual_outcome": 2}
        with pytest.raises(ValueError, match="actual_outcome"):
            HistoricalSample.from_dict(data)

    def test_outcome_yes_is_case_insensitive(self):
        assert Outcome.from_dict({"outcome_label": "YES", "current_price": 0.1}).is_yes
        assert not Outcome.from_dict({"outcome_label": "Yesterday", "current_price": 0.1}).is_yes


class TestStoredRecommendation:

    def test_to_dict(self):
        rec = StoredRecommendation(
            market_id="m-1",
            recommendation=Recommendation.BUY,
            confidence_score=70,
            value_score=5.0,
            reasoning="r",
            expires_at=datetime(2025, 6, 2, tzinfo=timezone.utc),
        )
        data = rec.to_dict()
        assert data["recommendation"] == "buy"
        assert data["expires_at"] == "2025-06-02T00:00:00+00:00"


class TestPlatform:

    @pytest.mark.parametrize("name,expected", [
        ("polymarket", Platform.POLYMARKET),
        ("kalshi", Platform.KALSHI),
        ("manifold", Platform.MANIFOLD),
        ("other", Platform.OTHER),
        ("betfair", Platform.OTHER),
        ("", Platform.OTHER),
    ])
    def test_from_name(self, name, expected):
        assert Platform.from_name(name) is expected
