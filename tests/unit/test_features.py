# =============================================================================
# UNIT TESTS - Feature Builder
# =============================================================================

import math
import sys
from datetime import timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from core.analytics_config import AnalyticsConfig
from core.features import (
    FEATURE_COUNT,
    FEATURE_NAMES,
    MarketFeatures,
    NO_HISTORY_FRESHNESS_MINUTES,
    build_market_features,
    compute_cross_book_dispersion,
    compute_liquidity_score,
    compute_price_spread,
    features_from_dict,
    features_to_array,
)
from models.data_models import Outcome
from tests.conftest import AS_OF, make_history, make_market, make_outcomes


# =============================================================================
# SHAPE
# =============================================================================

class TestFeatureShape:

    def test_feature_count(self):
        assert FEATURE_COUNT == 21
        assert len(FEATURE_NAMES) == 21

    def test_order_starts_with_consensus_and_ends_with_platform(self):
        assert FEATURE_NAMES[0] == "consensus_price"
        assert FEATURE_NAMES[3] == "data_freshness_minutes"
        assert FEATURE_NAMES[-1] == "platform_other"

    def test_array_follows_names(self):
        features = build_market_features(make_market(), make_outcomes(), [], AS_OF)
        array = features_to_array(features)
        assert len(array) == FEATURE_COUNT
        for name, value in zip(FEATURE_NAMES, array):
            assert getattr(features, name) == value

    def test_from_dict_rejects_missing(self):
        data = {name: 0.0 for name in FEATURE_NAMES[:-1]}
        with pytest.raises(ValueError, match="missing"):
            features_from_dict(data)

    def test_from_dict_rejects_extra(self):
        data = {name: 0.0 for name in FEATURE_NAMES}
        data["bogus"] = 1.0
        with pytest.raises(ValueError, match="bogus"):
            features_from_dict(data)

    def test_features_are_immutable(self):
        features = build_market_features(make_market(), make_outcomes(), [], AS_OF)
        with pytest.raises(Exception):
            features.consensus_price = 0.1


# =============================================================================
# CONSENSUS / DISPERSION / SPREAD
# =============================================================================

class TestConsensus:

    def test_consensus_is_yes_price(self):
        features = build_market_features(make_market(), make_outcomes(0.65, 0.35), [], AS_OF)
        assert features.consensus_price == pytest.approx(0.65)

    def test_consensus_yes_label_case_insensitive(self):
        outcomes = [
            Outcome(market_id="m-1", outcome_label="NO", current_price=0.2),
            Outcome(market_id="m-1", outcome_label="YES", current_price=0.8),
        ]
        features = build_market_features(make_market(), outcomes, [], AS_OF)
        assert features.consensus_price == pytest.approx(0.8)

    def test_consensus_without_yes_is_mean(self):
        outcomes = [
            Outcome(market_id="m-1", outcome_label="A", current_price=0.2),
            Outcome(market_id="m-1", outcome_label="B", current_price=0.3),
            Outcome(market_id="m-1", outcome_label="C", current_price=0.5),
        ]
        features = build_market_features(make_market(), outcomes, [], AS_OF)
        assert features.consensus_price == pytest.approx(1.0 / 3)

    def test_consensus_without_outcomes_is_neutral(self):
        features = build_market_features(make_market(), [], [], AS_OF)
        assert features.consensus_price == 0.5

    def test_dispersion_of_binary_market(self):
        assert compute_cross_book_dispersion(make_outcomes(0.65, 0.35)) == pytest.approx(0.15)

    def test_dispersion_single_outcome_is_zero(self):
        outcomes = [Outcome(market_id="m-1", outcome_label="Yes", current_price=0.9)]
        assert compute_cross_book_dispersion(outcomes) == 0.0

    def test_price_spread(self):
        assert compute_price_spread(make_outcomes(0.65, 0.35)) == pytest.approx(0.3)
        assert compute_price_spread([]) == 0.0


# =============================================================================
# TIME FEATURES
# =============================================================================

class TestTimeFeatures:

    def test_empty_history_gives_sentinel_and_zero_movement(self):
        features = build_market_features(make_market(), make_outcomes(), [], AS_OF)
        assert features.data_freshness_minutes == NO_HISTORY_FRESHNESS_MINUTES == 999
        assert features.drift_5m == 0
        assert features.volatility_5m == 0
        assert features.velocity_60m == 0

    def test_freshness_from_latest_point(self):
        history = make_history([0.6, 0.62], end=AS_OF - timedelta(minutes=10))
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        assert features.data_freshness_minutes == pytest.approx(10.0)

    def test_future_observation_gives_negative_freshness(self):
        history = make_history([0.6], end=AS_OF + timedelta(minutes=2))
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        assert features.data_freshness_minutes == pytest.approx(-2.0)

    def test_minutes_to_start_counts_to_end_date(self):
        market = make_market(end_date=AS_OF + timedelta(hours=2))
        features = build_market_features(market, make_outcomes(), [], AS_OF)
        assert features.minutes_to_start == pytest.approx(120.0)

    def test_minutes_to_start_floored_at_zero(self):
        market = make_market(end_date=AS_OF - timedelta(hours=2))
        features = build_market_features(market, make_outcomes(), [], AS_OF)
        assert features.minutes_to_start == 0.0

    def test_open_ended_market(self):
        features = build_market_features(make_market(end_date=None), make_outcomes(), [], AS_OF)
        assert features.minutes_to_start == 0.0

    def test_naive_as_of_is_treated_as_utc(self):
        history = make_history([0.6, 0.62], end=AS_OF - timedelta(minutes=10))
        naive = AS_OF.replace(tzinfo=None)
        features = build_market_features(make_market(), make_outcomes(), history, naive)
        assert features.data_freshness_minutes == pytest.approx(10.0)


# =============================================================================
# PRICE MOVEMENT
# =============================================================================

class TestPriceMovement:

    def test_drift_in_short_window(self):
        history = make_history([0.5, 0.55], step_minutes=2)
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        assert features.drift_5m == pytest.approx(0.1)
        assert features.velocity_5m == pytest.approx(0.025)

    def test_points_outside_short_window_ignored(self):
        history = make_history([0.4, 0.5, 0.55], step_minutes=4)
        # Points at -8, -4 and 0 minutes: only the last two are in the 5m window
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        assert features.drift_5m == pytest.approx(0.1)
        assert features.drift_15m == pytest.approx(0.375)

    def test_single_point_in_window_gives_zero(self):
        history = make_history([0.5, 0.55], step_minutes=10)
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        assert features.drift_5m == 0.0
        assert features.drift_15m == pytest.approx(0.1)

    def test_volatility_of_step_returns(self):
        history = make_history([0.5, 0.55, 0.5], step_minutes=1)
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        returns = [0.1, (0.5 - 0.55) / 0.55]
        mean = sum(returns) / 2
        expected = math.sqrt(sum((r - mean) ** 2 for r in returns) / 2)
        assert features.volatility_5m == pytest.approx(expected)

    def test_groups_averaged_per_outcome(self):
        history = (
            make_history([0.5, 0.6], label="Yes", step_minutes=1)
            + make_history([0.5, 0.4], label="No", step_minutes=1)
        )
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        assert features.drift_5m == pytest.approx(0.0)

    def test_zero_start_price_does_not_divide(self):
        history = make_history([0.0, 0.5], step_minutes=1)
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        assert features.drift_5m == 0.0
        assert features.volatility_5m == 0.0

    def test_custom_windows(self):
        config = AnalyticsConfig(drift_windows={"SHORT": 1, "MEDIUM": 2, "LONG": 3})
        history = make_history([0.4, 0.5, 0.55], step_minutes=4)
        features = build_market_features(make_market(), make_outcomes(), history, AS_OF, config)
        assert features.drift_5m == 0.0
        assert features.drift_60m == 0.0


# =============================================================================
# MARKET QUALITY / PLATFORM
# =============================================================================

class TestMarketQuality:

    def test_volume_log(self):
        features = build_market_features(make_market(volume_24h=1_000_000), make_outcomes(), [], AS_OF)
        assert features.volume_24h_log == pytest.approx(math.log(1_000_000))

    def test_volume_log_floor(self):
        features = build_market_features(make_market(volume_24h=0), make_outcomes(), [], AS_OF)
        assert features.volume_24h_log == 0.0

    def test_liquidity_score_formula(self):
        # volume saturates, spread 0.3 -> spread score 0
        assert compute_liquidity_score(1_000_000, 0.3) == pytest.approx(0.7)
        assert compute_liquidity_score(5_000, 0.0) == pytest.approx(0.65)

    def test_liquidity_without_outcomes_is_finite(self):
        features = build_market_features(make_market(volume_24h=0), [], [], AS_OF)
        assert features.liquidity_score == pytest.approx(0.3)
        assert features.outcome_count == 0

    @pytest.mark.parametrize("platform,field", [
        ("polymarket", "platform_polymarket"),
        ("kalshi", "platform_kalshi"),
        ("manifold", "platform_manifold"),
        ("predictit", "platform_other"),
    ])
    def test_platform_one_hot(self, platform, field):
        features = build_market_features(make_market(platform=platform), make_outcomes(), [], AS_OF)
        one_hot = [
            features.platform_polymarket,
            features.platform_kalshi,
            features.platform_manifold,
            features.platform_other,
        ]
        assert sum(one_hot) == 1.0
        assert getattr(features, field) == 1.0

    def test_build_is_deterministic(self):
        history = make_history([0.5, 0.55, 0.6])
        a = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        b = build_market_features(make_market(), make_outcomes(), history, AS_OF)
        assert a == b
        assert isinstance(a, MarketFeatures)
