"""Shared record builders for the analytics test suite."""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from models.data_models import Market, Outcome, PriceHistoryPoint  # noqa: E402

AS_OF = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_market(
    market_id="m-1",
    platform="polymarket",
    volume_24h=1_000_000.0,
    end_date=None,
    title="Will it happen?",
):
    return Market(
        id=market_id,
        market_id=f"ext-{market_id}",
        platform=platform,
        title=title,
        volume_24h=volume_24h,
        end_date=end_date,
    )


def make_outcomes(yes=0.65, no=0.35, market_id="m-1"):
    return [
        Outcome(market_id=market_id, outcome_label="Yes", current_price=yes),
        Outcome(market_id=market_id, outcome_label="No", current_price=no),
    ]


def make_history(prices, label="Yes", end=AS_OF, step_minutes=1.0, market_id="m-1", volumes=None):
    """
    Evenly spaced price points ending at `end`.

    The last price is observed at `end`, earlier ones step_minutes apart.
    """
    points = []
    n = len(prices)
    for i, price in enumerate(prices):
        points.append(PriceHistoryPoint(
            market_id=market_id,
            outcome_label=label,
            price=price,
            timestamp=end - timedelta(minutes=step_minutes * (n - 1 - i)),
            volume=volumes[i] if volumes else 0.0,
        ))
    return points


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def market():
    return make_market()


@pytest.fixture
def outcomes():
    return make_outcomes()


@pytest.fixture
def fresh_history():
    return make_history([0.64, 0.645, 0.65], step_minutes=0.25)
