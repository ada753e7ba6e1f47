from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from pokevault.services.cache import reset_caches
from pokevault.services.rate_limiter import reset_rate_limiters


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Give every test fresh process-wide limiters and caches."""
    reset_rate_limiters()
    reset_caches()
    yield
    reset_rate_limiters()
    reset_caches()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 12, 0, tzinfo=UTC))


@pytest.fixture
def charizard_response() -> dict[str, Any]:
    """Pricing snapshot with only a TCGplayer market price."""
    return {
        "data": [
            {
                "id": "base1-4",
                "name": "Charizard",
                "setId": "base1",
                "number": "4",
                "tcgPlayer": {"prices": {"market": 350.00}},
            }
        ]
    }


@pytest.fixture
def full_price_response() -> dict[str, Any]:
    """Pricing snapshot with every price group populated."""
    return {
        "data": [
            {
                "id": "sv6pt5-25",
                "name": "Pikachu",
                "ebay": {
                    "prices": {
                        "psa10": {"stats": {"average": 120.0, "count": 14}},
                        "psa9": {"stats": {"average": 45.5, "count": 31}},
                        "psa8": {"stats": {"average": 22.0, "count": 8}},
                        "psa7": {"stats": {"average": 0}},
                    }
                },
                "tcgPlayer": {
                    "prices": {"market": 8.25, "mid": 9.0, "high": 19.99, "low": 5.1}
                },
                "cardmarket": {
                    "prices": {
                        "trendPrice": 7.8,
                        "averagePrice": 7.5,
                        "avg1": 7.9,
                        "avg7": 7.6,
                        "avg30": 7.2,
                        "reverseHoloAvg30": 3.1,
                        "reverseHoloAvg7": 3.4,
                    }
                },
            }
        ]
    }
