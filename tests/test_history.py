"""Tests for synthetic price history."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from pokevault.models.card import CardIdentity
from pokevault.models.failure import ServiceNotConfiguredError
from pokevault.models.pricing import PriceCategory
from pokevault.providers.price_tracker import PriceTrackerClient, PricingProviderError
from pokevault.services.cache import TimedCache
from pokevault.services.history import (
    HISTORY_RULES,
    SYNTHETIC_NOTE,
    PriceHistorySynthesizer,
    synthesize_history,
)
from pokevault.services.rate_limiter import ApiRateLimiter
from pokevault.services.set_mapping import SetIdMapper

CHARIZARD = CardIdentity(name="Charizard", set_id="base1", number="4")


class TestSynthesizeHistory:
    def test_single_tcgplayer_market_field(self, charizard_response, clock) -> None:
        """One priced field yields one observation at its fixed offset."""
        observations = synthesize_history(charizard_response, clock())

        assert len(observations) == 1
        obs = observations[0]
        assert obs.price == Decimal("350.0")
        assert obs.date == clock() - timedelta(days=10)
        assert obs.category == PriceCategory.TCGPLAYER
        assert obs.source == "TCGplayer market"
        assert obs.color == "#20c997"

    def test_every_rule_contributes(self, full_price_response, clock) -> None:
        observations = synthesize_history(full_price_response, clock())

        assert len(observations) == len(HISTORY_RULES) == 12

    def test_sorted_ascending_by_date(self, full_price_response, clock) -> None:
        observations = synthesize_history(full_price_response, clock())

        dates = [obs.date for obs in observations]
        assert dates == sorted(dates)
        assert observations[0].source == "Cardmarket 30-day average"
        assert observations[-1].source == "Cardmarket 1-day average"

    def test_graded_observations_use_stats_average(self, full_price_response, clock) -> None:
        observations = synthesize_history(full_price_response, clock())

        graded = {obs.source: obs.price for obs in observations if obs.category == "graded"}
        assert graded == {
            "eBay PSA 10 average": Decimal("120.0"),
            "eBay PSA 9 average": Decimal("45.5"),
            "eBay PSA 8 average": Decimal("22.0"),
        }

    def test_zero_fields_are_skipped(self, clock) -> None:
        response = {
            "data": [{"tcgPlayer": {"prices": {"market": 0, "low": 4.0}}}],
        }

        observations = synthesize_history(response, clock())

        assert [obs.source for obs in observations] == ["TCGplayer low"]

    def test_falls_back_to_highest_price(self, clock) -> None:
        """Fields outside the rules still produce one current observation."""
        response = {"data": [{"cardmarket": {"prices": {"averagePrice": 6.5}}}]}

        observations = synthesize_history(response, clock())

        assert len(observations) == 1
        assert observations[0].price == Decimal("6.5")
        assert observations[0].date == clock()
        assert observations[0].category == PriceCategory.CURRENT
        assert observations[0].source == "Highest current price"

    @pytest.mark.parametrize("response", [{}, {"data": []}, {"data": [{"id": "x"}]}])
    def test_nothing_priced_yields_empty(self, response, clock) -> None:
        assert synthesize_history(response, clock()) == []

    def test_deterministic(self, full_price_response, clock) -> None:
        """The same snapshot and reference time give identical output."""
        first = synthesize_history(full_price_response, clock())
        second = synthesize_history(full_price_response, clock())

        assert first == second


def make_client(response=None, configured: bool = True) -> MagicMock:
    client = MagicMock(spec=PriceTrackerClient)
    client.configured = configured
    client.fetch_card_prices = AsyncMock(return_value=response)
    return client


def make_synthesizer(client, clock, limiter=None, cache=None) -> PriceHistorySynthesizer:
    return PriceHistorySynthesizer(
        client=client,
        limiter=limiter if limiter is not None else ApiRateLimiter(clock=clock),
        cache=cache if cache is not None else TimedCache("snapshot", clock=clock),
        mapper=SetIdMapper(),
        clock=clock,
    )


class TestPriceHistorySynthesizer:
    async def test_history_is_labeled_synthetic(self, charizard_response, clock) -> None:
        synthesizer = make_synthesizer(make_client(charizard_response), clock)

        history = await synthesizer.history_for(CHARIZARD)

        assert history.synthetic
        assert history.note == SYNTHETIC_NOTE
        assert len(history.observations) == 1

    async def test_snapshot_is_cached(self, charizard_response, clock) -> None:
        client = make_client(charizard_response)
        synthesizer = make_synthesizer(client, clock)

        await synthesizer.history_for(CHARIZARD)
        clock.advance(minutes=10)
        history = await synthesizer.history_for(CHARIZARD)

        client.fetch_card_prices.assert_awaited_once()
        assert history.observations[0].date == clock() - timedelta(days=10)

    async def test_rate_limited_without_cache(self, charizard_response, clock) -> None:
        client = make_client(charizard_response)
        synthesizer = make_synthesizer(
            client, clock, limiter=ApiRateLimiter(daily_limit=0, clock=clock)
        )

        history = await synthesizer.history_for(CHARIZARD)

        assert history.observations == []
        assert history.note == "History not available - rate limit reached"
        client.fetch_card_prices.assert_not_awaited()

    async def test_upstream_error_uses_stale_snapshot(self, charizard_response, clock) -> None:
        client = make_client(charizard_response)
        synthesizer = make_synthesizer(client, clock)
        await synthesizer.history_for(CHARIZARD)
        clock.advance(hours=2)
        client.fetch_card_prices.side_effect = PricingProviderError("HTTP 502")

        history = await synthesizer.history_for(CHARIZARD)

        assert len(history.observations) == 1
        assert client.fetch_card_prices.await_count == 2

    async def test_not_configured_raises(self, clock) -> None:
        synthesizer = make_synthesizer(make_client(configured=False), clock)

        with pytest.raises(ServiceNotConfiguredError):
            await synthesizer.history_for(CHARIZARD)
