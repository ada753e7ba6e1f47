"""Tests for card lookup endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from pokevault.main import app
from pokevault.providers.price_tracker import PriceTrackerClient
from pokevault.providers.tcgdex import TcgdexClient
from pokevault.services.cache import TimedCache
from pokevault.services.card_search import CardSearch, get_card_search
from pokevault.services.history import PriceHistorySynthesizer, get_history_synthesizer
from pokevault.services.image_resolver import ImageResolver, get_image_resolver
from pokevault.services.price_resolver import PriceResolver, get_price_resolver
from pokevault.services.rate_limiter import ApiRateLimiter
from pokevault.services.set_mapping import SetIdMapper


@pytest.fixture
def pricing_client(charizard_response) -> MagicMock:
    client = MagicMock(spec=PriceTrackerClient)
    client.configured = True
    client.fetch_card_prices = AsyncMock(return_value=charizard_response)
    client.fetch_card_prices_by_id = AsyncMock(return_value=charizard_response)
    return client


@pytest.fixture
def artwork_client() -> MagicMock:
    client = MagicMock(spec=TcgdexClient)
    client.get_card = AsyncMock(return_value={"image": "https://a/base1/4"})
    client.search_cards = AsyncMock(
        return_value=[{"id": "base1-4", "localId": "4", "name": "Charizard"}]
    )
    return client


@pytest.fixture
async def client(clock, pricing_client, artwork_client):
    """Provide an async test client with upstream clients mocked."""
    mapper = SetIdMapper()
    pricing_limiter = ApiRateLimiter(clock=clock)
    artwork_limiter = ApiRateLimiter(name="artwork", clock=clock)
    price_resolver = PriceResolver(
        pricing_client, pricing_limiter, TimedCache("price", clock=clock), mapper
    )

    app.dependency_overrides[get_price_resolver] = lambda: price_resolver
    app.dependency_overrides[get_image_resolver] = lambda: ImageResolver(
        artwork_client, artwork_limiter, TimedCache("image", clock=clock), mapper
    )
    app.dependency_overrides[get_history_synthesizer] = lambda: PriceHistorySynthesizer(
        pricing_client, pricing_limiter, TimedCache("snapshot", clock=clock), mapper, clock
    )
    app.dependency_overrides[get_card_search] = lambda: CardSearch(artwork_client, artwork_limiter)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


class TestPriceEndpoint:
    async def test_get_price(self, client: AsyncClient, pricing_client) -> None:
        response = await client.get(
            "/cards/price", params={"name": "Charizard", "set": "base1", "number": "4/102"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["price"] == 350.0
        assert data["card"] == {"name": "Charizard", "set": "base1", "number": "4/102"}
        assert data["cached"] is False
        pricing_client.fetch_card_prices.assert_awaited_once_with("Charizard", "base1", "4")

    async def test_second_lookup_is_cached(self, client: AsyncClient, pricing_client) -> None:
        params = {"name": "Charizard", "set": "base1", "number": "4"}

        await client.get("/cards/price", params=params)
        data = (await client.get("/cards/price", params=params)).json()

        assert data["cached"] is True
        pricing_client.fetch_card_prices.assert_awaited_once()

    async def test_artwork_vocabulary(self, client: AsyncClient, pricing_client) -> None:
        await client.get(
            "/cards/price",
            params={"name": "Pikachu", "set": "sv06.5", "number": "25", "vocabulary": "artwork"},
        )

        pricing_client.fetch_card_prices.assert_awaited_once_with("Pikachu", "sv6pt5", "25")

    async def test_unmapped_set_is_422(self, client: AsyncClient) -> None:
        response = await client.get(
            "/cards/price",
            params={"name": "Pikachu", "set": "nowhere", "number": "25", "vocabulary": "artwork"},
        )

        assert response.status_code == 422
        data = response.json()
        assert data["outcome"] == "known_failure"
        assert data["failure"]["kind"] == "unmapped_identifier"
        assert data["failure"]["context"]["set_id"] == "nowhere"

    async def test_not_configured_is_503(self, client: AsyncClient, pricing_client) -> None:
        pricing_client.configured = False

        response = await client.get(
            "/cards/price", params={"name": "Charizard", "set": "base1", "number": "4"}
        )

        assert response.status_code == 503
        assert response.json()["failure"]["kind"] == "service_unavailable"

    async def test_missing_param_is_422(self, client: AsyncClient) -> None:
        response = await client.get("/cards/price", params={"name": "Charizard"})

        assert response.status_code == 422

    async def test_price_by_provider_id(self, client: AsyncClient, pricing_client) -> None:
        response = await client.get("/cards/price/base1-4")

        assert response.status_code == 200
        assert response.json()["price"] == 350.0
        pricing_client.fetch_card_prices_by_id.assert_awaited_once_with("base1-4")


class TestImageEndpoint:
    async def test_get_image(self, client: AsyncClient, artwork_client) -> None:
        response = await client.get(
            "/cards/image", params={"name": "Charizard", "set": "base1", "number": "4/102"}
        )

        assert response.status_code == 200
        assert response.json()["image_url"] == "https://a/base1/4/high.png"
        artwork_client.get_card.assert_awaited_once_with("base1-004")

    async def test_explicit_artwork_set(self, client: AsyncClient, artwork_client) -> None:
        await client.get(
            "/cards/image",
            params={"name": "Pikachu", "set": "sv6pt5", "number": "25", "artwork_set": "x1"},
        )

        artwork_client.get_card.assert_awaited_once_with("x1-025")

    async def test_no_artwork_is_null(self, client: AsyncClient, artwork_client) -> None:
        artwork_client.get_card.return_value = None

        response = await client.get(
            "/cards/image", params={"name": "Charizard", "set": "base1", "number": "4"}
        )

        assert response.status_code == 200
        assert response.json()["image_url"] is None


class TestHistoryEndpoint:
    async def test_get_history(self, client: AsyncClient) -> None:
        response = await client.get(
            "/cards/history", params={"name": "Charizard", "set": "base1", "number": "4"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["synthetic"] is True
        assert len(data["observations"]) == 1
        obs = data["observations"][0]
        assert obs["price"] == 350.0
        assert obs["category"] == "tcgplayer"
        assert obs["color"] == "#20c997"


class TestSearchEndpoint:
    async def test_search(self, client: AsyncClient) -> None:
        response = await client.get("/cards/search", params={"query": "char"})

        assert response.status_code == 200
        assert response.json() == [
            {
                "id": "base1-4",
                "name": "Charizard",
                "set": "base1",
                "number": "4",
                "image_url": None,
                "display_text": "Charizard - base1 #4",
            }
        ]

    async def test_short_query_is_empty(self, client: AsyncClient, artwork_client) -> None:
        response = await client.get("/cards/search", params={"query": "c"})

        assert response.json() == []
        artwork_client.search_cards.assert_not_awaited()


class TestUnexpectedFailure:
    async def test_unknown_failure_envelope(self, artwork_client) -> None:
        """Exceptions that are not known failures still return the envelope."""
        artwork_client.search_cards = AsyncMock(side_effect=RuntimeError("boom"))
        app.dependency_overrides[get_card_search] = lambda: CardSearch(
            artwork_client, ApiRateLimiter(name="artwork")
        )

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        try:
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.get("/cards/search", params={"query": "char"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        data = response.json()
        assert data["outcome"] == "unknown_failure"
        assert data["failure"]["kind"] == "unknown"
        assert data["failure"]["detail"] == "RuntimeError"
