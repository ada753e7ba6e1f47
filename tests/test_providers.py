"""Tests for the upstream HTTP clients."""

import httpx
import pytest
import respx

from pokevault.models.failure import ServiceNotConfiguredError
from pokevault.providers.price_tracker import PriceTrackerClient, PricingProviderError
from pokevault.providers.tcgdex import ArtworkProviderError, TcgdexClient, build_image_url

PRICING_URL = "https://pricing.test/api/v1"
TCGDEX_URL = "https://tcgdex.test/v2/en"


@pytest.fixture
def pricing_client() -> PriceTrackerClient:
    return PriceTrackerClient(api_key="secret-key", base_url=PRICING_URL, timeout=1.0)


@pytest.fixture
def tcgdex_client() -> TcgdexClient:
    return TcgdexClient(base_url=TCGDEX_URL, timeout=1.0)


class TestPriceTrackerClient:
    """Tests for the pricing provider client."""

    @respx.mock
    async def test_fetch_card_prices(self, pricing_client, charizard_response) -> None:
        """Identity lookups send the bearer key and card parameters."""
        route = respx.get(f"{PRICING_URL}/prices").mock(
            return_value=httpx.Response(200, json=charizard_response)
        )

        data = await pricing_client.fetch_card_prices("Charizard", "base1", "4")

        assert data == charizard_response
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer secret-key"
        assert request.url.params["name"] == "Charizard"
        assert request.url.params["setId"] == "base1"
        assert request.url.params["number"] == "4"
        assert request.url.params["limit"] == "1"

    @respx.mock
    async def test_fetch_by_provider_id(self, pricing_client, charizard_response) -> None:
        route = respx.get(f"{PRICING_URL}/prices").mock(
            return_value=httpx.Response(200, json=charizard_response)
        )

        await pricing_client.fetch_card_prices_by_id("base1-4")

        assert route.calls.last.request.url.params["id"] == "base1-4"

    @respx.mock
    async def test_http_error_is_wrapped(self, pricing_client) -> None:
        respx.get(f"{PRICING_URL}/prices").mock(return_value=httpx.Response(500))

        with pytest.raises(PricingProviderError, match="HTTP 500"):
            await pricing_client.fetch_card_prices("Charizard", "base1", "4")

    @respx.mock
    async def test_timeout_is_wrapped(self, pricing_client) -> None:
        respx.get(f"{PRICING_URL}/prices").mock(side_effect=httpx.ConnectTimeout("timed out"))

        with pytest.raises(PricingProviderError):
            await pricing_client.fetch_card_prices("Charizard", "base1", "4")

    @respx.mock
    async def test_invalid_json_is_wrapped(self, pricing_client) -> None:
        respx.get(f"{PRICING_URL}/prices").mock(
            return_value=httpx.Response(200, content=b"<html>")
        )

        with pytest.raises(PricingProviderError, match="not JSON"):
            await pricing_client.fetch_card_prices("Charizard", "base1", "4")

    @respx.mock
    async def test_missing_key_makes_no_request(self) -> None:
        """Without a key the client fails before touching the network."""
        route = respx.get(f"{PRICING_URL}/prices").mock(return_value=httpx.Response(200, json={}))
        client = PriceTrackerClient(api_key="  ", base_url=PRICING_URL)

        assert not client.configured
        with pytest.raises(ServiceNotConfiguredError):
            await client.fetch_card_prices("Charizard", "base1", "4")
        assert not route.called

    @respx.mock
    async def test_fetch_sets_wrapped_format(self, pricing_client) -> None:
        """Entries without both id and name are dropped."""
        respx.get(f"{PRICING_URL}/sets").mock(
            return_value=httpx.Response(
                200,
                json={
                    "data": [
                        {"id": "base1", "name": "Base Set", "series": "Base"},
                        {"id": "jungle"},
                        {"name": "Nameless"},
                    ]
                },
            )
        )

        sets = await pricing_client.fetch_sets()

        assert sets == [{"id": "base1", "name": "Base Set"}]

    @respx.mock
    async def test_fetch_sets_bare_list(self, pricing_client) -> None:
        respx.get(f"{PRICING_URL}/sets").mock(
            return_value=httpx.Response(200, json=[{"id": "fossil", "name": "Fossil"}])
        )

        assert await pricing_client.fetch_sets() == [{"id": "fossil", "name": "Fossil"}]

    @respx.mock
    async def test_fetch_sets_unknown_format(self, pricing_client) -> None:
        respx.get(f"{PRICING_URL}/sets").mock(
            return_value=httpx.Response(200, json={"sets": "nope"})
        )

        with pytest.raises(PricingProviderError, match="Unexpected sets"):
            await pricing_client.fetch_sets()


class TestTcgdexClient:
    """Tests for the artwork provider client."""

    @respx.mock
    async def test_get_card(self, tcgdex_client) -> None:
        respx.get(f"{TCGDEX_URL}/cards/base1-004").mock(
            return_value=httpx.Response(200, json={"id": "base1-004", "image": "https://a/4"})
        )

        card = await tcgdex_client.get_card("base1-004")

        assert card == {"id": "base1-004", "image": "https://a/4"}

    @respx.mock
    async def test_unknown_card_is_none(self, tcgdex_client) -> None:
        """404 means TCGdex does not know the ID, not a failure."""
        respx.get(f"{TCGDEX_URL}/cards/base1-999").mock(return_value=httpx.Response(404))

        assert await tcgdex_client.get_card("base1-999") is None

    @respx.mock
    async def test_server_error_raises(self, tcgdex_client) -> None:
        respx.get(f"{TCGDEX_URL}/cards/base1-004").mock(return_value=httpx.Response(500))

        with pytest.raises(ArtworkProviderError, match="HTTP 500"):
            await tcgdex_client.get_card("base1-004")

    @respx.mock
    async def test_search_params(self, tcgdex_client) -> None:
        route = respx.get(f"{TCGDEX_URL}/cards").mock(
            return_value=httpx.Response(
                200,
                json=[{"id": "base1-58", "localId": "58", "name": "Pikachu"}, {"name": "no id"}],
            )
        )

        cards = await tcgdex_client.search_cards("pika")

        assert cards == [{"id": "base1-58", "localId": "58", "name": "Pikachu"}]
        params = route.calls.last.request.url.params
        assert params["name"] == "pika"
        assert params["sort:field"] == "name"
        assert params["sort:order"] == "ASC"
        assert params["pagination:itemsPerPage"] == "20"

    @respx.mock
    async def test_search_non_list_is_empty(self, tcgdex_client) -> None:
        respx.get(f"{TCGDEX_URL}/cards").mock(
            return_value=httpx.Response(200, json={"error": "x"})
        )

        assert await tcgdex_client.search_cards("pika") == []

    @respx.mock
    async def test_search_transport_error(self, tcgdex_client) -> None:
        respx.get(f"{TCGDEX_URL}/cards").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(ArtworkProviderError):
            await tcgdex_client.search_cards("pika")


class TestBuildImageUrl:
    @pytest.mark.parametrize(
        ("base", "quality", "fmt", "expected"),
        [
            ("https://a/base1/4", "high", "png", "https://a/base1/4/high.png"),
            ("https://a/base1/4/low.webp", "high", "png", "https://a/base1/4/high.png"),
            ("https://a/base1/4/high.png", "low", "webp", "https://a/base1/4/low.webp"),
        ],
    )
    def test_build(self, base, quality, fmt, expected) -> None:
        assert build_image_url(base, quality, fmt) == expected

    @pytest.mark.parametrize("base", [None, ""])
    def test_no_reference(self, base) -> None:
        assert build_image_url(base, "high", "png") is None
