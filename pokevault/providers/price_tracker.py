"""
Pokemon Price Tracker API client.

Fetches price snapshots and set listings from the pricing provider.
Every request is bearer-token authenticated and bounded by a timeout.

API: https://www.pokemonpricetracker.com/api/v1
"""

import logging
from typing import Any

import httpx

from pokevault.config import settings
from pokevault.models.failure import ServiceNotConfiguredError

logger = logging.getLogger(__name__)


class PricingProviderError(Exception):
    """Raised when a pricing provider request fails."""

    pass


class PriceTrackerClient:
    """Async client for the pricing provider.

    Raises ``ServiceNotConfiguredError`` before any request when no API key
    is configured, and wraps transport/HTTP failures in
    ``PricingProviderError``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.pokemonpricetracker.com/api/v1",
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        if not self.configured:
            raise ServiceNotConfiguredError("POKEMON_API_KEY")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        headers = self._headers()
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params, headers=headers)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise PricingProviderError(
                f"Pricing request to {path} failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise PricingProviderError(f"Pricing request to {path} failed: {e}") from e
        except ValueError as e:
            raise PricingProviderError(f"Pricing response from {path} is not JSON") from e

    async def fetch_card_prices(self, name: str, set_id: str, number: str) -> dict[str, Any]:
        """
        Fetch the price snapshot for a card by identity.

        Args:
            name: Card name
            set_id: Pricing-provider set ID
            number: Card number within the set

        Returns:
            Raw provider response (``{"data": [card_record, ...]}``)

        Raises:
            ServiceNotConfiguredError: If no API key is configured
            PricingProviderError: If the request fails
        """
        data = await self._get(
            "/prices",
            {"name": name, "setId": set_id, "number": number, "limit": 1},
        )
        if not isinstance(data, dict):
            raise PricingProviderError("Unexpected price response format")
        return data

    async def fetch_card_prices_by_id(self, provider_card_id: str) -> dict[str, Any]:
        """
        Fetch the price snapshot for a card by provider card ID.

        Raises:
            ServiceNotConfiguredError: If no API key is configured
            PricingProviderError: If the request fails
        """
        data = await self._get("/prices", {"id": provider_card_id})
        if not isinstance(data, dict):
            raise PricingProviderError("Unexpected price response format")
        return data

    async def fetch_sets(self) -> list[dict[str, str]]:
        """
        Fetch all sets known to the pricing provider.

        Accepts either ``{"data": [...]}`` or a bare list. Entries without
        both ``id`` and ``name`` are dropped.

        Returns:
            List of ``{"id": ..., "name": ...}`` dicts

        Raises:
            PricingProviderError: If the request fails or the format is unknown
        """
        data = await self._get("/sets", {})

        if isinstance(data, dict) and isinstance(data.get("data"), list):
            raw_sets = data["data"]
        elif isinstance(data, list):
            raw_sets = data
        else:
            logger.warning("UNEXPECTED_SETS_FORMAT", extra={"type": type(data).__name__})
            raise PricingProviderError("Unexpected sets response format")

        return [
            {"id": str(s["id"]), "name": str(s["name"])}
            for s in raw_sets
            if isinstance(s, dict) and s.get("id") and s.get("name")
        ]


def get_price_tracker_client() -> PriceTrackerClient:
    """Build a client from application settings."""
    return PriceTrackerClient(
        api_key=settings.pokemon_api_key,
        base_url=settings.pricing_api_base_url,
        timeout=settings.upstream_timeout_seconds,
    )
