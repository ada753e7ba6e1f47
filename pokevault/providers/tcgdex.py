"""
TCGdex API client.

Card lookups by composite ``{setId}-{number}`` identifier and name search.
Image references returned by TCGdex are base paths; a URL is built by
appending a quality tier and format.

API: https://api.tcgdex.net/v2/en
"""

import re
from typing import Any
from urllib.parse import quote

import httpx

from pokevault.config import settings

_IMAGE_SUFFIX_PATTERN = re.compile(r"/(small|large|high|medium|low)\.(png|jpg|webp)$")

SEARCH_PAGE_SIZE = 20


class ArtworkProviderError(Exception):
    """Raised when an artwork provider request fails."""

    pass


def build_image_url(base_image_url: str | None, quality: str, image_format: str) -> str | None:
    """
    Build an image URL for a quality tier and format.

    Any existing quality/format suffix is replaced.

    Args:
        base_image_url: Image reference from TCGdex
        quality: "low" or "high"
        image_format: "webp" or "png"

    Returns:
        Full image URL, or None if there is no image reference
    """
    if not base_image_url:
        return None
    clean = _IMAGE_SUFFIX_PATTERN.sub("", base_image_url)
    return f"{clean}/{quality}.{image_format}"


class TcgdexClient:
    """Async client for the artwork provider."""

    def __init__(
        self,
        base_url: str = "https://api.tcgdex.net/v2/en",
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def get_card(self, card_id: str) -> dict[str, Any] | None:
        """
        Fetch a card by its TCGdex ID (e.g. "base1-004").

        Returns:
            Card data, or None if TCGdex does not know the ID

        Raises:
            ArtworkProviderError: On transport errors or non-404 HTTP errors
        """
        url = f"{self.base_url}/cards/{quote(card_id, safe='')}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ArtworkProviderError(
                f"Card lookup for {card_id} failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ArtworkProviderError(f"Card lookup for {card_id} failed: {e}") from e
        except ValueError as e:
            raise ArtworkProviderError(f"Card lookup for {card_id} returned invalid JSON") from e

        return data if isinstance(data, dict) else None

    async def search_cards(self, query: str, limit: int = SEARCH_PAGE_SIZE) -> list[dict[str, Any]]:
        """
        Search cards whose name contains ``query``, sorted by name.

        Returns:
            Brief card records (``id``, ``localId``, ``name``, ``image``)

        Raises:
            ArtworkProviderError: If the request fails
        """
        params: dict[str, str | int] = {
            "name": query,
            "sort:field": "name",
            "sort:order": "ASC",
            "pagination:page": 1,
            "pagination:itemsPerPage": limit,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}/cards", params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise ArtworkProviderError(
                f"Card search failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise ArtworkProviderError(f"Card search failed: {e}") from e
        except ValueError as e:
            raise ArtworkProviderError("Card search returned invalid JSON") from e

        if not isinstance(data, list):
            return []
        return [card for card in data if isinstance(card, dict) and card.get("id")]


def get_tcgdex_client() -> TcgdexClient:
    """Build a client from application settings."""
    return TcgdexClient(
        base_url=settings.artwork_api_base_url,
        timeout=settings.upstream_timeout_seconds,
    )
