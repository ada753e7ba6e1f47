"""
Card name search against TCGdex.

Search feeds an autocomplete box, so it never fails loudly: any provider
problem yields an empty result list.
"""

import logging
from dataclasses import dataclass

from pokevault.providers.tcgdex import (
    ArtworkProviderError,
    TcgdexClient,
    build_image_url,
    get_tcgdex_client,
)
from pokevault.services.rate_limiter import ApiRateLimiter, get_artwork_limiter

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


@dataclass(frozen=True, slots=True)
class CardSuggestion:
    """One autocomplete entry."""

    id: str
    name: str
    set_id: str
    number: str
    image_url: str | None
    display_text: str


def split_card_id(card_id: str, local_id: str | None) -> str:
    """Get the set part of a TCGdex card ID ("sv06.5-025" -> "sv06.5")."""
    if local_id and card_id.endswith(f"-{local_id}"):
        return card_id[: -len(local_id) - 1]
    return card_id.rsplit("-", 1)[0]


class CardSearch:
    def __init__(self, client: TcgdexClient, limiter: ApiRateLimiter) -> None:
        self.client = client
        self.limiter = limiter

    async def search(self, query: str) -> list[CardSuggestion]:
        """
        Find cards whose name contains ``query``.

        Returns an empty list for queries shorter than two characters,
        when the artwork budget is exhausted, or when TCGdex fails.
        """
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        if not self.limiter.try_acquire():
            return []

        try:
            cards = await self.client.search_cards(query)
        except ArtworkProviderError as e:
            logger.warning("CARD_SEARCH_FAILED", extra={"query": query, "error": str(e)})
            return []

        suggestions = []
        for card in cards:
            card_id = str(card["id"])
            local_id = str(card.get("localId") or "")
            set_id = split_card_id(card_id, local_id)
            name = str(card.get("name") or "")
            suggestions.append(
                CardSuggestion(
                    id=card_id,
                    name=name,
                    set_id=set_id,
                    number=local_id,
                    image_url=build_image_url(card.get("image"), "low", "webp"),
                    display_text=f"{name} - {set_id} #{local_id}",
                )
            )
        return suggestions


def get_card_search() -> CardSearch:
    return CardSearch(client=get_tcgdex_client(), limiter=get_artwork_limiter())
