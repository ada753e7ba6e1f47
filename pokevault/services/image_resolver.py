"""
Card artwork resolution against TCGdex.

TCGdex identifies a card as ``{setId}-{localId}``, but the local ID format
varies by set ("004", "4", "tg20"). A primary candidate is tried first,
then alternative spellings of the number, stopping at the first hit.

No artwork is a normal outcome: resolution returns None and never raises.
"""

import logging
import re

from pokevault.models.card import CardIdentity, SetVocabulary, parse_card_number
from pokevault.providers.tcgdex import (
    ArtworkProviderError,
    TcgdexClient,
    build_image_url,
    get_tcgdex_client,
)
from pokevault.services.cache import TimedCache, get_image_cache, image_cache_key
from pokevault.services.rate_limiter import ApiRateLimiter, get_artwork_limiter
from pokevault.services.set_mapping import SetIdMapper, get_set_mapper

logger = logging.getLogger(__name__)

_LETTER_PREFIXED = re.compile(r"^[A-Z]+\d+$")

IMAGE_QUALITY = "high"
IMAGE_FORMAT = "png"


def build_card_id(set_id: str, number: str) -> str:
    """
    Build the primary TCGdex card ID.

    Examples:
        ("base1", "4") -> "base1-004"
        ("swsh12pt5", "TG20") -> "swsh12pt5-tg20"
        ("svp", "SVP-001") -> "svp-SVP-001"
    """
    if number.startswith("TG") or _LETTER_PREFIXED.match(number):
        return f"{set_id}-{number.lower()}"
    if number.isdigit():
        return f"{set_id}-{number.zfill(3)}"
    return f"{set_id}-{number}"


def alternative_card_ids(set_id: str, number: str) -> list[str]:
    """
    Alternative card IDs to try after the primary one, in order.

    Spellings: as entered, lowercased, 2-digit padded, 3-digit padded.
    IDs equal to the primary or to an earlier alternative are dropped.
    """
    tried = {build_card_id(set_id, number)}
    alternatives: list[str] = []
    for variant in (number, number.lower(), number.rjust(2, "0"), number.rjust(3, "0")):
        card_id = f"{set_id}-{variant}"
        if card_id not in tried:
            tried.add(card_id)
            alternatives.append(card_id)
    return alternatives


class ImageResolver:
    """Resolves a card's high-resolution image URL."""

    def __init__(
        self,
        client: TcgdexClient,
        limiter: ApiRateLimiter,
        cache: TimedCache[str],
        mapper: SetIdMapper,
    ) -> None:
        self.client = client
        self.limiter = limiter
        self.cache = cache
        self.mapper = mapper

    def artwork_set_id(self, identity: CardIdentity) -> str:
        """Express an identity's set in the artwork vocabulary, or pass it through."""
        mapped = self.mapper.map_set_id(
            identity.set_id, identity.vocabulary, SetVocabulary.ARTWORK
        )
        if mapped is None and identity.vocabulary == SetVocabulary.DISPLAY:
            pricing_id = self.mapper.map_set_id(
                identity.set_id, SetVocabulary.DISPLAY, SetVocabulary.PRICING
            )
            if pricing_id is not None:
                mapped = self.mapper.map_set_id(
                    pricing_id, SetVocabulary.PRICING, SetVocabulary.ARTWORK
                )
        return mapped or identity.set_id

    async def resolve_image(
        self, identity: CardIdentity, artwork_set_id: str | None = None
    ) -> str | None:
        """
        Resolve the image URL for a card.

        Args:
            identity: Card identity
            artwork_set_id: TCGdex set ID, if the caller already knows it

        Returns:
            High-resolution PNG URL, or None when no artwork was found
        """
        set_id = artwork_set_id or self.artwork_set_id(identity)
        number = parse_card_number(identity.number.strip())
        key = image_cache_key(identity.name, set_id, number)

        entry = self.cache.get(key)
        if entry is not None and self.cache.is_fresh(entry):
            return entry.value

        candidates = [build_card_id(set_id, number), *alternative_card_ids(set_id, number)]
        errored = False
        for card_id in candidates:
            if not self.limiter.try_acquire():
                logger.info("IMAGE_LOOKUP_BUDGET_EXHAUSTED", extra={"card_id": card_id})
                return entry.value if entry is not None else None

            try:
                card = await self.client.get_card(card_id)
            except ArtworkProviderError as e:
                logger.warning("UPSTREAM_IMAGE_ERROR", extra={"card_id": card_id, "error": str(e)})
                errored = True
                continue

            url = build_image_url(card.get("image") if card else None, IMAGE_QUALITY, IMAGE_FORMAT)
            if url:
                self.cache.set(key, url)
                return url

        if errored:
            return entry.value if entry is not None else None

        logger.info("IMAGE_NOT_FOUND", extra={"card_name": identity.name, "candidates": candidates})
        return None


def get_image_resolver() -> ImageResolver:
    """Dependency that provides a resolver wired to the global state."""
    return ImageResolver(
        client=get_tcgdex_client(),
        limiter=get_artwork_limiter(),
        cache=get_image_cache(),
        mapper=get_set_mapper(),
    )
