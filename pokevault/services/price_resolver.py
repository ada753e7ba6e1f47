"""
Price resolution: cache, budget check, upstream lookup, degrade.

Resolution order for a card, stopping at the first step that answers:
1. Normalize the set ID into the pricing vocabulary
2. Fresh cache entry -> return it, no upstream call
3. Budget exhausted -> stale cache entry with a note, else None with a note
4. Upstream lookup -> extract highest price, write through, return
5. Upstream error -> stale cache entry with a note, else None with a note

A price is never invented. When nothing is known the result is None.
"""

import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any

from pokevault.models.card import CardIdentity, SetVocabulary
from pokevault.models.failure import ServiceNotConfiguredError, UnmappedSetError
from pokevault.models.pricing import PriceResult
from pokevault.providers.price_tracker import (
    PriceTrackerClient,
    PricingProviderError,
    get_price_tracker_client,
)
from pokevault.services.cache import CacheEntry, TimedCache, get_price_cache, price_cache_key
from pokevault.services.price_extraction import extract_highest_price
from pokevault.services.rate_limiter import ApiRateLimiter, get_pricing_limiter
from pokevault.services.set_mapping import SetIdMapper, get_set_mapper

logger = logging.getLogger(__name__)

RATE_LIMIT_REASON = "rate limit reached"
UPSTREAM_ERROR_REASON = "pricing service unavailable"
NO_PRICE_DATA_NOTE = "No price data available for this card"


def to_pricing_set_id(identity: CardIdentity, mapper: SetIdMapper) -> str:
    """
    Express an identity's set ID in the pricing vocabulary.

    Raises:
        UnmappedSetError: If the set has no pricing counterpart
    """
    set_id = mapper.map_set_id(identity.set_id, identity.vocabulary, SetVocabulary.PRICING)
    if set_id is None:
        raise UnmappedSetError(
            identity.set_id,
            source=identity.vocabulary.value,
            target=SetVocabulary.PRICING.value,
        )
    return set_id


class PriceResolver:
    """
    Resolves a card's representative price.

    All shared state (limiter, cache) is injected so tests can build
    isolated instances.
    """

    def __init__(
        self,
        client: PriceTrackerClient,
        limiter: ApiRateLimiter,
        cache: TimedCache[Decimal | None],
        mapper: SetIdMapper,
    ) -> None:
        self.client = client
        self.limiter = limiter
        self.cache = cache
        self.mapper = mapper

    async def resolve_price(self, identity: CardIdentity) -> PriceResult:
        """
        Resolve the price for a card identity.

        Raises:
            UnmappedSetError: If the set ID cannot be expressed for pricing
            ServiceNotConfiguredError: If no pricing API key is configured
        """
        set_id = to_pricing_set_id(identity, self.mapper)
        key = price_cache_key(identity.name, set_id, identity.number)

        async def fetch() -> dict[str, Any]:
            return await self.client.fetch_card_prices(identity.name, set_id, identity.number)

        return await self._resolve(key, fetch)

    async def resolve_price_by_provider_id(self, provider_card_id: str) -> PriceResult:
        """
        Resolve the price for a card by its pricing-provider ID.

        Raises:
            ServiceNotConfiguredError: If no pricing API key is configured
        """
        key = f"id-{provider_card_id}".lower()

        async def fetch() -> dict[str, Any]:
            return await self.client.fetch_card_prices_by_id(provider_card_id)

        return await self._resolve(key, fetch)

    async def _resolve(
        self,
        key: str,
        fetch: Callable[[], Awaitable[dict[str, Any]]],
    ) -> PriceResult:
        if not self.client.configured:
            raise ServiceNotConfiguredError("POKEMON_API_KEY")

        entry = self.cache.get(key)
        if entry is not None and self.cache.is_fresh(entry):
            logger.debug("PRICE_CACHE_HIT", extra={"key": key})
            note = NO_PRICE_DATA_NOTE if entry.value is None else None
            return PriceResult(price=entry.value, note=note, cached=True)

        if not self.limiter.try_acquire():
            return self._degraded(key, entry, RATE_LIMIT_REASON)

        try:
            response = await fetch()
        except PricingProviderError as e:
            logger.warning("UPSTREAM_PRICE_ERROR", extra={"key": key, "error": str(e)})
            return self._degraded(key, entry, UPSTREAM_ERROR_REASON)

        price = extract_highest_price(response)
        self.cache.set(key, price)

        logger.info("PRICE_RESOLVED", extra={"key": key, "price": str(price)})
        return PriceResult(price=price, note=NO_PRICE_DATA_NOTE if price is None else None)

    def _degraded(
        self,
        key: str,
        entry: CacheEntry[Decimal | None] | None,
        reason: str,
    ) -> PriceResult:
        """Serve the last known price if there is one, otherwise None."""
        if entry is not None:
            logger.info("PRICE_SERVED_STALE", extra={"key": key, "reason": reason})
            return PriceResult(
                price=entry.value,
                note=(
                    f"Using cached price - {reason}"
                    if entry.value is not None
                    else f"Price not available - {reason}"
                ),
                cached=True,
                stale=True,
            )

        logger.info("PRICE_UNAVAILABLE", extra={"key": key, "reason": reason})
        return PriceResult(price=None, note=f"Price not available - {reason}")


def get_price_resolver() -> PriceResolver:
    """Dependency that provides a resolver wired to the global state."""
    return PriceResolver(
        client=get_price_tracker_client(),
        limiter=get_pricing_limiter(),
        cache=get_price_cache(),
        mapper=get_set_mapper(),
    )
