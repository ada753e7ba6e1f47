"""
Selectable set catalog.

Sets come from the pricing provider and are cached for a day. When the
provider cannot be reached (no key, no budget, upstream error) the last
known list is served, and failing that a built-in list.
"""

import logging
from dataclasses import dataclass
from typing import Literal

from pokevault.providers.price_tracker import (
    PriceTrackerClient,
    PricingProviderError,
    get_price_tracker_client,
)
from pokevault.services.cache import CacheEntry, TimedCache, get_sets_cache
from pokevault.services.rate_limiter import ApiRateLimiter, get_pricing_limiter
from pokevault.services.set_mapping import SetOption

logger = logging.getLogger(__name__)

SETS_CACHE_KEY = "sets"

SetSource = Literal["provider", "cache", "fallback"]

FALLBACK_SETS: tuple[SetOption, ...] = (
    # Base Era (1998-2000)
    SetOption("base1", "Base Set"),
    SetOption("jungle", "Jungle"),
    SetOption("fossil", "Fossil"),
    SetOption("base2", "Base Set 2"),
    SetOption("tr", "Team Rocket"),
    SetOption("gym1", "Gym Heroes"),
    SetOption("gym2", "Gym Challenge"),
    # Neo Era (2000-2001)
    SetOption("neo1", "Neo Genesis"),
    SetOption("neo2", "Neo Discovery"),
    SetOption("neo3", "Neo Revelation"),
    SetOption("neo4", "Neo Destiny"),
    # E-Card Era (2002-2003)
    SetOption("ecard1", "Expedition Base Set"),
    SetOption("ecard2", "Aquapolis"),
    SetOption("ecard3", "Skyridge"),
    # EX Era (2003-2007)
    SetOption("ex1", "Ruby & Sapphire"),
    SetOption("ex2", "Sandstorm"),
    SetOption("ex3", "Dragon"),
    SetOption("ex4", "Team Magma vs Team Aqua"),
    SetOption("ex5", "Hidden Legends"),
    SetOption("ex6", "FireRed & LeafGreen"),
    SetOption("ex7", "Team Rocket Returns"),
    SetOption("ex8", "Deoxys"),
    SetOption("ex9", "Emerald"),
    SetOption("ex10", "Unseen Forces"),
    SetOption("ex11", "Delta Species"),
    SetOption("ex12", "Legend Maker"),
    SetOption("ex13", "Holon Phantoms"),
    SetOption("ex14", "Crystal Guardians"),
    SetOption("ex15", "Dragon Frontiers"),
    SetOption("ex16", "Power Keepers"),
    # Diamond & Pearl Era (2007-2009)
    SetOption("dp1", "Diamond & Pearl"),
    SetOption("dp2", "Mysterious Treasures"),
    SetOption("dp3", "Secret Wonders"),
    SetOption("dp4", "Great Encounters"),
    SetOption("dp5", "Majestic Dawn"),
    SetOption("dp6", "Legends Awakened"),
    SetOption("dp7", "Stormfront"),
    # Platinum Era (2009-2010)
    SetOption("pl1", "Platinum"),
    SetOption("pl2", "Rising Rivals"),
    SetOption("pl3", "Supreme Victors"),
    SetOption("pl4", "Arceus"),
    # HeartGold & SoulSilver Era (2010-2011)
    SetOption("hgss1", "HeartGold & SoulSilver"),
    SetOption("hgss2", "Unleashed"),
    SetOption("hgss3", "Undaunted"),
    SetOption("hgss4", "Triumphant"),
    # Black & White Era (2011-2013)
    SetOption("bw1", "Black & White"),
    SetOption("bw2", "Emerging Powers"),
    SetOption("bw3", "Noble Victories"),
    SetOption("bw4", "Next Destinies"),
    SetOption("bw5", "Dark Explorers"),
    SetOption("bw6", "Dragons Exalted"),
    SetOption("bw7", "Dragon Vault"),
    SetOption("bw8", "Boundaries Crossed"),
    SetOption("bw9", "Plasma Storm"),
    SetOption("bw10", "Plasma Freeze"),
    SetOption("bw11", "Plasma Blast"),
    SetOption("bw12", "Legendary Treasures"),
    # XY Era (2014-2016)
    SetOption("xy1", "XY"),
    SetOption("xy2", "Flashfire"),
    SetOption("xy3", "Furious Fists"),
    SetOption("xy4", "Phantom Forces"),
    SetOption("xy5", "Primal Clash"),
    SetOption("xy6", "Roaring Skies"),
    SetOption("xy7", "Ancient Origins"),
    SetOption("xy8", "BREAKthrough"),
    SetOption("xy9", "BREAKpoint"),
    SetOption("xy10", "Fates Collide"),
    SetOption("xy11", "Steam Siege"),
    SetOption("xy12", "Evolutions"),
    # Sun & Moon Era (2017-2019)
    SetOption("sm1", "Sun & Moon"),
    SetOption("sm2", "Guardians Rising"),
    SetOption("sm3", "Burning Shadows"),
    SetOption("sm35", "Shining Legends"),
    SetOption("sm4", "Crimson Invasion"),
    SetOption("sm5", "Ultra Prism"),
    SetOption("sm6", "Forbidden Light"),
    SetOption("sm7", "Celestial Storm"),
    SetOption("sm75", "Dragon Majesty"),
    SetOption("sm8", "Lost Thunder"),
    SetOption("sm9", "Team Up"),
    SetOption("det1", "Detective Pikachu"),
    SetOption("sm10", "Unbroken Bonds"),
    SetOption("sm11", "Unified Minds"),
    SetOption("sm115", "Hidden Fates"),
    SetOption("sm12", "Cosmic Eclipse"),
    # Sword & Shield Era (2020-2022)
    SetOption("swsh1", "Sword & Shield"),
    SetOption("swsh2", "Rebel Clash"),
    SetOption("swsh3", "Darkness Ablaze"),
    SetOption("swsh35", "Champion's Path"),
    SetOption("swsh4", "Vivid Voltage"),
    SetOption("swsh45", "Shining Fates"),
    SetOption("swsh5", "Battle Styles"),
    SetOption("swsh6", "Chilling Reign"),
    SetOption("swsh7", "Evolving Skies"),
    SetOption("swsh8", "Fusion Strike"),
    SetOption("swsh9", "Brilliant Stars"),
    SetOption("swsh10", "Astral Radiance"),
    SetOption("swsh11", "Pokemon GO"),
    SetOption("swsh12", "Lost Origin"),
    SetOption("swsh12pt5", "Silver Tempest"),
    # Scarlet & Violet Era (2023-Present)
    SetOption("sv1", "Scarlet & Violet Base Set"),
    SetOption("sv2", "Paldea Evolved"),
    SetOption("sv3", "Obsidian Flames"),
    SetOption("sv3pt5", "151"),
    SetOption("sv4", "Paradox Rift"),
    SetOption("sv4pt5", "Paldean Fates"),
    SetOption("sv5", "Temporal Forces"),
    SetOption("sv6", "Twilight Masquerade"),
    SetOption("sv6pt5", "Shrouded Fable"),
    SetOption("sv7", "Stellar Crown"),
    SetOption("sv8", "Surging Sparks"),
)


@dataclass(frozen=True, slots=True)
class SetListing:
    """A set list and where it came from."""

    sets: list[SetOption]
    source: SetSource


class SetCatalog:
    """Serves the list of selectable sets."""

    def __init__(
        self,
        client: PriceTrackerClient,
        limiter: ApiRateLimiter,
        cache: TimedCache[list[SetOption]],
    ) -> None:
        self.client = client
        self.limiter = limiter
        self.cache = cache

    async def list_sets(self) -> SetListing:
        """
        Get the selectable sets.

        Never raises: any provider problem degrades to the cached or
        built-in list.
        """
        entry = self.cache.get(SETS_CACHE_KEY)
        if entry is not None and self.cache.is_fresh(entry):
            return SetListing(sets=entry.value, source="cache")

        if not self.client.configured:
            return self._fallback(entry, "pricing API key not configured")

        if not self.limiter.try_acquire():
            return self._fallback(entry, "rate limit reached")

        try:
            raw_sets = await self.client.fetch_sets()
        except PricingProviderError as e:
            logger.warning("UPSTREAM_SETS_ERROR", extra={"error": str(e)})
            return self._fallback(entry, "pricing service unavailable")

        if not raw_sets:
            return self._fallback(entry, "provider returned no sets")

        sets = [SetOption(id=s["id"], name=s["name"]) for s in raw_sets]
        self.cache.set(SETS_CACHE_KEY, sets)
        logger.info("SETS_REFRESHED", extra={"count": len(sets)})
        return SetListing(sets=sets, source="provider")

    def _fallback(
        self, entry: CacheEntry[list[SetOption]] | None, reason: str
    ) -> SetListing:
        if entry is not None:
            logger.info("SETS_SERVED_STALE", extra={"reason": reason})
            return SetListing(sets=entry.value, source="cache")

        logger.info("SETS_SERVED_FALLBACK", extra={"reason": reason})
        return SetListing(sets=list(FALLBACK_SETS), source="fallback")


def get_set_catalog() -> SetCatalog:
    """Dependency that provides a catalog wired to the global state."""
    return SetCatalog(
        client=get_price_tracker_client(),
        limiter=get_pricing_limiter(),
        cache=get_sets_cache(),
    )
