"""
PokeVault services.

Price and artwork acquisition, caching, and portfolio management.
"""

from pokevault.services.cache import (
    CacheEntry,
    TimedCache,
    get_image_cache,
    get_price_cache,
    get_sets_cache,
    get_snapshot_cache,
    image_cache_key,
    price_cache_key,
    reset_caches,
    sweep_caches,
)
from pokevault.services.card_search import CardSearch, CardSuggestion, get_card_search
from pokevault.services.history import (
    HISTORY_RULES,
    PriceHistorySynthesizer,
    get_history_synthesizer,
    synthesize_history,
)
from pokevault.services.image_resolver import (
    ImageResolver,
    alternative_card_ids,
    build_card_id,
    get_image_resolver,
)
from pokevault.services.portfolio import NewCard, PortfolioService, RefreshSummary
from pokevault.services.price_extraction import extract_highest_price
from pokevault.services.price_resolver import (
    PriceResolver,
    get_price_resolver,
    to_pricing_set_id,
)
from pokevault.services.rate_limiter import (
    ApiRateLimiter,
    get_artwork_limiter,
    get_pricing_limiter,
    reset_rate_limiters,
)
from pokevault.services.set_catalog import FALLBACK_SETS, SetCatalog, SetListing, get_set_catalog
from pokevault.services.set_mapping import SetIdMapper, SetOption, get_set_mapper

__all__ = [
    # Caching
    "CacheEntry",
    "TimedCache",
    "get_image_cache",
    "get_price_cache",
    "get_sets_cache",
    "get_snapshot_cache",
    "image_cache_key",
    "price_cache_key",
    "reset_caches",
    "sweep_caches",
    # Rate limiting
    "ApiRateLimiter",
    "get_artwork_limiter",
    "get_pricing_limiter",
    "reset_rate_limiters",
    # Set IDs
    "FALLBACK_SETS",
    "SetCatalog",
    "SetIdMapper",
    "SetListing",
    "SetOption",
    "get_set_catalog",
    "get_set_mapper",
    # Prices
    "HISTORY_RULES",
    "PriceHistorySynthesizer",
    "PriceResolver",
    "extract_highest_price",
    "get_history_synthesizer",
    "get_price_resolver",
    "synthesize_history",
    "to_pricing_set_id",
    # Artwork and search
    "CardSearch",
    "CardSuggestion",
    "ImageResolver",
    "alternative_card_ids",
    "build_card_id",
    "get_card_search",
    "get_image_resolver",
    # Portfolio
    "NewCard",
    "PortfolioService",
    "RefreshSummary",
]
