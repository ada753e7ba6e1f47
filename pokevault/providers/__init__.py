from pokevault.providers.price_tracker import (
    PriceTrackerClient,
    PricingProviderError,
    get_price_tracker_client,
)
from pokevault.providers.tcgdex import (
    ArtworkProviderError,
    TcgdexClient,
    build_image_url,
    get_tcgdex_client,
)

__all__ = [
    "ArtworkProviderError",
    "PriceTrackerClient",
    "PricingProviderError",
    "TcgdexClient",
    "build_image_url",
    "get_price_tracker_client",
    "get_tcgdex_client",
]
