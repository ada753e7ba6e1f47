"""
Synthetic price history.

The pricing provider returns a single snapshot, not a time series. A
timeline is synthesized by placing each distinct field of the snapshot at
a fixed offset from now. The result is deterministic for a given snapshot
and is always labeled synthetic.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

from pokevault.models.card import CardIdentity
from pokevault.models.failure import ServiceNotConfiguredError
from pokevault.models.pricing import (
    CATEGORY_COLORS,
    PriceCategory,
    PriceHistory,
    PriceObservation,
)
from pokevault.providers.price_tracker import (
    PriceTrackerClient,
    PricingProviderError,
    get_price_tracker_client,
)
from pokevault.services.cache import TimedCache, get_snapshot_cache, price_cache_key
from pokevault.services.price_extraction import (
    extract_highest_price,
    first_card_record,
    graded_average,
    price_group,
    to_positive_decimal,
)
from pokevault.services.price_resolver import (
    RATE_LIMIT_REASON,
    UPSTREAM_ERROR_REASON,
    to_pricing_set_id,
)
from pokevault.services.rate_limiter import ApiRateLimiter, get_pricing_limiter
from pokevault.services.set_mapping import SetIdMapper, get_set_mapper

logger = logging.getLogger(__name__)

SYNTHETIC_NOTE = (
    "Synthetic history: fields of one current price snapshot placed at fixed "
    "offsets. Not measured historical prices."
)


@dataclass(frozen=True, slots=True)
class HistoryRule:
    """Where one snapshot field lands on the synthetic timeline."""

    provider: str
    field: str
    days_ago: int
    category: PriceCategory
    source: str


HISTORY_RULES: tuple[HistoryRule, ...] = (
    HistoryRule("cardmarket", "avg30", 30, PriceCategory.HISTORICAL, "Cardmarket 30-day average"),
    HistoryRule("cardmarket", "avg7", 7, PriceCategory.RECENT, "Cardmarket 7-day average"),
    HistoryRule("cardmarket", "avg1", 1, PriceCategory.CURRENT, "Cardmarket 1-day average"),
    HistoryRule("cardmarket", "trendPrice", 14, PriceCategory.TREND, "Cardmarket trend"),
    HistoryRule(
        "cardmarket",
        "reverseHoloAvg30",
        25,
        PriceCategory.REVERSE_HOLO,
        "Cardmarket reverse holo 30-day average",
    ),
    HistoryRule(
        "cardmarket",
        "reverseHoloAvg7",
        5,
        PriceCategory.REVERSE_HOLO,
        "Cardmarket reverse holo 7-day average",
    ),
    HistoryRule("ebay", "psa10", 2, PriceCategory.GRADED, "eBay PSA 10 average"),
    HistoryRule("ebay", "psa9", 4, PriceCategory.GRADED, "eBay PSA 9 average"),
    HistoryRule("ebay", "psa8", 6, PriceCategory.GRADED, "eBay PSA 8 average"),
    HistoryRule("tcgPlayer", "low", 21, PriceCategory.TCGPLAYER, "TCGplayer low"),
    HistoryRule("tcgPlayer", "market", 10, PriceCategory.TCGPLAYER, "TCGplayer market"),
    HistoryRule("tcgPlayer", "high", 3, PriceCategory.TCGPLAYER, "TCGplayer high"),
)


def _rule_price(record: dict[str, Any], rule: HistoryRule) -> Decimal | None:
    value = price_group(record, rule.provider).get(rule.field)
    if rule.provider == "ebay":
        return graded_average(value)
    return to_positive_decimal(value)


def _observation(
    price: Decimal, date: datetime, source: str, category: PriceCategory
) -> PriceObservation:
    return PriceObservation(
        price=price,
        date=date,
        source=source,
        category=category,
        color=CATEGORY_COLORS[category],
    )


def synthesize_history(response: Any, now: datetime) -> list[PriceObservation]:
    """
    Lay out a price snapshot as a timeline.

    Each strictly positive field in ``HISTORY_RULES`` yields one observation
    dated ``now - days_ago``. If none qualify, the highest price in the
    snapshot becomes a single ``current`` observation dated ``now``.

    Args:
        response: Raw pricing-provider response
        now: Reference time for the offsets

    Returns:
        Observations sorted ascending by date (empty if there is no price)
    """
    record = first_card_record(response)
    if record is None:
        return []

    observations: list[PriceObservation] = []
    for rule in HISTORY_RULES:
        price = _rule_price(record, rule)
        if price is not None:
            observations.append(
                _observation(price, now - timedelta(days=rule.days_ago), rule.source, rule.category)
            )

    if not observations:
        highest = extract_highest_price(response)
        if highest is not None:
            observations.append(
                _observation(highest, now, "Highest current price", PriceCategory.CURRENT)
            )

    observations.sort(key=lambda obs: obs.date)
    return observations


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PriceHistorySynthesizer:
    """
    Builds a synthetic history for a card.

    Makes its own budgeted upstream call; raw snapshots are cached under
    the same key and freshness rules as prices.
    """

    def __init__(
        self,
        client: PriceTrackerClient,
        limiter: ApiRateLimiter,
        cache: TimedCache[dict[str, Any]],
        mapper: SetIdMapper,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.limiter = limiter
        self.cache = cache
        self.mapper = mapper
        self._clock = clock

    async def history_for(self, identity: CardIdentity) -> PriceHistory:
        """
        Get the synthetic history for a card.

        Raises:
            UnmappedSetError: If the set ID cannot be expressed for pricing
            ServiceNotConfiguredError: If no pricing API key is configured
        """
        set_id = to_pricing_set_id(identity, self.mapper)
        if not self.client.configured:
            raise ServiceNotConfiguredError("POKEMON_API_KEY")

        key = price_cache_key(identity.name, set_id, identity.number)
        entry = self.cache.get(key)

        response: dict[str, Any] | None = None
        reason: str | None = None

        if entry is not None and self.cache.is_fresh(entry):
            response = entry.value
        elif not self.limiter.try_acquire():
            reason = RATE_LIMIT_REASON
        else:
            try:
                response = await self.client.fetch_card_prices(
                    identity.name, set_id, identity.number
                )
                self.cache.set(key, response)
            except PricingProviderError as e:
                logger.warning("UPSTREAM_HISTORY_ERROR", extra={"key": key, "error": str(e)})
                reason = UPSTREAM_ERROR_REASON

        if response is None and entry is not None:
            response = entry.value

        if response is None:
            return PriceHistory(observations=[], note=f"History not available - {reason}")

        observations = synthesize_history(response, self._clock())
        return PriceHistory(observations=observations, note=SYNTHETIC_NOTE)


def get_history_synthesizer() -> PriceHistorySynthesizer:
    """Dependency that provides a synthesizer wired to the global state."""
    return PriceHistorySynthesizer(
        client=get_price_tracker_client(),
        limiter=get_pricing_limiter(),
        cache=get_snapshot_cache(),
        mapper=get_set_mapper(),
    )
