"""
Portfolio operations.

Adding a card and refreshing prices combine upstream lookups with a
read-modify-write of the user's portfolio. Upstream lookups run once,
before the write; the write itself is retried when a concurrent request
changed the portfolio in between (``StaleDataError`` on flush).
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from pokevault.config import settings
from pokevault.db.operations import (
    add_portfolio_card,
    card_to_model,
    find_card,
    find_duplicate_card,
    get_or_create_portfolio,
    get_portfolio,
    remove_portfolio_card,
    touch_portfolio,
    update_card_quantity,
)
from pokevault.models.card import CardIdentity, PortfolioCard, SetVocabulary, validate_card_number
from pokevault.models.db import PortfolioDB
from pokevault.models.failure import (
    CardNotFoundError,
    DuplicateCardError,
    PortfolioConflictError,
    UnmappedSetError,
)
from pokevault.models.pricing import PriceHistory
from pokevault.services.cache import price_cache_key
from pokevault.services.history import PriceHistorySynthesizer
from pokevault.services.image_resolver import ImageResolver
from pokevault.services.price_resolver import PriceResolver, to_pricing_set_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class NewCard:
    """A card as entered by the user, before lookups."""

    name: str
    set_id: str
    number: str
    quantity: int = 1
    vocabulary: SetVocabulary = SetVocabulary.PRICING
    artwork_set_id: str | None = None


@dataclass
class RefreshSummary:
    """Outcome of a bulk price refresh."""

    cards: list[PortfolioCard] = field(default_factory=list)
    updated: int = 0
    skipped: int = 0

    @property
    def message(self) -> str:
        return f"Updated {self.updated} cards, skipped {self.skipped} cards"


@dataclass(frozen=True, slots=True)
class _PriceUpdate:
    price: Decimal | None
    last_updated: datetime


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PortfolioService:
    """Portfolio use cases over one database session."""

    def __init__(
        self,
        session: AsyncSession,
        price_resolver: PriceResolver,
        image_resolver: ImageResolver,
        history: PriceHistorySynthesizer,
        max_retries: int = settings.portfolio_write_retries,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.session = session
        self.price_resolver = price_resolver
        self.image_resolver = image_resolver
        self.history = history
        self.max_retries = max_retries
        self._clock = clock

    async def _write(self, user_id: str, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run a read-modify-write, retrying on version conflicts.

        ``operation`` must re-read everything it modifies.

        Raises:
            PortfolioConflictError: If every attempt conflicted
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                result = await operation()
                await self.session.flush()
                return result
            except StaleDataError:
                await self.session.rollback()
                logger.warning(
                    "PORTFOLIO_WRITE_CONFLICT",
                    extra={"user_id": user_id, "attempt": attempt},
                )
        raise PortfolioConflictError(user_id, self.max_retries)

    async def list_cards(self, user_id: str) -> list[PortfolioCard]:
        """Get a user's cards. A user without a portfolio has no cards."""
        portfolio = await get_portfolio(self.session, user_id)
        if portfolio is None:
            return []
        return [card_to_model(card) for card in portfolio.cards]

    async def add_card(self, user_id: str, new_card: NewCard) -> PortfolioCard:
        """
        Add a card, looking up its price and artwork.

        Raises:
            InvalidCardNumberError: If the number matches no known format
            UnmappedSetError: If the set cannot be expressed for pricing
            ServiceNotConfiguredError: If no pricing API key is configured
            DuplicateCardError: If the same printing is already held
            PortfolioConflictError: If concurrent writes kept conflicting
        """
        display_number = new_card.number.strip()
        number = validate_card_number(display_number)
        name = new_card.name.strip()

        identity = CardIdentity(
            name=name,
            set_id=new_card.set_id,
            number=number,
            vocabulary=new_card.vocabulary,
        )
        pricing_set_id = to_pricing_set_id(identity, self.price_resolver.mapper)

        # Reject duplicates before spending any upstream budget
        existing = await get_portfolio(self.session, user_id)
        if existing is not None:
            self._raise_if_duplicate(existing, name, pricing_set_id, number, display_number)

        price = await self.price_resolver.resolve_price(identity)
        image_url = await self.image_resolver.resolve_image(identity, new_card.artwork_set_id)

        now = self._clock()
        card = PortfolioCard(
            id=uuid.uuid4().hex,
            name=name,
            set=pricing_set_id,
            number=number,
            display_number=display_number,
            quantity=new_card.quantity,
            current_price=price.price,
            image_url=image_url,
            date_added=now,
            last_updated=now,
        )

        async def write() -> PortfolioCard:
            portfolio, _ = await get_or_create_portfolio(self.session, user_id)
            self._raise_if_duplicate(portfolio, name, pricing_set_id, number, display_number)
            await add_portfolio_card(self.session, portfolio, card)
            return card

        added = await self._write(user_id, write)
        logger.info(
            "CARD_ADDED",
            extra={"user_id": user_id, "card_id": added.id, "price": str(added.current_price)},
        )
        return added

    @staticmethod
    def _raise_if_duplicate(
        portfolio: PortfolioDB, name: str, set_id: str, number: str, display_number: str
    ) -> None:
        duplicate = find_duplicate_card(portfolio, name, set_id, number, display_number)
        if duplicate is not None:
            logger.info(
                "DUPLICATE_CARD_REJECTED",
                extra={"existing_card_id": duplicate.id, "card_name": name},
            )
            raise DuplicateCardError(
                existing_card_id=duplicate.id,
                existing_quantity=duplicate.quantity,
                card_name=name,
            )

    async def remove_card(self, user_id: str, card_id: str) -> None:
        """
        Raises:
            CardNotFoundError: If the card is not in the portfolio
        """

        async def write() -> bool:
            return await remove_portfolio_card(self.session, user_id, card_id)

        if not await self._write(user_id, write):
            raise CardNotFoundError(card_id)

    async def update_quantity(self, user_id: str, card_id: str, quantity: int) -> PortfolioCard:
        """
        Raises:
            CardNotFoundError: If the card is not in the portfolio
        """

        async def write() -> PortfolioCard | None:
            card = await update_card_quantity(self.session, user_id, card_id, quantity)
            return card_to_model(card) if card is not None else None

        updated = await self._write(user_id, write)
        if updated is None:
            raise CardNotFoundError(card_id)
        return updated

    def _needs_refresh(self, card: PortfolioCard, now: datetime) -> bool:
        cache = self.price_resolver.cache
        entry = cache.get(price_cache_key(card.name, card.set, card.number))
        if entry is None or not cache.is_fresh(entry):
            return True
        return now - card.last_updated > cache.duration

    async def refresh_prices(self, user_id: str) -> RefreshSummary:
        """
        Refresh prices of every card in a portfolio.

        A card is refreshed upstream when its cached price is missing or
        stale, or its own timestamp is older than the cache duration, and
        the pricing budget allows it. Otherwise it takes the cached price if
        there is one. A lookup that yields no price keeps the card's
        previous price.

        ``updated`` counts fresh upstream lookups only. A card that takes
        its price from the cache is counted as skipped, although its price
        and ``last_updated`` are rewritten from the cache entry.

        Raises:
            ServiceNotConfiguredError: If no pricing API key is configured
            PortfolioConflictError: If concurrent writes kept conflicting
        """
        cards = await self.list_cards(user_id)
        summary = RefreshSummary()
        updates: dict[str, _PriceUpdate] = {}

        for card in cards:
            now = self._clock()
            identity = CardIdentity(name=card.name, set_id=card.set, number=card.number)

            if self._needs_refresh(card, now) and self.price_resolver.limiter.can_proceed():
                try:
                    result = await self.price_resolver.resolve_price(identity)
                except UnmappedSetError:
                    logger.warning("PRICE_REFRESH_UNMAPPED_SET", extra={"card_id": card.id})
                    summary.skipped += 1
                    continue

                if result.price is not None and not result.stale:
                    updates[card.id] = _PriceUpdate(result.price, now)
                    summary.updated += 1
                else:
                    summary.skipped += 1
                continue

            entry = self.price_resolver.cache.get(price_cache_key(card.name, card.set, card.number))
            if entry is not None and entry.value is not None:
                updates[card.id] = _PriceUpdate(entry.value, now)
            summary.skipped += 1

        async def write() -> list[PortfolioCard]:
            portfolio = await get_portfolio(self.session, user_id)
            if portfolio is None:
                return []
            for card_id, update in updates.items():
                card_db = find_card(portfolio, card_id)
                if card_db is None:
                    # Removed concurrently
                    continue
                card_db.current_price = update.price
                card_db.last_updated = update.last_updated
            if updates:
                touch_portfolio(portfolio)
            return [card_to_model(card_db) for card_db in portfolio.cards]

        summary.cards = await self._write(user_id, write)
        logger.info(
            "PORTFOLIO_PRICES_REFRESHED",
            extra={"user_id": user_id, "updated": summary.updated, "skipped": summary.skipped},
        )
        return summary

    async def card_history(self, user_id: str, card_id: str) -> PriceHistory:
        """
        Get the synthetic price history of a held card.

        Raises:
            CardNotFoundError: If the card is not in the portfolio
        """
        portfolio = await get_portfolio(self.session, user_id)
        card = find_card(portfolio, card_id) if portfolio is not None else None
        if card is None:
            raise CardNotFoundError(card_id)

        identity = CardIdentity(name=card.name, set_id=card.set_id, number=card.number)
        return await self.history.history_for(identity)
