"""
Database CRUD operations.

Provides async functions for reading and mutating user portfolios.

Every mutation touches the parent ``PortfolioDB`` row so its version
counter advances; a concurrent writer holding an older version then fails
its flush with ``StaleDataError``.
"""

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pokevault.models.card import PortfolioCard
from pokevault.models.db import PortfolioCardDB, PortfolioDB


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def touch_portfolio(portfolio: PortfolioDB) -> None:
    """Mark the portfolio row dirty so the version check runs on flush."""
    portfolio.updated_at = datetime.now(UTC)


async def get_portfolio(session: AsyncSession, user_id: str) -> PortfolioDB | None:
    """
    Get a user's portfolio with its cards.

    Returns None if the user has no portfolio yet.
    """
    result = await session.execute(
        select(PortfolioDB)
        .where(PortfolioDB.user_id == user_id)
        .options(selectinload(PortfolioDB.cards))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_portfolio(session: AsyncSession, user_id: str) -> PortfolioDB:
    """
    Create an empty portfolio for a user.

    Raises IntegrityError if the portfolio already exists.
    """
    portfolio = PortfolioDB(user_id=user_id, cards=[])
    session.add(portfolio)
    await session.flush()
    return portfolio


async def get_or_create_portfolio(
    session: AsyncSession, user_id: str
) -> tuple[PortfolioDB, bool]:
    """
    Get existing portfolio or create a new one.

    Returns:
        Tuple of (portfolio, created) where created is True if new.
    """
    portfolio = await get_portfolio(session, user_id)
    if portfolio:
        return portfolio, False

    portfolio = await create_portfolio(session, user_id)
    return portfolio, True


def find_duplicate_card(
    portfolio: PortfolioDB,
    name: str,
    set_id: str,
    number: str,
    display_number: str,
) -> PortfolioCardDB | None:
    """
    Find a card that is the same printing as the one described.

    Same printing means: normalized names equal, set IDs equal, and either
    form of the number (parsed or as displayed) matching either form of
    the existing card's number.
    """
    normalized_name = name.strip().lower()
    numbers = {number, display_number}

    for card in portfolio.cards:
        if card.name.strip().lower() != normalized_name:
            continue
        if card.set_id != set_id:
            continue
        if card.number in numbers or card.display_number in numbers:
            return card
    return None


def find_card(portfolio: PortfolioDB, card_id: str) -> PortfolioCardDB | None:
    """Find a card in a loaded portfolio by its ID."""
    for card in portfolio.cards:
        if card.id == card_id:
            return card
    return None


async def add_portfolio_card(
    session: AsyncSession, portfolio: PortfolioDB, card: PortfolioCard
) -> PortfolioCardDB:
    """Append a card to a loaded portfolio."""
    card_db = PortfolioCardDB(
        id=card.id,
        name=card.name,
        set_id=card.set,
        number=card.number,
        display_number=card.display_number,
        quantity=card.quantity,
        current_price=card.current_price,
        image_url=card.image_url,
        date_added=card.date_added,
        last_updated=card.last_updated,
    )
    portfolio.cards.append(card_db)
    touch_portfolio(portfolio)
    await session.flush()
    return card_db


async def remove_portfolio_card(session: AsyncSession, user_id: str, card_id: str) -> bool:
    """
    Remove a card from a user's portfolio.

    Returns True if removed, False if the card (or portfolio) was not found.
    """
    portfolio = await get_portfolio(session, user_id)
    if portfolio is None:
        return False

    card = find_card(portfolio, card_id)
    if card is None:
        return False

    portfolio.cards.remove(card)
    touch_portfolio(portfolio)
    await session.flush()
    return True


async def update_card_quantity(
    session: AsyncSession, user_id: str, card_id: str, quantity: int
) -> PortfolioCardDB | None:
    """
    Set a card's quantity.

    Returns the updated card, or None if not found.
    """
    portfolio = await get_portfolio(session, user_id)
    if portfolio is None:
        return None

    card = find_card(portfolio, card_id)
    if card is None:
        return None

    card.quantity = quantity
    touch_portfolio(portfolio)
    await session.flush()
    return card


async def list_portfolio_user_ids(session: AsyncSession) -> list[str]:
    """Get the user IDs of every stored portfolio."""
    result = await session.execute(select(PortfolioDB.user_id).order_by(PortfolioDB.user_id))
    return list(result.scalars().all())


def card_to_model(card: PortfolioCardDB) -> PortfolioCard:
    """Convert a database card to a domain model."""
    return PortfolioCard(
        id=card.id,
        name=card.name,
        set=card.set_id,
        number=card.number,
        display_number=card.display_number,
        quantity=card.quantity,
        current_price=card.current_price,
        image_url=card.image_url,
        date_added=_as_utc(card.date_added),
        last_updated=_as_utc(card.last_updated),
    )
