"""
Portfolio API endpoints.

Users are identified by the ``user_id`` path segment; authentication is
handled in front of this service.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from pokevault.api.cards import HistoryResponse, history_response
from pokevault.db.database import get_session
from pokevault.models.card import PortfolioCard, SetVocabulary
from pokevault.services.history import PriceHistorySynthesizer, get_history_synthesizer
from pokevault.services.image_resolver import ImageResolver, get_image_resolver
from pokevault.services.portfolio import NewCard, PortfolioService
from pokevault.services.price_resolver import PriceResolver, get_price_resolver

router = APIRouter(prefix="/portfolio", tags=["portfolio"])


class CardResponse(BaseModel):
    """A card held in a portfolio. Price and image are null when unavailable."""

    id: str
    name: str
    set: str
    number: str
    display_number: str
    quantity: int
    current_price: float | None = None
    total_value: float | None = None
    image_url: str | None = None
    date_added: datetime
    last_updated: datetime


class PortfolioResponse(BaseModel):
    user_id: str
    cards: list[CardResponse] = Field(default_factory=list)
    total_cards: int = 0
    total_value: float = Field(
        default=0.0,
        description="Sum over cards with a known price",
    )
    unpriced_cards: int = Field(
        default=0,
        description="Number of cards whose price is not available",
    )


class AddCardRequest(BaseModel):
    """Request model for adding a card."""

    name: str = Field(..., min_length=1, examples=["Charizard"])
    set: str = Field(..., min_length=1, examples=["base1"])
    number: str = Field(..., min_length=1, examples=["4/102"])
    quantity: int = Field(default=1, ge=1)
    vocabulary: SetVocabulary = Field(
        default=SetVocabulary.PRICING,
        description="Which set-ID scheme 'set' is expressed in",
    )
    artwork_set_id: str | None = Field(
        default=None,
        description="TCGdex set ID for artwork lookup, if known",
    )


class QuantityUpdateRequest(BaseModel):
    quantity: int = Field(..., ge=1)


class RefreshResponse(BaseModel):
    """Response model for a bulk price refresh."""

    user_id: str
    cards: list[CardResponse] = Field(default_factory=list)
    updated: int
    skipped: int
    message: str
    api_calls_today: int
    daily_limit: int


class DeleteResponse(BaseModel):
    user_id: str
    card_id: str
    deleted: bool


def get_portfolio_service(
    session: Annotated[AsyncSession, Depends(get_session)],
    price_resolver: Annotated[PriceResolver, Depends(get_price_resolver)],
    image_resolver: Annotated[ImageResolver, Depends(get_image_resolver)],
    history: Annotated[PriceHistorySynthesizer, Depends(get_history_synthesizer)],
) -> PortfolioService:
    return PortfolioService(session, price_resolver, image_resolver, history)


PortfolioServiceDep = Annotated[PortfolioService, Depends(get_portfolio_service)]


def card_response(card: PortfolioCard) -> CardResponse:
    total = card.total_value()
    return CardResponse(
        id=card.id,
        name=card.name,
        set=card.set,
        number=card.number,
        display_number=card.display_number,
        quantity=card.quantity,
        current_price=float(card.current_price) if card.current_price is not None else None,
        total_value=float(total) if total is not None else None,
        image_url=card.image_url,
        date_added=card.date_added,
        last_updated=card.last_updated,
    )


def portfolio_response(user_id: str, cards: list[PortfolioCard]) -> PortfolioResponse:
    values = [card.total_value() for card in cards]
    return PortfolioResponse(
        user_id=user_id,
        cards=[card_response(card) for card in cards],
        total_cards=sum(card.quantity for card in cards),
        total_value=float(sum(v for v in values if v is not None)),
        unpriced_cards=sum(1 for v in values if v is None),
    )


@router.get("/{user_id}", response_model=PortfolioResponse)
async def get_user_portfolio(user_id: str, service: PortfolioServiceDep) -> PortfolioResponse:
    """
    Get a user's portfolio.

    A user who has never added a card gets an empty portfolio.
    """
    cards = await service.list_cards(user_id)
    return portfolio_response(user_id, cards)


@router.post("/{user_id}/cards", response_model=CardResponse, status_code=201)
async def add_card(
    user_id: str,
    request: AddCardRequest,
    service: PortfolioServiceDep,
) -> CardResponse:
    """
    Add a card to a user's portfolio.

    Looks up the current price and artwork. Either may be null when not
    available. Returns 409 with the existing card's ID and quantity when
    the same printing is already held.
    """
    card = await service.add_card(
        user_id,
        NewCard(
            name=request.name,
            set_id=request.set,
            number=request.number,
            quantity=request.quantity,
            vocabulary=request.vocabulary,
            artwork_set_id=request.artwork_set_id,
        ),
    )
    return card_response(card)


@router.delete("/{user_id}/cards/{card_id}", response_model=DeleteResponse)
async def remove_card(user_id: str, card_id: str, service: PortfolioServiceDep) -> DeleteResponse:
    """Remove a card from a user's portfolio. Returns 404 if it is not there."""
    await service.remove_card(user_id, card_id)
    return DeleteResponse(user_id=user_id, card_id=card_id, deleted=True)


@router.put("/{user_id}/cards/{card_id}/quantity", response_model=CardResponse)
async def update_quantity(
    user_id: str,
    card_id: str,
    request: QuantityUpdateRequest,
    service: PortfolioServiceDep,
) -> CardResponse:
    """Set the quantity held of a card."""
    card = await service.update_quantity(user_id, card_id, request.quantity)
    return card_response(card)


@router.put("/{user_id}/prices", response_model=RefreshResponse)
async def refresh_prices(user_id: str, service: PortfolioServiceDep) -> RefreshResponse:
    """
    Refresh prices for every card in a portfolio.

    Cards with a fresh cached price, or beyond the remaining pricing
    budget, are skipped and keep their last known price.
    """
    summary = await service.refresh_prices(user_id)
    limiter = service.price_resolver.limiter
    return RefreshResponse(
        user_id=user_id,
        cards=[card_response(card) for card in summary.cards],
        updated=summary.updated,
        skipped=summary.skipped,
        message=summary.message,
        api_calls_today=limiter.calls_today,
        daily_limit=limiter.daily_limit,
    )


@router.get("/{user_id}/cards/{card_id}/history", response_model=HistoryResponse)
async def get_card_history(
    user_id: str, card_id: str, service: PortfolioServiceDep
) -> HistoryResponse:
    """Get the synthetic price history of a held card."""
    history = await service.card_history(user_id, card_id)
    return history_response(history)
