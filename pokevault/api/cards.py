"""
Card lookup endpoints.

Search, price, artwork and synthetic history for a single card,
independent of any portfolio.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from pokevault.models.card import CardIdentity, SetVocabulary, parse_card_number
from pokevault.models.pricing import PriceHistory, PriceResult
from pokevault.services.card_search import CardSearch, get_card_search
from pokevault.services.history import PriceHistorySynthesizer, get_history_synthesizer
from pokevault.services.image_resolver import ImageResolver, get_image_resolver
from pokevault.services.price_resolver import PriceResolver, get_price_resolver

router = APIRouter(prefix="/cards", tags=["cards"])


class CardSuggestionResponse(BaseModel):
    """One search result."""

    id: str
    name: str
    set: str
    number: str
    image_url: str | None = None
    display_text: str


class CardRef(BaseModel):
    name: str
    set: str
    number: str


class PriceResponse(BaseModel):
    """Price lookup result. ``price`` is null when no price is known."""

    price: float | None = Field(
        default=None,
        description="Highest observed price in USD, or null when not available",
    )
    card: CardRef | None = None
    note: str | None = Field(
        default=None,
        description="Why the price is degraded or missing",
    )
    cached: bool = False
    stale: bool = False


class ImageResponse(BaseModel):
    """Artwork lookup result. ``image_url`` is null when no artwork was found."""

    card: CardRef
    image_url: str | None = None


class ObservationResponse(BaseModel):
    price: float
    date: datetime
    source: str
    category: str
    color: str


class HistoryResponse(BaseModel):
    """Synthetic price history."""

    synthetic: bool = Field(
        default=True,
        description="Always true: observations are derived from one current snapshot",
    )
    note: str | None = None
    observations: list[ObservationResponse] = Field(default_factory=list)


def price_response(result: PriceResult, card: CardRef | None = None) -> PriceResponse:
    return PriceResponse(
        price=float(result.price) if result.price is not None else None,
        card=card,
        note=result.note,
        cached=result.cached,
        stale=result.stale,
    )


def history_response(history: PriceHistory) -> HistoryResponse:
    return HistoryResponse(
        synthetic=history.synthetic,
        note=history.note,
        observations=[
            ObservationResponse(
                price=float(obs.price),
                date=obs.date,
                source=obs.source,
                category=obs.category.value,
                color=obs.color,
            )
            for obs in history.observations
        ],
    )


@router.get("/search", response_model=list[CardSuggestionResponse])
async def search_cards(
    search: Annotated[CardSearch, Depends(get_card_search)],
    query: Annotated[str, Query(description="Part of a card name")] = "",
) -> list[CardSuggestionResponse]:
    """
    Search cards by name.

    Returns at most 20 suggestions, sorted by name. Queries shorter than
    two characters return nothing.
    """
    suggestions = await search.search(query)
    return [
        CardSuggestionResponse(
            id=s.id,
            name=s.name,
            set=s.set_id,
            number=s.number,
            image_url=s.image_url,
            display_text=s.display_text,
        )
        for s in suggestions
    ]


@router.get("/price", response_model=PriceResponse)
async def get_card_price(
    resolver: Annotated[PriceResolver, Depends(get_price_resolver)],
    name: Annotated[str, Query(min_length=1)],
    set_id: Annotated[str, Query(alias="set", min_length=1)],
    number: Annotated[str, Query(min_length=1)],
    vocabulary: SetVocabulary = SetVocabulary.PRICING,
) -> PriceResponse:
    """
    Get a card's current price.

    Served from cache when fresh. When the pricing budget is spent or the
    provider fails, the last known price is returned with a note, or null.
    """
    identity = CardIdentity(
        name=name.strip(),
        set_id=set_id.strip(),
        number=parse_card_number(number.strip()),
        vocabulary=vocabulary,
    )
    result = await resolver.resolve_price(identity)
    return price_response(result, CardRef(name=name, set=set_id, number=number))


@router.get("/price/{provider_card_id}", response_model=PriceResponse)
async def get_card_price_by_id(
    provider_card_id: str,
    resolver: Annotated[PriceResolver, Depends(get_price_resolver)],
) -> PriceResponse:
    """Get a card's current price by its pricing-provider ID."""
    result = await resolver.resolve_price_by_provider_id(provider_card_id)
    return price_response(result)


@router.get("/image", response_model=ImageResponse)
async def get_card_image(
    resolver: Annotated[ImageResolver, Depends(get_image_resolver)],
    name: Annotated[str, Query(min_length=1)],
    set_id: Annotated[str, Query(alias="set", min_length=1)],
    number: Annotated[str, Query(min_length=1)],
    vocabulary: SetVocabulary = SetVocabulary.PRICING,
    artwork_set: Annotated[str | None, Query(description="TCGdex set ID, if known")] = None,
) -> ImageResponse:
    """Get a card's high-resolution artwork URL, or null when none is found."""
    identity = CardIdentity(
        name=name.strip(), set_id=set_id.strip(), number=number, vocabulary=vocabulary
    )
    image_url = await resolver.resolve_image(identity, artwork_set)
    return ImageResponse(card=CardRef(name=name, set=set_id, number=number), image_url=image_url)


@router.get("/history", response_model=HistoryResponse)
async def get_card_history(
    synthesizer: Annotated[PriceHistorySynthesizer, Depends(get_history_synthesizer)],
    name: Annotated[str, Query(min_length=1)],
    set_id: Annotated[str, Query(alias="set", min_length=1)],
    number: Annotated[str, Query(min_length=1)],
    vocabulary: SetVocabulary = SetVocabulary.PRICING,
) -> HistoryResponse:
    """
    Get a synthetic price history for charting.

    The observations are fields of a single current snapshot placed at
    fixed offsets. They are not measured historical prices.
    """
    identity = CardIdentity(
        name=name.strip(),
        set_id=set_id.strip(),
        number=parse_card_number(number.strip()),
        vocabulary=vocabulary,
    )
    history = await synthesizer.history_for(identity)
    return history_response(history)
