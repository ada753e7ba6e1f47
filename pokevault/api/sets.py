"""
Set listing, set matching and API usage endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from pokevault.services.cache import get_image_cache, get_price_cache
from pokevault.services.rate_limiter import get_pricing_limiter
from pokevault.services.set_catalog import SetCatalog, SetSource, get_set_catalog
from pokevault.services.set_mapping import SetIdMapper, SetOption, get_set_mapper

router = APIRouter(tags=["sets"])


class SetResponse(BaseModel):
    id: str
    name: str


class SetsResponse(BaseModel):
    """Selectable sets and where the list came from."""

    sets: list[SetResponse] = Field(default_factory=list)
    source: SetSource = Field(
        ...,
        description="provider (fresh), cache (last known list) or fallback (built-in list)",
    )


class SetMatchRequest(BaseModel):
    """A card's artwork-provider set to match against selectable sets."""

    set_id: str = Field(..., description="TCGdex set ID, e.g. 'sv06.5'")
    set_name: str | None = Field(default=None, description="Human-readable set name")
    candidates: list[SetResponse] | None = Field(
        default=None,
        description="Sets to match against; defaults to the current set list",
    )


class SetMatchResponse(BaseModel):
    """``match`` is null when no tier matched."""

    match: SetResponse | None = None


class StatsResponse(BaseModel):
    """Pricing API usage and cache sizes."""

    api_calls_today: int
    daily_limit: int
    api_calls_this_minute: int
    minute_limit: int
    cache_size: int
    image_cache_size: int
    next_minute_reset: str


@router.get("/sets", response_model=SetsResponse)
async def list_sets(
    catalog: Annotated[SetCatalog, Depends(get_set_catalog)],
) -> SetsResponse:
    """
    List selectable sets.

    Cached for 24 hours. Falls back to the last known list, then to a
    built-in list, when the pricing provider cannot be used.
    """
    listing = await catalog.list_sets()
    return SetsResponse(
        sets=[SetResponse(id=s.id, name=s.name) for s in listing.sets],
        source=listing.source,
    )


@router.post("/sets/match", response_model=SetMatchResponse)
async def match_set(
    request: SetMatchRequest,
    mapper: Annotated[SetIdMapper, Depends(get_set_mapper)],
    catalog: Annotated[SetCatalog, Depends(get_set_catalog)],
) -> SetMatchResponse:
    """
    Match a set against selectable sets.

    Exact ID first, then the mapped ID, then the first set whose name
    contains (or is contained in) the given name.
    """
    if request.candidates is None:
        candidates = (await catalog.list_sets()).sets
    else:
        candidates = [SetOption(id=c.id, name=c.name) for c in request.candidates]

    match = mapper.select_set(request.set_id, request.set_name, candidates)
    if match is None:
        return SetMatchResponse(match=None)
    return SetMatchResponse(match=SetResponse(id=match.id, name=match.name))


@router.get("/stats", response_model=StatsResponse)
async def get_stats() -> StatsResponse:
    """Get pricing API usage against its limits."""
    diagnostics = get_pricing_limiter().get_diagnostics()
    return StatsResponse(
        api_calls_today=int(diagnostics["api_calls_today"]),
        daily_limit=int(diagnostics["daily_limit"]),
        api_calls_this_minute=int(diagnostics["api_calls_this_minute"]),
        minute_limit=int(diagnostics["minute_limit"]),
        cache_size=len(get_price_cache()),
        image_cache_size=len(get_image_cache()),
        next_minute_reset=str(diagnostics["next_minute_reset"]),
    )
