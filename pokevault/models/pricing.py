from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class PriceCategory(str, Enum):
    """Kind of price figure a synthetic observation was derived from."""

    HISTORICAL = "historical"
    RECENT = "recent"
    CURRENT = "current"
    TREND = "trend"
    REVERSE_HOLO = "reverse-holo"
    GRADED = "graded"
    TCGPLAYER = "tcgplayer"


# Display hints, one per category
CATEGORY_COLORS: dict[PriceCategory, str] = {
    PriceCategory.HISTORICAL: "#6c757d",
    PriceCategory.RECENT: "#0d6efd",
    PriceCategory.CURRENT: "#198754",
    PriceCategory.TREND: "#fd7e14",
    PriceCategory.REVERSE_HOLO: "#6f42c1",
    PriceCategory.GRADED: "#dc3545",
    PriceCategory.TCGPLAYER: "#20c997",
}


@dataclass(frozen=True, slots=True)
class PriceResult:
    """
    Outcome of a price lookup.

    Attributes:
        price: Representative price, or None when not available
        note: Why the price is degraded or missing (None on a clean lookup)
        cached: True if served from cache
        stale: True if the cached entry had expired
    """

    price: Decimal | None
    note: str | None = None
    cached: bool = False
    stale: bool = False


@dataclass(frozen=True, slots=True)
class PriceObservation:
    """
    One synthetic point of a price history.

    Not a measurement: each observation is a single field of a snapshot
    response placed at a fixed offset from now.
    """

    price: Decimal
    date: datetime
    source: str
    category: PriceCategory
    color: str


@dataclass
class PriceHistory:
    """A cross-sectional price snapshot laid out as a timeline."""

    observations: list[PriceObservation] = field(default_factory=list)
    synthetic: bool = True
    note: str | None = None
