import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from pokevault.models.failure import InvalidCardNumberError


class SetVocabulary(str, Enum):
    """The independent set-ID schemes used for the same logical card set."""

    DISPLAY = "display"  # UI dropdown slugs, e.g. "shrouded-fable"
    PRICING = "pricing"  # Pokemon Price Tracker IDs, e.g. "sv6pt5"
    ARTWORK = "artwork"  # TCGdex IDs, e.g. "sv06.5"


@dataclass(frozen=True, slots=True)
class CardIdentity:
    """
    User-supplied identity of a card.

    Attributes:
        name: Card name (e.g., "Charizard")
        set_id: Set identifier, expressed in ``vocabulary``
        number: Free-form collector number ("4", "25/102", "TG20")
        vocabulary: Which set-ID scheme ``set_id`` belongs to
    """

    name: str
    set_id: str
    number: str
    vocabulary: SetVocabulary = SetVocabulary.PRICING


@dataclass
class PortfolioCard:
    """
    A card held in a user's portfolio.

    ``current_price`` and ``image_url`` are None when unavailable; they are
    never defaulted to zero or a placeholder.
    """

    id: str
    name: str
    set: str
    number: str
    display_number: str
    quantity: int
    current_price: Decimal | None
    image_url: str | None
    date_added: datetime
    last_updated: datetime

    def total_value(self) -> Decimal | None:
        """Price times quantity, or None when the price is unknown."""
        if self.current_price is None:
            return None
        return self.current_price * self.quantity


# =============================================================================
# CARD NUMBER PARSING
# =============================================================================

_PROMO_DASH_PATTERN = re.compile(r"^\w+-\d+$")

VALID_NUMBER_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"^\d+/\d+$",
        r"^[A-Z]+\d+/[A-Z]*\d+$",
        r"^\d+$",
        r"^[A-Z]+\d+$",
        r"^[A-Za-z]+-\d+$",
        r"^[A-Za-z]+\d+[A-Za-z]*$",
        r"^[A-Z]{1,4}\d+$",
        r"^[A-Z]{2,6}\d+$",
        r"^[A-Z]+\d+[A-Za-z]+$",
        r"^\d+[A-Z]+$",
        r"^[A-Z]+\d+/[A-Z]+\d+$",
        r"^[A-Za-z0-9]+-[A-Za-z0-9]+$",
        r"^[A-Z]{1,3}\d{1,3}$",
    )
)


def parse_card_number(raw: str) -> str:
    """
    Strip the total-in-set suffix or promo prefix from a card number.

    Examples:
        "25/102" -> "25"
        "Promo-001" -> "001"
        "TG20" -> "TG20"
    """
    if "/" in raw:
        return raw.split("/")[0].strip()
    if "-" in raw and _PROMO_DASH_PATTERN.match(raw):
        return raw.split("-")[1].strip()
    return raw


def validate_card_number(raw: str) -> str:
    """
    Validate a user-entered card number and return its parsed form.

    Raises:
        InvalidCardNumberError: If the number matches no known format
    """
    raw = raw.strip()
    if not raw or not any(p.match(raw) for p in VALID_NUMBER_PATTERNS):
        raise InvalidCardNumberError(raw)
    return parse_card_number(raw)
