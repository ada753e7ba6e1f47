"""
Representative price extraction from pricing-provider snapshots.

A snapshot holds one card record with nested price groups:

    {
        "data": [{
            "ebay": {"prices": {"psa10": {"stats": {"average": 812.5}}, ...}},
            "tcgPlayer": {"prices": {"market": 350.0, "low": 290.0, ...}},
            "cardmarket": {"prices": {"trendPrice": 310.0, "avg30": 305.0, ...}}
        }]
    }

The representative price is the maximum of every present, strictly
positive numeric field. Zero and absent fields are not price signals.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

TCGPLAYER_PRICE_FIELDS = ("market", "mid", "high", "low")
CARDMARKET_PRICE_FIELDS = ("trendPrice", "averagePrice", "avg1", "avg7", "avg30")


def first_card_record(response: Any) -> dict[str, Any] | None:
    """Return the first card record of a snapshot, or None if there is none."""
    if not isinstance(response, dict):
        return None
    records = response.get("data")
    if not isinstance(records, list) or not records:
        return None
    record = records[0]
    return record if isinstance(record, dict) else None


def to_positive_decimal(value: Any) -> Decimal | None:
    """
    Convert a raw JSON value to a Decimal if it is a strictly positive number.

    Numeric strings are accepted; booleans, NaN and infinities are not.
    """
    if isinstance(value, bool) or value is None:
        return None
    if not isinstance(value, int | float | str):
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    if not price.is_finite() or price <= 0:
        return None
    return price


def price_group(record: dict[str, Any], provider: str) -> dict[str, Any]:
    """Get ``record[provider]["prices"]`` or an empty dict."""
    group = record.get(provider)
    if not isinstance(group, dict):
        return {}
    prices = group.get("prices")
    return prices if isinstance(prices, dict) else {}


def graded_average(grade_data: Any) -> Decimal | None:
    """Get a graded-sale tier's ``stats.average``."""
    if not isinstance(grade_data, dict):
        return None
    stats = grade_data.get("stats")
    if not isinstance(stats, dict):
        return None
    return to_positive_decimal(stats.get("average"))


def collect_prices(record: dict[str, Any]) -> list[Decimal]:
    """Collect every qualifying price field of a card record."""
    prices: list[Decimal] = []

    for grade_data in price_group(record, "ebay").values():
        average = graded_average(grade_data)
        if average is not None:
            prices.append(average)

    tcgplayer = price_group(record, "tcgPlayer")
    for field_name in TCGPLAYER_PRICE_FIELDS:
        price = to_positive_decimal(tcgplayer.get(field_name))
        if price is not None:
            prices.append(price)

    cardmarket = price_group(record, "cardmarket")
    for field_name in CARDMARKET_PRICE_FIELDS:
        price = to_positive_decimal(cardmarket.get(field_name))
        if price is not None:
            prices.append(price)

    return prices


def extract_highest_price(response: Any) -> Decimal | None:
    """
    Extract the highest observed price from a snapshot.

    Args:
        response: Raw pricing-provider response

    Returns:
        Maximum strictly positive price, or None if no field qualifies
    """
    record = first_card_record(response)
    if record is None:
        return None

    prices = collect_prices(record)
    if not prices:
        return None
    return max(prices)
