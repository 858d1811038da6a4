"""Service rate cards used to anchor quote estimates.

Prices are integer cents.  Lookup matches the requested service against the
card's keyword, so "weekly lawn mowing" resolves to the lawn mowing card.
"""

from decimal import Decimal

from pydantic import BaseModel

DEFAULT_PRICE_CENTS = 10_000
MIN_PRICE_CENTS = 5_000


class RateCard(BaseModel, frozen=True):
    """Immutable base price for one kind of service.

    Attributes:
        keyword: Lower-case phrase matched against the requested service.
        base_price: Starting price in cents.
    """

    keyword: str
    base_price: int


# Ordered: more specific phrases first.
DEFAULT_RATE_CARDS: tuple[RateCard, ...] = (
    RateCard(keyword="lawn mowing", base_price=7_500),
    RateCard(keyword="lawn care", base_price=7_500),
    RateCard(keyword="tree trimming", base_price=15_000),
    RateCard(keyword="hedge trimming", base_price=10_000),
    RateCard(keyword="leaf removal", base_price=12_500),
    RateCard(keyword="garden maintenance", base_price=8_500),
    RateCard(keyword="landscaping", base_price=25_000),
    RateCard(keyword="mulching", base_price=20_000),
    RateCard(keyword="irrigation", base_price=30_000),
)


def get_rate_card(service_type: str) -> RateCard | None:
    """Return the first rate card whose keyword appears in *service_type*."""
    normalized = service_type.lower()
    for card in DEFAULT_RATE_CARDS:
        if card.keyword in normalized:
            return card
    return None


def estimate_base_price(service_type: str) -> int:
    """Return the base price in cents for *service_type*.

    Unknown services fall back to ``DEFAULT_PRICE_CENTS``; no estimate is
    ever below ``MIN_PRICE_CENTS``.
    """
    card = get_rate_card(service_type)
    price = card.base_price if card is not None else DEFAULT_PRICE_CENTS
    return max(price, MIN_PRICE_CENTS)


def format_price(cents: int) -> str:
    """Format *cents* as a dollar amount, e.g. ``7500 -> "$75.00"``."""
    return f"${Decimal(cents) / 100:,.2f}"
