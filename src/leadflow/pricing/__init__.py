"""Service pricing for quote estimates.

Re-exports key functions and types for convenient access:
    from leadflow.pricing import estimate_base_price, format_price
"""

from leadflow.pricing.rate_cards import (
    DEFAULT_PRICE_CENTS,
    MIN_PRICE_CENTS,
    RateCard,
    estimate_base_price,
    format_price,
    get_rate_card,
)

__all__ = [
    "DEFAULT_PRICE_CENTS",
    "MIN_PRICE_CENTS",
    "RateCard",
    "estimate_base_price",
    "format_price",
    "get_rate_card",
]
