"""Tests for service rate cards and price formatting."""

import pytest
from pydantic import ValidationError

from leadflow.pricing.rate_cards import (
    DEFAULT_PRICE_CENTS,
    RateCard,
    estimate_base_price,
    format_price,
    get_rate_card,
)


class TestRateCard:
    """Tests for the RateCard model and lookup."""

    def test_keyword_found_inside_longer_request(self):
        card = get_rate_card("Weekly LAWN MOWING for a corner lot")
        assert card is not None
        assert card.keyword == "lawn mowing"

    def test_unknown_service(self):
        assert get_rate_card("pool cleaning") is None

    def test_rate_card_is_frozen(self):
        card = RateCard(keyword="snow removal", base_price=9_000)
        with pytest.raises(ValidationError):
            card.base_price = 1  # type: ignore[misc]


class TestEstimateBasePrice:
    @pytest.mark.parametrize(
        ("service_type", "expected"),
        [
            ("lawn mowing", 7_500),
            ("Tree trimming", 15_000),
            ("irrigation repair", 30_000),
            ("pool cleaning", DEFAULT_PRICE_CENTS),
        ],
    )
    def test_base_prices(self, service_type: str, expected: int):
        assert estimate_base_price(service_type) == expected


class TestFormatPrice:
    @pytest.mark.parametrize(
        ("cents", "expected"),
        [(7_500, "$75.00"), (5, "$0.05"), (123_456, "$1,234.56")],
    )
    def test_formats_dollars(self, cents: int, expected: str):
        assert format_price(cents) == expected
