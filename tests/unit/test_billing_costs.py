"""Unit tests for per-character synthesis pricing."""

from __future__ import annotations

import pytest

from novelvoice.billing.costs import cost_cents, format_usd
from novelvoice.models.datatypes import PricingTier


def test_half_million_basic_characters_cost_two_dollars() -> None:
    """Basic voices cost $4 per million characters."""

    assert cost_cents(500_000, PricingTier.BASIC) == 200


@pytest.mark.parametrize(
    ("characters", "tier", "expected"),
    [
        (1_000_000, PricingTier.PREMIUM, 1600),
        (1_000_000, PricingTier.STUDIO, 1600),
        (0, PricingTier.STUDIO, 0),
        (1_250, PricingTier.BASIC, 1),
        (1_249, PricingTier.BASIC, 0),
    ],
)
def test_cost_cents_rounds_half_up(characters: int, tier: PricingTier, expected: int) -> None:
    """Fractional cents should round half up."""

    assert cost_cents(characters, tier) == expected


def test_negative_character_count_is_rejected() -> None:
    """Negative counts indicate a metering bug and must not be priced."""

    with pytest.raises(ValueError, match="must not be negative"):
        cost_cents(-1, PricingTier.BASIC)


@pytest.mark.parametrize(
    ("cents", "expected"),
    [(200, "$2.00"), (5, "$0.05"), (0, "$0.00"), (-150, "-$1.50")],
)
def test_format_usd(cents: int, expected: str) -> None:
    """Cents should render as dollar strings with two decimals."""

    assert format_usd(cents) == expected
