"""Deterministic per-character synthesis pricing.

Responsibilities:
- Hold the per-million-character USD rate of each pricing tier.
- Convert character counts to integer cents with half-up rounding.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..models.datatypes import PricingTier

RATE_PER_MILLION_USD: dict[PricingTier, Decimal] = {
    PricingTier.BASIC: Decimal("4.00"),
    PricingTier.PREMIUM: Decimal("16.00"),
    PricingTier.STUDIO: Decimal("16.00"),
}

_ONE_MILLION = Decimal(1_000_000)
_CENTS_PER_USD = Decimal(100)


def cost_cents(character_count: int, pricing_tier: PricingTier) -> int:
    """Return the cost of `character_count` characters in whole cents.

    Raises:
        ValueError: If `character_count` is negative.
    """

    if character_count < 0:
        raise ValueError("`character_count` must not be negative.")
    if character_count == 0:
        return 0
    exact = Decimal(character_count) / _ONE_MILLION * RATE_PER_MILLION_USD[pricing_tier]
    return int((exact * _CENTS_PER_USD).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_usd(cents: int) -> str:
    """Render integer cents as a dollar string such as `$2.00`."""

    sign = "-" if cents < 0 else ""
    whole, fraction = divmod(abs(cents), 100)
    return f"{sign}${whole}.{fraction:02d}"
