"""Unit tests for shared parsing helpers."""

from __future__ import annotations

import pytest

from novelvoice.models.datatypes import SubscriptionTier
from novelvoice.parsing import (
    normalize_optional_string,
    parse_enum,
    parse_float,
    parse_permissive_boolean,
    parse_positive_int,
)


def test_normalize_optional_string() -> None:
    """Blank values normalize to `None`, others are stripped."""

    assert normalize_optional_string(None) is None
    assert normalize_optional_string("   ") is None
    assert normalize_optional_string("  key ") == "key"
    assert normalize_optional_string(42) == "42"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(True, True), ("YES", True), ("on", True), ("0", False), ("off", False), ("maybe", None), ("", None)],
)
def test_parse_permissive_boolean(value: object, expected: bool | None) -> None:
    """Boolean tokens are parsed case-insensitively."""

    assert parse_permissive_boolean(value) is expected


def test_parse_positive_int_rejects_bools_blanks_and_non_positive() -> None:
    """Only strictly positive integers are accepted."""

    assert parse_positive_int(" 7 ", "workers") == 7
    for bad in (True, "", "1.5", 0, "-3"):
        with pytest.raises(ValueError, match="`workers` must be a positive integer"):
            parse_positive_int(bad, "workers")


def test_parse_float() -> None:
    """Numbers and numeric strings parse, booleans do not."""

    assert parse_float("0.25", "rate") == 0.25
    assert parse_float(3, "rate") == 3.0
    with pytest.raises(ValueError, match="`rate` must be a number"):
        parse_float(False, "rate")
    with pytest.raises(ValueError, match="`rate` must be a number"):
        parse_float("fast", "rate")


def test_parse_enum_is_case_insensitive_and_lists_choices() -> None:
    """Enum tokens match values case-insensitively."""

    assert parse_enum(SubscriptionTier, " Premium ", "--tier") is SubscriptionTier.PREMIUM
    assert parse_enum(SubscriptionTier, SubscriptionTier.FREE, "--tier") is SubscriptionTier.FREE
    with pytest.raises(ValueError, match="`--tier` must be one of: free, basic, premium, studio"):
        parse_enum(SubscriptionTier, "gold", "--tier")
