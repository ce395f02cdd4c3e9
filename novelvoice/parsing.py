"""Shared parsing helpers for config, CLI, and persisted record values."""

from __future__ import annotations

from enum import Enum
from typing import TypeVar


_TRUE_BOOLEAN_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_BOOLEAN_TOKENS = frozenset({"0", "false", "no", "off"})

_EnumT = TypeVar("_EnumT", bound=Enum)


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_permissive_boolean(value: object) -> bool | None:
    """Parse a permissive boolean token and return `None` for invalid values."""

    if isinstance(value, bool):
        return value

    normalized = normalize_optional_string(value)
    if normalized is None:
        return None

    token = normalized.lower()
    if token in _TRUE_BOOLEAN_TOKENS:
        return True
    if token in _FALSE_BOOLEAN_TOKENS:
        return False
    return None


def parse_positive_int(value: object, field_name: str) -> int:
    """Parse a strictly positive integer, rejecting booleans and blanks."""

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive integer.")
    if isinstance(value, int):
        parsed = value
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValueError(f"`{field_name}` must be a positive integer.")
        try:
            parsed = int(normalized)
        except ValueError as exc:
            raise ValueError(f"`{field_name}` must be a positive integer.") from exc
    if parsed <= 0:
        raise ValueError(f"`{field_name}` must be a positive integer.")
    return parsed


def parse_float(value: object, field_name: str) -> float:
    """Parse a finite float from numeric or textual input."""

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a number.")
    if isinstance(value, int | float):
        return float(value)
    normalized = normalize_optional_string(value)
    if normalized is None:
        raise ValueError(f"`{field_name}` must be a number.")
    try:
        return float(normalized)
    except ValueError as exc:
        raise ValueError(f"`{field_name}` must be a number.") from exc


def parse_enum(enum_type: type[_EnumT], value: object, field_name: str) -> _EnumT:
    """Parse an enum member from its value, case-insensitively.

    Raises:
        ValueError: If the token does not name a member of `enum_type`.
    """

    if isinstance(value, enum_type):
        return value
    normalized = normalize_optional_string(value)
    if normalized is not None:
        token = normalized.lower()
        for member in enum_type:
            if str(member.value).lower() == token:
                return member
    supported = ", ".join(str(member.value) for member in enum_type)
    raise ValueError(f"`{field_name}` must be one of: {supported}.")
