"""Filesystem-safe slugs for audio artifact names.

Titles come from user-edited chapters, so slugs are ASCII-folded, lowercase,
and length-capped to keep artifact paths portable.
"""

from __future__ import annotations

import re
import unicodedata


_MAX_SLUG_CHARS = 50


def slugify_title(value: str, fallback: str = "untitled") -> str:
    """Return a deterministic ASCII slug of at most 50 characters."""

    normalized = unicodedata.normalize("NFKD", value)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii")
    collapsed = re.sub(r"[^a-z0-9]+", "-", ascii_only.lower())
    slug = collapsed.strip("-")[:_MAX_SLUG_CHARS].rstrip("-")
    return slug or fallback
