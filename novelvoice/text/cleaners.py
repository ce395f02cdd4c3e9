"""Deterministic text cleaning rules applied before speech synthesis.

Responsibilities:
- Provide composable cleanup rules for editor-produced chapter text.
- Strip markup the provider would read aloud while keeping prose intact.
"""

from __future__ import annotations

import re
from typing import Protocol


class CleanerRule(Protocol):
    """Protocol for text cleaning rules."""

    def apply(self, text: str) -> str:
        """Apply a single cleaning transformation."""


class StripHtmlTags:
    """Replace rich-text editor HTML tags with a single space."""

    _TAG_RE = re.compile(r"<[^>]*>")

    def apply(self, text: str) -> str:
        """Replace complete `<...>` tags with spaces."""

        return self._TAG_RE.sub(" ", text)


class DecodeHtmlEntities:
    """Decode the small set of entities the editor emits."""

    _ENTITIES = (
        ("&nbsp;", " "),
        ("&lt;", "<"),
        ("&gt;", ">"),
        ("&quot;", '"'),
        ("&#39;", "'"),
        ("&apos;", "'"),
        ("&amp;", "&"),
    )

    def apply(self, text: str) -> str:
        """Decode entities, with `&amp;` last so escaped entities stay literal."""

        for entity, replacement in self._ENTITIES:
            text = text.replace(entity, replacement)
        return text


class RemoveMarkdownCharacters:
    """Remove markdown emphasis, heading, quote, and bracket characters."""

    _MARKDOWN_RE = re.compile(r"[*#><\[\]]")

    def apply(self, text: str) -> str:
        """Drop `* # > < [ ]` characters."""

        return self._MARKDOWN_RE.sub("", text)


class CollapseBlankLines:
    """Collapse runs of blank or whitespace-only lines to one blank line."""

    _BLANK_RUN_RE = re.compile(r"\n\s*\n")

    def apply(self, text: str) -> str:
        """Normalize paragraph separators to exactly two newlines."""

        return self._BLANK_RUN_RE.sub("\n\n", text)


class TextCleaner:
    """Apply a sequence of deterministic cleaner rules."""

    def __init__(self, rules: list[CleanerRule] | None = None) -> None:
        """Initialize with custom rules or the default synthesis rule sequence."""

        self.rules = rules or [
            StripHtmlTags(),
            DecodeHtmlEntities(),
            RemoveMarkdownCharacters(),
            CollapseBlankLines(),
        ]

    def clean(self, text: str) -> str:
        """Apply all configured rules in order and trim the result."""

        current = text
        for rule in self.rules:
            current = rule.apply(current)
        return current.strip()
