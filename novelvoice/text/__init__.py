"""Text preparation for speech synthesis.

This package provides deterministic cleanup, byte-bounded segmentation, and
slug helpers used before and around provider calls.
"""

from .cleaners import (
    CollapseBlankLines,
    DecodeHtmlEntities,
    RemoveMarkdownCharacters,
    StripHtmlTags,
    TextCleaner,
)
from .segmenter import MIN_SEGMENT_BYTES, TextSegmenter, utf8_length
from .slug import slugify_title

__all__ = [
    "MIN_SEGMENT_BYTES",
    "CollapseBlankLines",
    "DecodeHtmlEntities",
    "RemoveMarkdownCharacters",
    "StripHtmlTags",
    "TextCleaner",
    "TextSegmenter",
    "slugify_title",
    "utf8_length",
]
