"""Chapter-to-segment splitting under a provider byte limit.

Responsibilities:
- Clean chapter text and split it into ordered, byte-bounded segments.
- Prefer sentence boundaries, then word boundaries, then an exact byte cut.
- Never bisect a multi-byte character: cut points are chosen in character
  units and only measured in bytes.
"""

from __future__ import annotations

from ..errors import ContentError
from ..models.datatypes import TextSegment
from .cleaners import TextCleaner


MIN_SEGMENT_BYTES = 16


def utf8_length(text: str) -> int:
    """Return the UTF-8 encoded byte length of `text`."""

    return len(text.encode("utf-8"))


class TextSegmenter:
    """Split cleaned text into segments that each fit one synthesis request."""

    _WINDOW_RATIO = 0.8
    _MIN_BREAK_RATIO = 0.3
    _SENTENCE_TERMINATORS = ".!?"

    def __init__(self, cleaner: TextCleaner | None = None) -> None:
        """Initialize with an optional custom text cleaner."""

        self.cleaner = cleaner if cleaner is not None else TextCleaner()

    def clean(self, text: str) -> str:
        """Return synthesis-ready text without segmenting it."""

        return self.cleaner.clean(text)

    def segment(self, text: str, max_bytes: int) -> list[TextSegment]:
        """Clean `text` and split it into ordered segments of at most `max_bytes`.

        Args:
            text: Raw chapter text.
            max_bytes: Hard per-segment UTF-8 byte limit.

        Returns:
            Ordered segments whose concatenation equals the cleaned text.

        Raises:
            ContentError: If no text remains after cleaning.
            ValueError: If `max_bytes` is below `MIN_SEGMENT_BYTES`.
        """

        if max_bytes < MIN_SEGMENT_BYTES:
            raise ValueError(f"`max_bytes` must be at least {MIN_SEGMENT_BYTES}.")

        cleaned = self.clean(text)
        if not cleaned:
            raise ContentError("No content to convert.")
        return [
            TextSegment(index=index, text=piece)
            for index, piece in enumerate(self.split_cleaned(cleaned, max_bytes))
        ]

    def split_cleaned(self, text: str, max_bytes: int) -> list[str]:
        """Split already-cleaned text into byte-bounded pieces."""

        if utf8_length(text) <= max_bytes:
            return [text]

        window_bytes = int(max_bytes * self._WINDOW_RATIO)
        pieces: list[str] = []
        position = 0
        text_length = len(text)
        while position < text_length:
            window_end = self._end_within_bytes(text, position, window_bytes)
            if window_end >= text_length:
                pieces.append(text[position:])
                break
            cut = self._resolve_cut(text, position, window_end, max_bytes)
            pieces.append(text[position:cut])
            position = cut
        return pieces

    def _resolve_cut(self, text: str, start: int, window_end: int, max_bytes: int) -> int:
        """Pick the segment end for a window starting at `start`."""

        window = text[start:window_end]
        min_offset = len(window) * self._MIN_BREAK_RATIO

        sentence_offset = max(window.rfind(mark) for mark in self._SENTENCE_TERMINATORS)
        if sentence_offset > min_offset:
            return start + sentence_offset + 1

        word_offset = self._last_whitespace(window)
        if word_offset > min_offset:
            return start + word_offset

        return self._emergency_end(text, start, max_bytes)

    @staticmethod
    def _last_whitespace(window: str) -> int:
        """Return the offset of the last whitespace character, or -1."""

        for offset in range(len(window) - 1, -1, -1):
            if window[offset].isspace():
                return offset
        return -1

    def _emergency_end(self, text: str, start: int, max_bytes: int) -> int:
        """Grow the segment one character at a time up to the hard byte limit."""

        end = self._end_within_bytes(text, start, max_bytes)
        if end <= start:
            # A single character always fits because max_bytes >= MIN_SEGMENT_BYTES.
            return start + 1
        return end

    @staticmethod
    def _end_within_bytes(text: str, start: int, byte_budget: int) -> int:
        """Return the largest end index whose slice from `start` fits `byte_budget`."""

        used = 0
        index = start
        text_length = len(text)
        while index < text_length:
            width = utf8_length(text[index])
            if used + width > byte_budget:
                break
            used += width
            index += 1
        return index
