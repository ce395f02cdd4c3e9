"""Ordered concatenation of MP3 audio artifacts.

Responsibilities:
- Join MP3 frame streams in the given order without re-encoding.
- Merge persisted chapter artifacts into the whole-book artifact.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from ..io.storage import ArtifactStore


def concatenate_audio(parts: Iterable[bytes]) -> bytes:
    """Concatenate MP3 buffers in iteration order."""

    return b"".join(parts)


class AudioMerger:
    """Merge chapter MP3 artifacts into one deterministic output artifact."""

    def __init__(self, store: ArtifactStore) -> None:
        self.store = store

    def merge(self, part_paths: Sequence[Path | str], output_path: Path | str) -> Path:
        """Concatenate `part_paths` in order into `output_path`.

        Raises:
            ValueError: If no parts are given.
            PersistenceError: If a part cannot be read or the output written.
        """

        if not part_paths:
            raise ValueError("At least one audio part is required to merge.")
        merged = concatenate_audio(self.store.load_bytes(path) for path in part_paths)
        return self.store.save_audio(output_path, merged)
