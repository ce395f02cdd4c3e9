"""Input/output adapters for chapter content and artifact persistence."""

from .chapter_source import ChapterSource, DirectoryChapterSource, InMemoryChapterSource
from .storage import ArtifactStore

__all__ = [
    "ArtifactStore",
    "ChapterSource",
    "DirectoryChapterSource",
    "InMemoryChapterSource",
]
