"""Chapter resolution and artifact naming for audiobook jobs.

Responsibilities:
- Resolve the ordered chapters a job converts and pre-flight their segmentation.
- Derive deterministic artifact paths for chapter and whole-book audio.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from ..errors import ContentError
from ..io.chapter_source import ChapterSource
from ..models.datatypes import Chapter, JobScope
from ..text.segmenter import TextSegmenter
from ..text.slug import slugify_title

_ID_PREFIX_CHARS = 8
_UNSAFE_ID_RE = re.compile(r"[^A-Za-z0-9_-]")


@dataclass(frozen=True, slots=True)
class PlannedChapter:
    """A chapter scheduled for synthesis with its pre-flight measurements."""

    chapter: Chapter
    character_count: int
    segment_count: int


def plan_chapters(
    source: ChapterSource,
    segmenter: TextSegmenter,
    project_id: str,
    scope: JobScope,
    max_bytes: int,
    chapter_id: str | None = None,
) -> list[PlannedChapter]:
    """Return the chapters in scope, in project order, with segment counts.

    Full-book scope skips chapters that are empty after cleaning. Chapter
    scope requires the selected chapter to have content.

    Raises:
        ContentError: If the selected chapter is missing or empty, or no
            chapter of the project has content.
    """

    if scope is JobScope.CHAPTER:
        if chapter_id is None:
            raise ContentError("A chapter id is required for chapter scope.")
        chapter = source.get_chapter(project_id, chapter_id)
        if chapter is None:
            raise ContentError(f"Chapter `{chapter_id}` no longer exists.")
        return [_plan(segmenter, chapter, max_bytes)]

    planned = [
        _plan(segmenter, chapter, max_bytes)
        for chapter in source.list_chapters(project_id)
        if segmenter.clean(chapter.text)
    ]
    if not planned:
        raise ContentError("No chapters with content to convert.")
    return planned


def _plan(segmenter: TextSegmenter, chapter: Chapter, max_bytes: int) -> PlannedChapter:
    try:
        segments = segmenter.segment(chapter.text, max_bytes)
    except ContentError as exc:
        raise ContentError(f"Chapter `{chapter.title}` has no content to convert.") from exc
    return PlannedChapter(
        chapter=chapter,
        character_count=sum(len(segment.text) for segment in segments),
        segment_count=len(segments),
    )


def job_artifact_dir(project_id: str, job_id: str) -> Path:
    """Return the artifact directory of one job."""

    return Path("audiobooks") / slugify_title(project_id, fallback="project") / job_id


def chapter_artifact_path(project_id: str, job_id: str, chapter: Chapter) -> Path:
    """Return `chapter_<NNN>_<title-slug>_<id-prefix>.mp3` inside the job directory."""

    id_prefix = _UNSAFE_ID_RE.sub("_", chapter.id)[:_ID_PREFIX_CHARS]
    file_name = f"chapter_{chapter.index:03d}_{slugify_title(chapter.title)}_{id_prefix}.mp3"
    return job_artifact_dir(project_id, job_id) / file_name


def book_artifact_path(project_id: str, job_id: str, project_title: str) -> Path:
    """Return the whole-book artifact path inside the job directory."""

    file_name = f"audiobook_{slugify_title(project_title, fallback='project')}.mp3"
    return job_artifact_dir(project_id, job_id) / file_name
