"""Chapter-content collaborators.

Responsibilities:
- Define the read-only interface the job core uses to fetch chapter text.
- Load a project from a directory of chapter files for CLI usage.
- Provide an in-memory source for embedding and tests.

Directory layout accepted by `DirectoryChapterSource`:

    my-novel/
      project.yaml        # optional
      01-arrival.md
      02-departure.md

`project.yaml` may set `id`, `title`, and an ordered `chapters` list whose
items carry `file` plus optional `id` and `title`. Without it, every `.md`
and `.txt` file is a chapter in file-name order.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol

import yaml

from ..errors import ContentError, ValidationError
from ..models.datatypes import Chapter
from ..parsing import normalize_optional_string

_CHAPTER_SUFFIXES = (".md", ".txt")


class ChapterSource(Protocol):
    """Read-only access to project chapters."""

    def project_title(self, project_id: str) -> str:
        """Return the display title of a project."""

    def list_chapters(self, project_id: str) -> list[Chapter]:
        """Return all project chapters in order."""

    def get_chapter(self, project_id: str, chapter_id: str) -> Chapter | None:
        """Return one chapter, or `None` when it does not exist."""


class InMemoryChapterSource:
    """Chapter source backed by already-loaded chapter records."""

    def __init__(
        self,
        chapters: Iterable[Chapter],
        titles: Mapping[str, str] | None = None,
    ) -> None:
        self._chapters: dict[str, list[Chapter]] = {}
        for chapter in chapters:
            self._chapters.setdefault(chapter.project_id, []).append(chapter)
        for project_chapters in self._chapters.values():
            project_chapters.sort(key=lambda item: item.index)
        self._titles = dict(titles or {})

    def project_title(self, project_id: str) -> str:
        self._require_project(project_id)
        return self._titles.get(project_id, project_id)

    def list_chapters(self, project_id: str) -> list[Chapter]:
        self._require_project(project_id)
        return list(self._chapters[project_id])

    def get_chapter(self, project_id: str, chapter_id: str) -> Chapter | None:
        self._require_project(project_id)
        for chapter in self._chapters[project_id]:
            if chapter.id == chapter_id:
                return chapter
        return None

    def remove_chapter(self, project_id: str, chapter_id: str) -> None:
        """Delete a chapter, as an editor would while a job is running."""

        self._chapters[project_id] = [
            chapter for chapter in self._chapters.get(project_id, []) if chapter.id != chapter_id
        ]

    def _require_project(self, project_id: str) -> None:
        if project_id not in self._chapters:
            raise ValidationError(f"Unknown project `{project_id}`.")


class DirectoryChapterSource:
    """Chapter source reading one project from a directory on disk."""

    def __init__(self, project_dir: Path) -> None:
        """Load the project manifest and chapter files eagerly.

        Raises:
            ValidationError: If the directory or manifest is unusable.
            ContentError: If the project contains no chapter files.
        """

        if not project_dir.is_dir():
            raise ValidationError(
                f"Project directory `{project_dir}` does not exist.",
                hint="Pass a directory containing chapter `.md` or `.txt` files.",
            )
        self.project_dir = project_dir
        manifest = self._load_manifest(project_dir / "project.yaml")
        self.project_id = normalize_optional_string(manifest.get("id")) or project_dir.name
        self.title = normalize_optional_string(manifest.get("title")) or self.project_id
        entries = manifest.get("chapters")
        if entries is None:
            self._chapters = self._discover_chapters()
        else:
            self._chapters = self._chapters_from_manifest(entries)
        if not self._chapters:
            raise ContentError(
                f"Project directory `{project_dir}` contains no chapters.",
                hint="Add `.md` or `.txt` chapter files or list them in `project.yaml`.",
            )

    def project_title(self, project_id: str) -> str:
        self._require_project(project_id)
        return self.title

    def list_chapters(self, project_id: str) -> list[Chapter]:
        self._require_project(project_id)
        return list(self._chapters)

    def get_chapter(self, project_id: str, chapter_id: str) -> Chapter | None:
        self._require_project(project_id)
        return next((chapter for chapter in self._chapters if chapter.id == chapter_id), None)

    def _require_project(self, project_id: str) -> None:
        if project_id != self.project_id:
            raise ValidationError(
                f"Unknown project `{project_id}`; this source serves `{self.project_id}`."
            )

    @staticmethod
    def _load_manifest(path: Path) -> Mapping[str, Any]:
        """Parse `project.yaml` when present."""

        if not path.exists():
            return {}
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ValidationError(f"Invalid YAML in `{path}`: {exc}") from exc
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise ValidationError(f"`{path}` must contain a mapping at the top level.")
        return payload

    def _discover_chapters(self) -> list[Chapter]:
        """Build chapters from chapter files in name order."""

        files = sorted(
            path
            for path in self.project_dir.iterdir()
            if path.is_file() and path.suffix.lower() in _CHAPTER_SUFFIXES
        )
        return [
            self._chapter(index, path, chapter_id=path.stem, title=path.stem)
            for index, path in enumerate(files, start=1)
        ]

    def _chapters_from_manifest(self, entries: object) -> list[Chapter]:
        """Build chapters from the ordered manifest `chapters` list."""

        if not isinstance(entries, list):
            raise ValidationError("`chapters` in `project.yaml` must be a list.")
        chapters: list[Chapter] = []
        seen_ids: set[str] = set()
        for index, entry in enumerate(entries, start=1):
            if not isinstance(entry, Mapping):
                raise ValidationError(f"Chapter entry #{index} in `project.yaml` must be a mapping.")
            file_name = normalize_optional_string(entry.get("file"))
            if file_name is None:
                raise ValidationError(f"Chapter entry #{index} in `project.yaml` needs `file`.")
            path = self.project_dir / file_name
            chapter_id = normalize_optional_string(entry.get("id")) or path.stem
            if chapter_id in seen_ids:
                raise ValidationError(f"Duplicate chapter id `{chapter_id}` in `project.yaml`.")
            seen_ids.add(chapter_id)
            title = normalize_optional_string(entry.get("title")) or path.stem
            chapters.append(self._chapter(index, path, chapter_id=chapter_id, title=title))
        return chapters

    def _chapter(self, index: int, path: Path, *, chapter_id: str, title: str) -> Chapter:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationError(f"Cannot read chapter file `{path}`: {exc.strerror or exc}.") from exc
        return Chapter(
            id=chapter_id,
            project_id=self.project_id,
            index=index,
            title=title,
            text=text,
        )
