"""Artifact storage abstraction.

Responsibilities:
- Provide deterministic filesystem storage for audio, JSON, and JSONL records.
- Write files atomically so concurrent readers never observe partial artifacts.
- Map filesystem failures to `PersistenceError`.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any

from ..errors import PersistenceError


class ArtifactStore:
    """Filesystem-backed artifact store rooted at one output directory."""

    def __init__(self, root: Path) -> None:
        """Initialize the store with a root output directory."""

        self.root = root
        self._append_lock = threading.Lock()

    def path_for(self, relative_path: Path | str) -> Path:
        """Return the absolute path for an artifact-relative path."""

        return self.root / Path(relative_path)

    def save_json(self, relative_path: Path | str, payload: dict[str, Any]) -> Path:
        """Save JSON-serializable payload and return final path."""

        content = json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)
        return self._write_atomic(relative_path, content.encode("utf-8"))

    def save_audio(self, relative_path: Path | str, data: bytes) -> Path:
        """Save audio bytes and return final path."""

        return self._write_atomic(relative_path, data)

    def load_json(self, relative_path: Path | str) -> dict[str, Any]:
        """Load a JSON object from artifact storage."""

        path = self.path_for(relative_path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise PersistenceError(f"Failed to read `{path}`: {exc.strerror or exc}.") from exc
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Stored record `{path}` is not valid JSON.") from exc
        if not isinstance(payload, dict):
            raise PersistenceError(f"Stored record `{path}` must be a JSON object.")
        return payload

    def load_bytes(self, relative_path: Path | str) -> bytes:
        """Load raw artifact bytes."""

        path = self.path_for(relative_path)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise PersistenceError(f"Failed to read `{path}`: {exc.strerror or exc}.") from exc

    def append_jsonl(self, relative_path: Path | str, payload: dict[str, Any]) -> Path:
        """Append one JSON object as a line to a JSONL artifact."""

        path = self.path_for(relative_path)
        line = json.dumps(payload, ensure_ascii=False, sort_keys=True)
        with self._append_lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            except OSError as exc:
                raise PersistenceError(
                    f"Failed to append to `{path}`: {exc.strerror or exc}."
                ) from exc
        return path

    def read_jsonl(self, relative_path: Path | str) -> list[dict[str, Any]]:
        """Read every JSON object line of a JSONL artifact, or `[]` if absent."""

        path = self.path_for(relative_path)
        if not path.exists():
            return []
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise PersistenceError(f"Failed to read `{path}`: {exc.strerror or exc}.") from exc
        records: list[dict[str, Any]] = []
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as exc:
                raise PersistenceError(
                    f"Line {line_number} of `{path}` is not valid JSON."
                ) from exc
            if not isinstance(payload, dict):
                raise PersistenceError(
                    f"Line {line_number} of `{path}` must be a JSON object."
                )
            records.append(payload)
        return records

    def list_files(self, relative_dir: Path | str, pattern: str = "*") -> list[Path]:
        """Return matching files under a directory in sorted order."""

        directory = self.path_for(relative_dir)
        if not directory.is_dir():
            return []
        return sorted(path for path in directory.glob(pattern) if path.is_file())

    def exists(self, relative_path: Path | str) -> bool:
        """Return whether the given artifact exists."""

        return self.path_for(relative_path).exists()

    def size(self, relative_path: Path | str) -> int:
        """Return the artifact size in bytes."""

        path = self.path_for(relative_path)
        try:
            return path.stat().st_size
        except OSError as exc:
            raise PersistenceError(f"Failed to stat `{path}`: {exc.strerror or exc}.") from exc

    def _write_atomic(self, relative_path: Path | str, data: bytes) -> Path:
        """Write bytes to a sibling temp file and rename it into place."""

        path = self.path_for(relative_path)
        temp_path = path.with_name(f".{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(data)
            os.replace(temp_path, path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise PersistenceError(
                f"Failed to write `{path}`: {exc.strerror or exc}."
            ) from exc
        return path
