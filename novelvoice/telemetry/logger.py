"""Structured job logging utilities.

Responsibilities:
- Emit concise, deterministic job-level lifecycle logs through `loguru`.
- Keep payload text and credentials out of log lines.
"""

from __future__ import annotations

from enum import Enum
from typing import TextIO

from loguru import logger

_SAFE_PUNCTUATION = frozenset({"-", "_", ".", ":", "/"})


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    if isinstance(value, Enum):
        value = value.value
    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in _SAFE_PUNCTUATION else "_"
        for character in raw
    )


def format_context(context: dict[str, object]) -> str:
    """Serialize context pairs in key order, skipping `None` values."""

    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context)
        if context[key] is not None
    ]
    if not tokens:
        return ""
    return " " + " ".join(tokens)


class JobLogger:
    """Emit deterministic lifecycle logs for audiobook jobs.

    When `sink` is given, all existing `loguru` handlers are replaced with one
    plain-message handler writing to it. Otherwise handler configuration is
    left to the host application.
    """

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Initialize logger sink and configure deterministic formatting."""

        self._logger = logger.bind(component="novelvoice")
        if sink is not None:
            logger.remove()
            logger.add(sink, format="{message}", level=level, colorize=False)

    def _emit(self, level: str, event: str, job_id: str, **context: object) -> None:
        """Emit one structured job log line."""

        line = f"[job] level={level} job={_sanitize_context_value(job_id)} event={event}"
        self._logger.log(level, line + format_context(context))

    def job_created(self, job_id: str, **context: object) -> None:
        """Log acceptance of a new job."""

        self._emit("INFO", "created", job_id, **context)

    def status_changed(self, job_id: str, status: object, **context: object) -> None:
        """Log one job status transition."""

        self._emit("INFO", "status", job_id, status=status, **context)

    def chapter_completed(self, job_id: str, chapter_id: str, **context: object) -> None:
        """Log persisted chapter progress."""

        self._emit("INFO", "chapter_complete", job_id, chapter=chapter_id, **context)

    def job_completed(self, job_id: str, **context: object) -> None:
        """Log successful job finalization."""

        self._emit("INFO", "completed", job_id, **context)

    def job_failed(self, job_id: str, error_kind: str, **context: object) -> None:
        """Log job failure with the error kind only, never the raw detail."""

        self._emit("ERROR", "failed", job_id, error_kind=error_kind, **context)
