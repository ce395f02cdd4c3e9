"""Audiobook job status transitions.

All status changes go through `transition`, which consults one table of
legal moves and refuses anything else.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any

from ..errors import JobStateError
from ..models.datatypes import AudiobookJob, JobStatus

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.GENERATING}),
    JobStatus.GENERATING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def can_transition(current: JobStatus, target: JobStatus) -> bool:
    """Return whether `current -> target` is a legal move."""

    return target in ALLOWED_TRANSITIONS[current]


def transition(
    job: AudiobookJob,
    target: JobStatus,
    now: datetime,
    **changes: Any,
) -> AudiobookJob:
    """Return a copy of `job` moved to `target` with extra field `changes`.

    Raises:
        JobStateError: If the move is not in `ALLOWED_TRANSITIONS`.
    """

    if not can_transition(job.status, target):
        raise JobStateError(
            f"Job `{job.id}` cannot move from `{job.status.value}` to `{target.value}`."
        )
    return replace(job, status=target, updated_at=now, **changes)
