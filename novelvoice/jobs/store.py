"""Durable job record store.

Responsibilities:
- Persist each job snapshot as `jobs/<job-id>.json` in the artifact store.
- Serialize writes so pollers always read a complete snapshot.
"""

from __future__ import annotations

import re
import threading
from pathlib import Path

from ..errors import JobNotFoundError, JobStateError
from ..io.storage import ArtifactStore
from ..models.datatypes import AudiobookJob
from .records import job_from_payload, job_payload

_JOB_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


class JobStore:
    """Artifact-backed job store with an in-process snapshot cache."""

    def __init__(self, store: ArtifactStore, directory: Path | str = "jobs") -> None:
        self._store = store
        self._directory = Path(directory)
        self._lock = threading.Lock()
        self._cache: dict[str, AudiobookJob] = {}

    def save(self, job: AudiobookJob) -> AudiobookJob:
        """Persist a job snapshot and return it."""

        with self._lock:
            self._store.save_json(self._path(job.id), job_payload(job))
            self._cache[job.id] = job
        return job

    def get(self, job_id: str) -> AudiobookJob:
        """Return the latest snapshot of a job.

        Raises:
            JobNotFoundError: If no record exists for `job_id`.
        """

        with self._lock:
            cached = self._cache.get(job_id)
            if cached is not None:
                return cached
            path = self._path(job_id)
            if not self._store.exists(path):
                raise JobNotFoundError(
                    f"Job `{job_id}` was not found.",
                    hint="Check the job id printed by `novelvoice create`.",
                )
            job = job_from_payload(self._store.load_json(path))
            self._cache[job_id] = job
            return job

    def request_cancel(self, job_id: str) -> AudiobookJob:
        """Record a cancellation request for an unfinished job.

        The request is a marker file beside the job record, so workers in any
        process sharing the artifact root observe it.

        Raises:
            JobNotFoundError: If the job does not exist.
            JobStateError: If the job already finished.
        """

        job = self.get(job_id)
        if job.status.is_terminal:
            raise JobStateError(
                f"Job `{job_id}` already finished with status `{job.status.value}`."
            )
        self._store.save_json(self._cancel_marker(job_id), {"job_id": job_id})
        return job

    def cancel_requested(self, job_id: str) -> bool:
        """Return whether a cancellation marker exists for the job."""

        return self._store.exists(self._cancel_marker(job_id))

    def list_jobs(self) -> list[AudiobookJob]:
        """Return every stored job ordered by creation time then id."""

        job_ids = [path.stem for path in self._store.list_files(self._directory, "*.json")]
        jobs = [self.get(job_id) for job_id in job_ids]
        return sorted(jobs, key=lambda job: (job.created_at is None, job.created_at, job.id))

    def _cancel_marker(self, job_id: str) -> Path:
        return self._path(job_id).with_suffix(".cancel")

    def _path(self, job_id: str) -> Path:
        if not _JOB_ID_RE.fullmatch(job_id):
            raise JobNotFoundError(f"Job `{job_id}` was not found.")
        return self._directory / f"{job_id}.json"
