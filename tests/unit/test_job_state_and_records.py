"""Unit tests for job transitions, record serialization, and the job store."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from novelvoice.errors import JobNotFoundError, JobStateError, PersistenceError
from novelvoice.io.storage import ArtifactStore
from novelvoice.jobs.records import job_from_payload, job_payload
from novelvoice.jobs.state import can_transition, transition
from novelvoice.jobs.store import JobStore
from novelvoice.models.datatypes import (
    Apportionment,
    AudiobookJob,
    JobScope,
    JobStatus,
    QualityTier,
)

_NOW = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)


def _job(job_id: str = "job1", **changes: object) -> AudiobookJob:
    """Build a pending full-book job."""

    job = AudiobookJob(
        id=job_id,
        project_id="novel",
        user_id="u1",
        scope=JobScope.FULLBOOK,
        voice_id="en-US-Standard-A",
        quality=QualityTier.STANDARD,
        created_at=_NOW,
        updated_at=_NOW,
    )
    return replace(job, **changes)


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (JobStatus.PENDING, JobStatus.GENERATING, True),
        (JobStatus.GENERATING, JobStatus.COMPLETED, True),
        (JobStatus.GENERATING, JobStatus.FAILED, True),
        (JobStatus.PENDING, JobStatus.COMPLETED, False),
        (JobStatus.COMPLETED, JobStatus.GENERATING, False),
        (JobStatus.FAILED, JobStatus.PENDING, False),
        (JobStatus.COMPLETED, JobStatus.FAILED, False),
    ],
)
def test_transition_table(current: JobStatus, target: JobStatus, allowed: bool) -> None:
    """Only the forward lifecycle moves are legal."""

    assert can_transition(current, target) is allowed


def test_transition_applies_changes_and_timestamp() -> None:
    """A legal transition returns a new snapshot with the given field changes."""

    later = _NOW + timedelta(minutes=5)
    job = _job(status=JobStatus.GENERATING)

    failed = transition(job, JobStatus.FAILED, later, error="boom", error_kind="provider")

    assert failed.status is JobStatus.FAILED
    assert failed.error == "boom"
    assert failed.error_kind == "provider"
    assert failed.updated_at == later
    assert job.status is JobStatus.GENERATING


def test_illegal_transition_raises_state_error() -> None:
    """Terminal jobs must not move again."""

    with pytest.raises(JobStateError, match="cannot move from `completed` to `generating`"):
        transition(_job(status=JobStatus.COMPLETED), JobStatus.GENERATING, _NOW)


def test_job_payload_roundtrip_preserves_progress_and_reservation() -> None:
    """Persisted jobs should load back into an equal snapshot."""

    job = _job(
        status=JobStatus.GENERATING,
        total_chapters=3,
        completed_chapters=1,
        chapter_files=("audiobooks/novel/job1/chapter_001_one_ch1.mp3",),
        character_count=1_200,
        planned_character_count=3_600,
        estimated_cost_cents=2,
        reservation=Apportionment(
            requested=3_600, included=1_000, overage=2_600, billing_period="2026-10"
        ),
    )

    assert job_from_payload(job_payload(job)) == job


def test_malformed_job_payload_raises_persistence_error() -> None:
    """Unknown enum tokens and missing fields should surface as persistence errors."""

    payload = job_payload(_job())
    payload["status"] = "paused"

    with pytest.raises(PersistenceError, match="malformed"):
        job_from_payload(payload)
    with pytest.raises(PersistenceError):
        job_from_payload({"id": "job1"})


def test_job_store_persists_and_reloads(tmp_path: Path) -> None:
    """A fresh store over the same root should read saved jobs from disk."""

    JobStore(ArtifactStore(tmp_path)).save(_job(completed_chapters=2))

    loaded = JobStore(ArtifactStore(tmp_path)).get("job1")

    assert loaded.completed_chapters == 2
    assert (tmp_path / "jobs" / "job1.json").exists()


@pytest.mark.parametrize("job_id", ["missing", "../escape", ""])
def test_job_store_reports_unknown_ids(tmp_path: Path, job_id: str) -> None:
    """Unknown or unsafe ids resolve to not-found errors."""

    with pytest.raises(JobNotFoundError):
        JobStore(ArtifactStore(tmp_path)).get(job_id)


def test_request_cancel_writes_marker_for_unfinished_jobs(tmp_path: Path) -> None:
    """Cancellation requests are visible to other store instances."""

    store = JobStore(ArtifactStore(tmp_path))
    store.save(_job(status=JobStatus.GENERATING))

    store.request_cancel("job1")

    assert JobStore(ArtifactStore(tmp_path)).cancel_requested("job1") is True


def test_request_cancel_rejects_finished_jobs(tmp_path: Path) -> None:
    """Finished jobs cannot be cancelled."""

    store = JobStore(ArtifactStore(tmp_path))
    store.save(_job(status=JobStatus.COMPLETED))

    with pytest.raises(JobStateError, match="already finished"):
        store.request_cancel("job1")
    assert store.cancel_requested("job1") is False


def test_list_jobs_orders_by_creation_time(tmp_path: Path) -> None:
    """Jobs list oldest first, with cancel markers ignored."""

    store = JobStore(ArtifactStore(tmp_path))
    store.save(_job("b-late", created_at=_NOW + timedelta(seconds=5)))
    store.save(_job("a-early", created_at=_NOW))
    store.request_cancel("a-early")

    assert [job.id for job in JobStore(ArtifactStore(tmp_path)).list_jobs()] == ["a-early", "b-late"]
