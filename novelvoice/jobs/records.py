"""Job record serialization helpers.

Responsibilities:
- Build deterministic JSON payloads for persisted audiobook jobs.
- Load job payloads back into typed `AudiobookJob` snapshots.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..errors import PersistenceError
from ..models.datatypes import (
    Apportionment,
    AudiobookJob,
    JobScope,
    JobStatus,
    QualityTier,
)
from ..parsing import parse_enum


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: object) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(str(value))


def apportionment_payload(apportionment: Apportionment) -> dict[str, Any]:
    """Serialize an apportionment."""

    return {
        "requested": apportionment.requested,
        "included": apportionment.included,
        "overage": apportionment.overage,
        "billing_period": apportionment.billing_period,
    }


def apportionment_from_payload(payload: dict[str, Any]) -> Apportionment:
    """Parse a persisted apportionment."""

    return Apportionment(
        requested=int(payload["requested"]),
        included=int(payload["included"]),
        overage=int(payload["overage"]),
        billing_period=str(payload["billing_period"]),
    )


def job_payload(job: AudiobookJob) -> dict[str, Any]:
    """Serialize an audiobook job snapshot."""

    return {
        "id": job.id,
        "project_id": job.project_id,
        "user_id": job.user_id,
        "scope": job.scope.value,
        "selected_chapter_id": job.selected_chapter_id,
        "voice_id": job.voice_id,
        "quality": job.quality.value,
        "status": job.status.value,
        "total_chapters": job.total_chapters,
        "completed_chapters": job.completed_chapters,
        "chapter_files": list(job.chapter_files),
        "file_path": job.file_path,
        "duration_seconds": job.duration_seconds,
        "file_size_bytes": job.file_size_bytes,
        "character_count": job.character_count,
        "planned_character_count": job.planned_character_count,
        "estimated_cost_cents": job.estimated_cost_cents,
        "actual_cost_cents": job.actual_cost_cents,
        "was_overage_charge": job.was_overage_charge,
        "error": job.error,
        "error_kind": job.error_kind,
        "reservation": (
            apportionment_payload(job.reservation) if job.reservation is not None else None
        ),
        "created_at": _iso(job.created_at),
        "updated_at": _iso(job.updated_at),
    }


def job_from_payload(payload: dict[str, Any]) -> AudiobookJob:
    """Parse a persisted job payload.

    Raises:
        PersistenceError: If required fields are missing or malformed.
    """

    try:
        reservation_payload = payload.get("reservation")
        actual_cost = payload.get("actual_cost_cents")
        return AudiobookJob(
            id=str(payload["id"]),
            project_id=str(payload["project_id"]),
            user_id=str(payload["user_id"]),
            scope=parse_enum(JobScope, payload["scope"], "scope"),
            voice_id=str(payload["voice_id"]),
            quality=parse_enum(QualityTier, payload["quality"], "quality"),
            selected_chapter_id=payload.get("selected_chapter_id"),
            status=parse_enum(JobStatus, payload["status"], "status"),
            total_chapters=int(payload.get("total_chapters", 0)),
            completed_chapters=int(payload.get("completed_chapters", 0)),
            chapter_files=tuple(str(item) for item in payload.get("chapter_files", [])),
            file_path=payload.get("file_path"),
            duration_seconds=int(payload.get("duration_seconds", 0)),
            file_size_bytes=int(payload.get("file_size_bytes", 0)),
            character_count=int(payload.get("character_count", 0)),
            planned_character_count=int(payload.get("planned_character_count", 0)),
            estimated_cost_cents=int(payload.get("estimated_cost_cents", 0)),
            actual_cost_cents=int(actual_cost) if actual_cost is not None else None,
            was_overage_charge=bool(payload.get("was_overage_charge", False)),
            error=payload.get("error"),
            error_kind=payload.get("error_kind"),
            reservation=(
                apportionment_from_payload(reservation_payload)
                if isinstance(reservation_payload, dict)
                else None
            ),
            created_at=_parse_datetime(payload.get("created_at")),
            updated_at=_parse_datetime(payload.get("updated_at")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise PersistenceError(f"Stored job record is malformed: {exc}") from exc
