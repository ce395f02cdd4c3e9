"""Append-only usage ledger.

Responsibilities:
- Append one `UsageRecord` per finalized job to a per-period JSONL file.
- Read records back for monthly usage reconstruction.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from ..errors import PersistenceError
from ..io.storage import ArtifactStore
from ..models.datatypes import UsageRecord
from ..parsing import parse_permissive_boolean


def usage_record_to_payload(record: UsageRecord) -> dict[str, Any]:
    """Serialize a usage record into a JSON-compatible mapping."""

    return {
        "id": record.id,
        "user_id": record.user_id,
        "service_type": record.service_type,
        "resource_id": record.resource_id,
        "character_count": record.character_count,
        "cost_cents": record.cost_cents,
        "was_overage": record.was_overage,
        "billing_period": record.billing_period,
        "created_at": record.created_at.isoformat(),
    }


def usage_record_from_payload(payload: dict[str, Any]) -> UsageRecord:
    """Parse one persisted usage record."""

    try:
        was_overage = parse_permissive_boolean(payload["was_overage"])
        if was_overage is None:
            raise ValueError("`was_overage` must be a boolean")
        return UsageRecord(
            id=str(payload["id"]),
            user_id=str(payload["user_id"]),
            service_type=str(payload["service_type"]),
            resource_id=str(payload["resource_id"]),
            character_count=int(payload["character_count"]),
            cost_cents=int(payload["cost_cents"]),
            was_overage=was_overage,
            billing_period=str(payload["billing_period"]),
            created_at=datetime.fromisoformat(str(payload["created_at"])),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise PersistenceError(f"Stored usage record is malformed: {exc}") from exc


class UsageLedger:
    """JSONL usage ledger partitioned by billing period."""

    def __init__(self, store: ArtifactStore, directory: Path | str = "usage") -> None:
        self._store = store
        self._directory = Path(directory)

    def append(self, record: UsageRecord) -> None:
        """Append a record to its billing period file."""

        self._store.append_jsonl(
            self._directory / f"{record.billing_period}.jsonl",
            usage_record_to_payload(record),
        )

    def records(
        self,
        billing_period: str | None = None,
        user_id: str | None = None,
    ) -> list[UsageRecord]:
        """Return records in append order, optionally filtered by period and user."""

        if billing_period is not None:
            files = [self._store.path_for(self._directory / f"{billing_period}.jsonl")]
        else:
            files = self._store.list_files(self._directory, "*.jsonl")
        records: list[UsageRecord] = []
        for path in files:
            relative = self._directory / path.name
            for payload in self._store.read_jsonl(relative):
                record = usage_record_from_payload(payload)
                if user_id is None or record.user_id == user_id:
                    records.append(record)
        return records
