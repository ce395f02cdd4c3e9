"""Unit tests for artifact storage and the usage ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from novelvoice.audio.merger import AudioMerger, concatenate_audio
from novelvoice.billing.ledger import UsageLedger, usage_record_from_payload
from novelvoice.errors import PersistenceError
from novelvoice.io.storage import ArtifactStore
from novelvoice.models.datatypes import UsageRecord


def _record(record_id: str, user_id: str = "u1", period: str = "2026-10") -> UsageRecord:
    """Build a usage record with fixed values."""

    return UsageRecord(
        id=record_id,
        user_id=user_id,
        service_type="audiobook",
        resource_id=f"job-{record_id}",
        character_count=2_500,
        cost_cents=1,
        was_overage=True,
        billing_period=period,
        created_at=datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc),
    )


def test_save_and_load_json_is_deterministic(tmp_path: Path) -> None:
    """JSON artifacts should be written with sorted keys and read back."""

    store = ArtifactStore(tmp_path)

    path = store.save_json("nested/record.json", {"b": 1, "a": "é"})

    assert path == tmp_path / "nested" / "record.json"
    assert path.read_text(encoding="utf-8") == '{\n  "a": "é",\n  "b": 1\n}'
    assert store.load_json("nested/record.json") == {"a": "é", "b": 1}
    assert not list((tmp_path / "nested").glob("*.tmp"))


def test_load_json_failures_raise_persistence_error(tmp_path: Path) -> None:
    """Missing, invalid, and non-object JSON files are persistence failures."""

    store = ArtifactStore(tmp_path)
    (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "list.json").write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(PersistenceError, match="Failed to read"):
        store.load_json("missing.json")
    with pytest.raises(PersistenceError, match="not valid JSON"):
        store.load_json("broken.json")
    with pytest.raises(PersistenceError, match="must be a JSON object"):
        store.load_json("list.json")


def test_append_and_read_jsonl(tmp_path: Path) -> None:
    """JSONL appends should accumulate lines readable in order."""

    store = ArtifactStore(tmp_path)

    assert store.read_jsonl("events.jsonl") == []
    store.append_jsonl("events.jsonl", {"n": 1})
    store.append_jsonl("events.jsonl", {"n": 2})

    assert store.read_jsonl("events.jsonl") == [{"n": 1}, {"n": 2}]


def test_list_files_and_size(tmp_path: Path) -> None:
    """File listing should be sorted and sizes should match written bytes."""

    store = ArtifactStore(tmp_path)
    store.save_audio("audio/b.mp3", b"12345")
    store.save_audio("audio/a.mp3", b"1")

    assert [path.name for path in store.list_files("audio", "*.mp3")] == ["a.mp3", "b.mp3"]
    assert store.list_files("absent") == []
    assert store.size("audio/b.mp3") == 5
    assert store.exists("audio/a.mp3")
    with pytest.raises(PersistenceError, match="Failed to stat"):
        store.size("audio/c.mp3")


def test_audio_merger_concatenates_in_given_order(tmp_path: Path) -> None:
    """Merged artifacts should contain part bytes in list order."""

    store = ArtifactStore(tmp_path)
    store.save_audio("parts/1.mp3", b"ID3-one|")
    store.save_audio("parts/2.mp3", b"ID3-two|")

    output = AudioMerger(store).merge(["parts/2.mp3", "parts/1.mp3"], "book.mp3")

    assert output.read_bytes() == b"ID3-two|ID3-one|"
    assert concatenate_audio([b"a", b"b", b"c"]) == b"abc"
    with pytest.raises(ValueError, match="At least one audio part"):
        AudioMerger(store).merge([], "empty.mp3")


def test_usage_ledger_appends_per_period_and_filters(tmp_path: Path) -> None:
    """Records should land in their period file and be filterable by user."""

    ledger = UsageLedger(ArtifactStore(tmp_path))
    ledger.append(_record("r1"))
    ledger.append(_record("r2", user_id="u2"))
    ledger.append(_record("r3", period="2026-09"))

    assert (tmp_path / "usage" / "2026-10.jsonl").exists()
    assert [record.id for record in ledger.records(billing_period="2026-10")] == ["r1", "r2"]
    assert [record.id for record in ledger.records(user_id="u1")] == ["r3", "r1"]
    assert ledger.records(billing_period="2026-08") == []
    assert ledger.records(billing_period="2026-10", user_id="u2")[0] == _record("r2", user_id="u2")


def test_malformed_usage_record_raises_persistence_error() -> None:
    """Ledger rows missing fields must not be silently skipped."""

    with pytest.raises(PersistenceError, match="malformed"):
        usage_record_from_payload({"id": "r1", "was_overage": "maybe"})
