"""Integration tests for Novelvoice CLI commands."""

from __future__ import annotations

import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from novelvoice.cli import app
from novelvoice.errors import ProviderError
from novelvoice.io.storage import ArtifactStore
from novelvoice.jobs.store import JobStore
from novelvoice.models.datatypes import AudiobookJob, JobScope, JobStatus, QualityTier

_JOB_ID_RE = re.compile(r"^Job id: ([0-9a-f]+)$", re.MULTILINE)


def _job_id(output: str) -> str:
    match = _JOB_ID_RE.search(output)
    assert match is not None, output
    return match.group(1)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def patched_client(monkeypatch: pytest.MonkeyPatch, fake_client: object) -> object:
    """Route CLI synthesis through the deterministic fake client."""

    monkeypatch.setattr("novelvoice.cli.create_synthesis_client", lambda config, api_key: fake_client)
    return fake_client


def test_voices_command_filters_by_tier(runner: CliRunner) -> None:
    """The voices command lists only voices of the requested pricing tier."""

    result = runner.invoke(app, ["voices", "--tier", "studio"])

    assert result.exit_code == 0
    assert "en-GB-Studio-B" in result.output
    assert "Benedict" in result.output
    assert "en-US-Standard-A" not in result.output


def test_voices_command_rejects_unknown_tier(runner: CliRunner) -> None:
    """Unknown tiers fail with validation diagnostics."""

    result = runner.invoke(app, ["voices", "--tier", "gold"])

    assert result.exit_code == 1
    assert "voices failed (validation): `--tier` must be one of: basic, premium, studio." in result.output


def test_create_wait_status_and_quota_flow(
    runner: CliRunner,
    tmp_path: Path,
    project_dir: Path,
    patched_client: object,
    credential_store: object,
) -> None:
    """A full-book job completes, is visible via status, and is billed against quota."""

    data_dir = tmp_path / "data"
    provisioned = runner.invoke(
        app, ["quota", "set", "--user", "u1", "--tier", "basic", "--data-dir", str(data_dir)]
    )
    assert provisioned.exit_code == 0
    assert "Used: 0/100000 characters" in provisioned.output

    created = runner.invoke(
        app,
        [
            "create",
            str(project_dir),
            "--user",
            "u1",
            "--voice",
            "en-GB-Standard-B",
            "--wait",
            "--api-key",
            "test-key",
            "--data-dir",
            str(data_dir),
        ],
    )

    assert created.exit_code == 0, created.output
    job_id = _job_id(created.output)
    assert f"[progress] job={job_id}" in created.output
    assert "Status: completed" in created.output
    assert "Chapters: 2/2" in created.output
    assert "Actual cost: $0.00 (overage: no)" in created.output
    assert "audiobook_harbor-lights.mp3" in created.output
    job = JobStore(ArtifactStore(data_dir)).get(job_id)
    assert job.status is JobStatus.COMPLETED
    assert (data_dir / str(job.file_path)).exists()

    status = runner.invoke(app, ["status", job_id, "--data-dir", str(data_dir)])
    assert status.exit_code == 0
    assert f"Job id: {job_id}" in status.output
    assert "Status: completed" in status.output
    assert "Voice: en-GB-Standard-B" in status.output

    quota = runner.invoke(app, ["quota", "show", "--user", "u1", "--data-dir", str(data_dir)])
    assert quota.exit_code == 0
    assert "Tier: basic" in quota.output
    assert f"Used: {job.character_count}/100000 characters" in quota.output
    assert "Jobs billed: 1" in quota.output
    assert "Overage charges: $0.00" in quota.output

    cancel = runner.invoke(app, ["cancel", job_id, "--data-dir", str(data_dir)])
    assert cancel.exit_code == 1
    assert "cancel failed (state)" in cancel.output


def test_create_single_chapter_without_wait(
    runner: CliRunner,
    tmp_path: Path,
    project_dir: Path,
    patched_client: object,
    credential_store: object,
) -> None:
    """`--chapter` selects chapter scope and the command prints the final status."""

    data_dir = tmp_path / "data"

    result = runner.invoke(
        app,
        [
            "create",
            str(project_dir),
            "--user",
            "reader",
            "--voice",
            "en-US-Standard-A",
            "--chapter",
            "fog",
            "--api-key",
            "test-key",
            "--data-dir",
            str(data_dir),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Status: completed" in result.output
    job = JobStore(ArtifactStore(data_dir)).get(_job_id(result.output))
    assert job.total_chapters == 1
    assert job.selected_chapter_id == "fog"
    assert job.file_path is not None and job.file_path.endswith("chapter_002_fog_fog.mp3")
    assert job.was_overage_charge is True


def test_create_rejects_voice_above_plan(
    runner: CliRunner,
    tmp_path: Path,
    project_dir: Path,
    patched_client: object,
    credential_store: object,
) -> None:
    """Premium voices on a basic plan fail before a job is created."""

    data_dir = tmp_path / "data"
    runner.invoke(app, ["quota", "set", "--user", "u1", "--tier", "basic", "--data-dir", str(data_dir)])

    result = runner.invoke(
        app,
        [
            "create",
            str(project_dir),
            "--user",
            "u1",
            "--voice",
            "en-GB-Neural2-A",
            "--data-dir",
            str(data_dir),
        ],
    )

    assert result.exit_code == 1
    assert "create failed (validation): Voice `en-GB-Neural2-A` requires a premium plan" in result.output
    assert "Hint: Pick a voice from `novelvoice voices --tier basic`" in result.output
    assert JobStore(ArtifactStore(data_dir)).list_jobs() == []


def test_create_reports_failed_job_with_wait(
    runner: CliRunner,
    tmp_path: Path,
    project_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
    fake_client_factory: type,
    credential_store: object,
) -> None:
    """Provider failures end the job as failed and the command exits non-zero."""

    client = fake_client_factory(
        failures={
            "A bell rang twice in the fog.": ProviderError(
                "Speech provider quota or rate limit exceeded (HTTP 429).",
                failure_kind="quota",
            )
        }
    )
    monkeypatch.setattr("novelvoice.cli.create_synthesis_client", lambda config, api_key: client)
    data_dir = tmp_path / "data"

    result = runner.invoke(
        app,
        [
            "create",
            str(project_dir),
            "--user",
            "u1",
            "--voice",
            "en-US-Standard-B",
            "--wait",
            "--data-dir",
            str(data_dir),
        ],
    )

    assert result.exit_code == 1
    assert "Status: failed" in result.output
    assert "Chapters: 1/2" in result.output
    assert "Error (provider): Speech provider quota or rate limit exceeded (HTTP 429)." in result.output


def test_create_without_api_key_reports_provider_hint(
    runner: CliRunner,
    tmp_path: Path,
    project_dir: Path,
    credential_store: object,
) -> None:
    """Missing credentials fail fast with a remediation hint."""

    result = runner.invoke(
        app,
        [
            "create",
            str(project_dir),
            "--user",
            "u1",
            "--voice",
            "en-US-Standard-A",
            "--data-dir",
            str(tmp_path / "data"),
        ],
    )

    assert result.exit_code == 1
    assert "create failed (provider): Missing Google Text-to-Speech API key." in result.output
    assert "novelvoice credentials --set-api-key" in result.output


def test_create_uses_stored_api_key(
    runner: CliRunner,
    tmp_path: Path,
    project_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
    fake_client: object,
    credential_store: object,
) -> None:
    """Keys stored via the credentials command are used when no CLI key is given."""

    seen_keys: list[str | None] = []

    def _factory(config: object, api_key: str | None) -> object:
        seen_keys.append(api_key)
        return fake_client

    monkeypatch.setattr("novelvoice.cli.create_synthesis_client", _factory)
    credential_store.set_api_key("stored-key")  # type: ignore[attr-defined]

    result = runner.invoke(
        app,
        [
            "create",
            str(project_dir),
            "--user",
            "u1",
            "--voice",
            "en-US-Standard-A",
            "--data-dir",
            str(tmp_path / "data"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert seen_keys == ["stored-key"]


def test_status_of_unknown_job(runner: CliRunner, tmp_path: Path) -> None:
    """Unknown job ids fail with not-found diagnostics."""

    result = runner.invoke(app, ["status", "deadbeef", "--data-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "status failed (not_found): Job `deadbeef` was not found." in result.output


def test_cancel_writes_marker_for_pending_job(runner: CliRunner, tmp_path: Path) -> None:
    """Cancelling a pending job records a marker that running workers observe."""

    store = JobStore(ArtifactStore(tmp_path))
    store.save(
        AudiobookJob(
            id="pendingjob",
            project_id="harbor",
            user_id="u1",
            scope=JobScope.FULLBOOK,
            voice_id="en-US-Standard-A",
            quality=QualityTier.STANDARD,
        )
    )

    result = runner.invoke(app, ["cancel", "pendingjob", "--data-dir", str(tmp_path)])

    assert result.exit_code == 0
    assert "Cancellation requested for job pendingjob." in result.output
    assert store.cancel_requested("pendingjob") is True


def test_quota_set_rejects_unknown_tier(runner: CliRunner, tmp_path: Path) -> None:
    """Subscription tiers are validated."""

    result = runner.invoke(
        app, ["quota", "set", "--user", "u1", "--tier", "gold", "--data-dir", str(tmp_path)]
    )

    assert result.exit_code == 1
    assert "quota set failed (validation)" in result.output


def test_credentials_status_set_and_clear(
    runner: CliRunner, credential_store: object
) -> None:
    """The credentials command reports, stores, and clears the API key."""

    status = runner.invoke(app, ["credentials"])
    stored = runner.invoke(app, ["credentials", "--set-api-key"], input="new-key\n")
    after = runner.invoke(app, ["credentials"])
    cleared = runner.invoke(app, ["credentials", "--clear-api-key"])
    both = runner.invoke(app, ["credentials", "--set-api-key", "--clear-api-key"])

    assert "Secure credential storage: available" in status.output
    assert "Stored Google TTS API key: not set" in status.output
    assert stored.exit_code == 0
    assert "API key stored in secure credential storage." in stored.output
    assert "Stored Google TTS API key: present" in after.output
    assert "Stored API key cleared from secure credential storage." in cleared.output
    assert credential_store.get_api_key() is None  # type: ignore[attr-defined]
    assert both.exit_code == 1
    assert "cannot be used together" in both.output
