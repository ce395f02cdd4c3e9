"""Command-line interface for Novelvoice.

Responsibilities:
- Expose user-facing commands for voices, audiobook jobs, quotas, and credentials.
- Convert CLI arguments into `NovelvoiceConfig` and service requests.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import os
import sys
import time
from enum import Enum
from pathlib import Path
from typing import Annotated, TypeVar

import typer

from .billing.ledger import UsageLedger
from .billing.quota import JsonQuotaStore
from .billing.usage import UsageMeter
from .cli_rendering import (
    echo_job_status,
    echo_quota,
    echo_usage_summary,
    echo_voice_table,
    exit_with_command_error,
)
from .config import ConfigLoader, NovelvoiceConfig, RuntimeConfigSources
from .credentials import create_credential_store
from .errors import ProviderError, ValidationError
from .io.chapter_source import DirectoryChapterSource
from .io.storage import ArtifactStore
from .jobs.service import AudiobookService, JobRequest, JobStatusView
from .jobs.store import JobStore
from .models.datatypes import JobScope, JobStatus, PricingTier, QualityTier, SubscriptionTier
from .parsing import normalize_optional_string, parse_enum
from .telemetry.logger import JobLogger
from .tts.google_client import GoogleSpeechClient
from .tts.rate_limiter import RateLimiter
from .tts.retry import RetryPolicy
from .tts.synthesizer import SynthesisClient
from .tts.voices import VoiceCatalog

app = typer.Typer(
    name="novelvoice",
    no_args_is_help=True,
    help="Novelvoice audiobook generation CLI.",
)
quota_app = typer.Typer(no_args_is_help=True, help="Inspect and provision subscription quotas.")
app.add_typer(quota_app, name="quota")

_POLL_INTERVAL_SECONDS = 0.5

_EnumT = TypeVar("_EnumT", bound=Enum)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file."),
]
DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", help="Artifact root directory (overrides config value)."),
]


class JobProgressIndicator:
    """Render deterministic chapter progress lines while a job runs."""

    _SPINNER_FRAMES = "|/-\\"

    def __init__(self, job_id: str) -> None:
        """Initialize progress state for one job."""

        self._job_id = job_id
        self._last_seen: tuple[JobStatus, int, int] | None = None
        self._frame = 0

    def update(self, view: JobStatusView) -> None:
        """Print one progress line when status or chapter progress changed."""

        snapshot = (view.status, view.completed_chapters, view.total_chapters)
        if snapshot == self._last_seen:
            return
        self._last_seen = snapshot
        spinner = self._SPINNER_FRAMES[self._frame % len(self._SPINNER_FRAMES)]
        self._frame += 1
        typer.echo(
            f"[progress] job={self._job_id} {spinner} "
            f"{view.completed_chapters}/{view.total_chapters} status={view.status.value}"
        )


def _resolve_config(config_file: Path | None, data_dir: Path | None) -> NovelvoiceConfig:
    """Resolve config from YAML defaults, `NOVELVOICE_*` env, then CLI overrides."""

    base: NovelvoiceConfig | None = None
    if config_file is not None:
        try:
            base = ConfigLoader.from_yaml(config_file)
        except FileNotFoundError as exc:
            raise ValidationError(
                f"Config file not found: `{config_file}`.",
                hint="Provide an existing path via `--config <path.yaml>`.",
            ) from exc
        except ValueError as exc:
            raise ValidationError(
                f"Invalid config file `{config_file}`: {exc}",
                hint="Fix config keys/values and rerun.",
            ) from exc
    try:
        config = ConfigLoader.from_env(base=base)
    except ValueError as exc:
        raise ValidationError(f"Invalid environment configuration: {exc}") from exc
    if data_dir is not None:
        config.artifact_root = data_dir
    return config


def _resolve_api_key(config: NovelvoiceConfig, api_key: str | None) -> str | None:
    """Resolve the provider key from CLI, keyring, env, then config."""

    runtime_cli_values: dict[str, str] = {}
    normalized_cli_key = normalize_optional_string(api_key)
    if normalized_cli_key is not None:
        runtime_cli_values["api_key"] = normalized_cli_key
    runtime_secure_values: dict[str, str] = {}
    if not runtime_cli_values:
        stored_key = create_credential_store().get_api_key()
        if stored_key is not None:
            runtime_secure_values["api_key"] = stored_key
    return config.resolved_api_key(
        RuntimeConfigSources(
            cli=runtime_cli_values,
            secure=runtime_secure_values,
            env=os.environ,
        )
    )


def create_synthesis_client(config: NovelvoiceConfig, api_key: str | None) -> SynthesisClient:
    """Build the Google speech client from resolved settings."""

    if api_key is None:
        raise ProviderError(
            "Missing Google Text-to-Speech API key.",
            failure_kind="invalid_api_key",
            hint=(
                "Set `GOOGLE_TTS_API_KEY`, pass `--api-key`, or run "
                "`novelvoice credentials --set-api-key`."
            ),
        )
    return GoogleSpeechClient(
        api_key=api_key,
        timeout_seconds=config.provider_timeout_seconds,
        rate_limiter=RateLimiter(min_interval_seconds=config.rate_limit_interval_seconds),
        retry_policy=RetryPolicy(
            max_attempts=config.retry_max_attempts,
            backoff_seconds=config.retry_backoff_seconds,
        ),
    )


def _parse_cli_enum(
    enum_type: type[_EnumT], value: str | None, option_name: str
) -> _EnumT | None:
    """Parse an optional enum option into a validation error on bad input."""

    if value is None:
        return None
    try:
        return parse_enum(enum_type, value, option_name)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _usage_meter(config: NovelvoiceConfig) -> UsageMeter:
    artifacts = ArtifactStore(config.artifact_root)
    return UsageMeter(JsonQuotaStore(artifacts), ledger=UsageLedger(artifacts))


@app.command("voices")
def voices_command(
    tier: Annotated[
        str | None,
        typer.Option("--tier", help="Only list voices of this pricing tier (basic/premium/studio)."),
    ] = None,
) -> None:
    """List available narration voices."""

    try:
        pricing_tier = _parse_cli_enum(PricingTier, tier, "--tier")
        voices = VoiceCatalog().list_voices(pricing_tier)
    except Exception as exc:
        exit_with_command_error("voices", exc)

    echo_voice_table(voices)


@app.command("create")
def create_command(
    project_dir: Annotated[Path, typer.Argument(help="Project directory with chapter files.")],
    user: Annotated[str, typer.Option("--user", help="Requesting user id.")],
    voice: Annotated[str, typer.Option("--voice", help="Voice id from `novelvoice voices`.")],
    chapter: Annotated[
        str | None,
        typer.Option("--chapter", help="Convert only this chapter id instead of the full book."),
    ] = None,
    quality: Annotated[
        str | None,
        typer.Option("--quality", help="Expected voice quality tier (standard/wavenet/neural2/studio)."),
    ] = None,
    wait: Annotated[
        bool,
        typer.Option(
            "--wait",
            help="Print chapter progress and exit non-zero if the job fails.",
        ),
    ] = False,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="Google Text-to-Speech API key for this run."),
    ] = None,
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Create an audiobook job for a project directory.

    Generation runs inside this process, so the command returns once the job
    reaches a terminal status.
    """

    try:
        config = _resolve_config(config_file, data_dir)
        scope = JobScope.CHAPTER if chapter is not None else JobScope.FULLBOOK
        quality_tier = _parse_cli_enum(QualityTier, quality, "--quality")
        chapters = DirectoryChapterSource(project_dir)
        client = create_synthesis_client(config, _resolve_api_key(config, api_key))
        service = AudiobookService(
            chapters=chapters,
            client=client,
            config=config,
            logger=JobLogger(sink=sys.stderr),
        )
        handle = service.create_job(
            JobRequest(
                project_id=chapters.project_id,
                user_id=user,
                scope=scope,
                voice_id=voice,
                chapter_id=chapter,
                quality=quality_tier,
            )
        )
    except Exception as exc:
        exit_with_command_error("create", exc)

    typer.echo(f"Job id: {handle.job_id}")
    try:
        if wait:
            progress = JobProgressIndicator(handle.job_id)
            view = service.get_job_status(handle.job_id)
            while not view.status.is_terminal:
                progress.update(view)
                time.sleep(_POLL_INTERVAL_SECONDS)
                view = service.get_job_status(handle.job_id)
            progress.update(view)
        view = service.wait_for_job(handle.job_id)
    except Exception as exc:
        exit_with_command_error("create", exc)
    finally:
        service.shutdown()

    if wait:
        echo_job_status(view)
        if view.status is JobStatus.FAILED:
            raise typer.Exit(code=1)
    else:
        typer.echo(f"Status: {view.status.value}")


@app.command("status")
def status_command(
    job_id: Annotated[str, typer.Argument(help="Job id printed by `novelvoice create`.")],
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Show the status of an audiobook job."""

    try:
        config = _resolve_config(config_file, data_dir)
        view = JobStatusView.from_job(JobStore(ArtifactStore(config.artifact_root)).get(job_id))
    except Exception as exc:
        exit_with_command_error("status", exc)

    echo_job_status(view)


@app.command("cancel")
def cancel_command(
    job_id: Annotated[str, typer.Argument(help="Job id printed by `novelvoice create`.")],
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Request cancellation of a pending or generating job."""

    try:
        config = _resolve_config(config_file, data_dir)
        JobStore(ArtifactStore(config.artifact_root)).request_cancel(job_id)
    except Exception as exc:
        exit_with_command_error("cancel", exc)

    typer.echo(f"Cancellation requested for job {job_id}.")


@quota_app.command("show")
def quota_show_command(
    user: Annotated[str, typer.Option("--user", help="User id.")],
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Show a user's current-period quota and overage charges."""

    try:
        summary = _usage_meter(_resolve_config(config_file, data_dir)).summary(user)
    except Exception as exc:
        exit_with_command_error("quota show", exc)

    echo_usage_summary(summary)


@quota_app.command("set")
def quota_set_command(
    user: Annotated[str, typer.Option("--user", help="User id.")],
    tier: Annotated[str, typer.Option("--tier", help="Subscription tier (free/basic/premium/studio).")],
    consumed: Annotated[
        int | None,
        typer.Option("--consumed", min=0, help="Override characters consumed this period."),
    ] = None,
    config_file: ConfigOption = None,
    data_dir: DataDirOption = None,
) -> None:
    """Provision or change a user's subscription tier."""

    try:
        subscription_tier = _parse_cli_enum(SubscriptionTier, tier, "--tier")
        meter = _usage_meter(_resolve_config(config_file, data_dir))
        quota = meter.set_subscription(user, subscription_tier, consumed)
    except Exception as exc:
        exit_with_command_error("quota set", exc)

    echo_quota(quota)


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage the securely stored Google Text-to-Speech API key."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            ValidationError(
                "`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "Google Text-to-Speech API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                ValidationError(
                    "No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error("credentials", exc)
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        removed = credential_store.clear_api_key()
        if removed:
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored Google TTS API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
