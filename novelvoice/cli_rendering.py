"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
voice listings, job status, and usage summaries.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .billing.costs import format_usd
from .billing.usage import UsageSummary
from .errors import NovelvoiceError
from .jobs.service import JobStatusView
from .models.datatypes import JobStatus, SubscriptionQuota, VoiceProfile


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, NovelvoiceError):
        typer.secho(
            f"{command_name} failed ({exc.kind}): {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_voice_table(voices: list[VoiceProfile]) -> None:
    """Print one aligned row per voice in catalog order."""

    if not voices:
        typer.echo("No voices match the requested tier.")
        return
    id_width = max(len(voice.id) for voice in voices)
    name_width = max(len(voice.name) for voice in voices)
    for voice in voices:
        typer.echo(
            f"{voice.id:<{id_width}}  {voice.name:<{name_width}}  "
            f"{voice.gender.value:<6}  {voice.quality.value:<8}  "
            f"{voice.pricing.value:<7}  {voice.accent}"
        )


def echo_job_status(view: JobStatusView) -> None:
    """Print a job status block."""

    typer.echo(f"Job id: {view.job_id}")
    typer.echo(f"Status: {view.status.value}")
    typer.echo(f"Scope: {view.scope.value}")
    typer.echo(f"Voice: {view.voice_id}")
    typer.echo(f"Chapters: {view.completed_chapters}/{view.total_chapters}")
    typer.echo(f"Characters: {view.character_count}")
    typer.echo(f"Estimated duration (s): {view.duration_seconds}")
    typer.echo(f"Estimated cost: {format_usd(view.estimated_cost_cents)}")
    if view.status is JobStatus.COMPLETED:
        typer.echo(f"Audiobook: {view.file_path}")
        typer.echo(f"File size (bytes): {view.file_size_bytes}")
        overage = "yes" if view.was_overage_charge else "no"
        typer.echo(f"Actual cost: {format_usd(view.actual_cost_cents or 0)} (overage: {overage})")
    if view.status is JobStatus.FAILED:
        typer.secho(f"Error ({view.error_kind}): {view.error}", fg=typer.colors.RED)


def echo_quota(quota: SubscriptionQuota) -> None:
    """Print a stored subscription quota."""

    typer.echo(f"User: {quota.user_id}")
    typer.echo(f"Tier: {quota.tier.value}")
    typer.echo(f"Billing period: {quota.billing_period}")
    typer.echo(f"Used: {quota.consumed}/{quota.monthly_limit} characters")


def echo_usage_summary(summary: UsageSummary) -> None:
    """Print the current-period usage summary."""

    typer.echo(f"User: {summary.user_id}")
    typer.echo(f"Tier: {summary.tier.value}")
    typer.echo(f"Billing period: {summary.billing_period}")
    typer.echo(f"Used: {summary.consumed}/{summary.monthly_limit} characters")
    typer.echo(f"Remaining: {summary.remaining} characters")
    typer.echo(f"Overage charges: {format_usd(summary.overage_cost_cents)}")
    typer.echo(f"Jobs billed: {summary.job_count}")

