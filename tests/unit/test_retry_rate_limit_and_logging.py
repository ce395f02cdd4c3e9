"""Unit tests for provider pacing, retry policy, and job telemetry."""

from __future__ import annotations

import io

import pytest

from novelvoice.errors import ProviderError
from novelvoice.models.datatypes import JobScope, JobStatus
from novelvoice.telemetry.logger import JobLogger, format_context
from novelvoice.tts.rate_limiter import RateLimiter
from novelvoice.tts.retry import RetryPolicy


def test_rate_limiter_spaces_requests_per_key() -> None:
    """Successive acquisitions on one key queue at fixed intervals."""

    sleeps: list[float] = []
    limiter = RateLimiter(min_interval_seconds=1.0, clock=lambda: 10.0, sleeper=sleeps.append)

    limiter.acquire("google-tts")
    limiter.acquire("google-tts")
    limiter.acquire("google-tts")
    limiter.acquire("other")

    assert sleeps == [1.0, 2.0]


def test_rate_limiter_is_a_no_op_without_interval() -> None:
    """A zero interval never sleeps."""

    sleeps: list[float] = []
    limiter = RateLimiter(sleeper=sleeps.append)

    for _ in range(5):
        limiter.acquire("google-tts")

    assert sleeps == []


def test_retry_policy_gives_up_after_max_attempts() -> None:
    """The last transient error propagates once attempts are exhausted."""

    sleeps: list[float] = []
    retried: list[int] = []
    attempts: list[int] = []

    def _always_timeout() -> bytes:
        attempts.append(1)
        raise ProviderError("Speech provider request timed out.", failure_kind="timeout")

    policy = RetryPolicy(max_attempts=3, backoff_seconds=0.25, sleeper=sleeps.append)

    with pytest.raises(ProviderError, match="timed out"):
        policy.run(_always_timeout, on_retry=lambda attempt, _: retried.append(attempt))

    assert len(attempts) == 3
    assert retried == [1, 2]
    assert sleeps == [0.25, 0.5]


def test_retry_policy_validates_settings() -> None:
    """Non-positive attempts and negative backoff are rejected."""

    with pytest.raises(ValueError, match="max_attempts"):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError, match="backoff_seconds"):
        RetryPolicy(backoff_seconds=-1.0)


def test_format_context_sorts_sanitizes_and_skips_none() -> None:
    """Context tokens are ordered and shell-safe."""

    context = {"voice": "en-GB-Neural2-A", "scope": JobScope.CHAPTER, "note": "two words", "x": None}

    assert format_context(context) == " note=two_words scope=chapter voice=en-GB-Neural2-A"
    assert format_context({}) == ""


def test_job_logger_writes_structured_lines_to_sink() -> None:
    """Lifecycle events should render as one deterministic line each."""

    sink = io.StringIO()
    job_logger = JobLogger(sink=sink)

    job_logger.job_created("abc123", scope=JobScope.FULLBOOK, chapters=2)
    job_logger.status_changed("abc123", JobStatus.GENERATING)
    job_logger.chapter_completed("abc123", "ch1", completed=1, total=2)
    job_logger.job_failed("abc123", "provider", completed=1, total=2)

    assert sink.getvalue().splitlines() == [
        "[job] level=INFO job=abc123 event=created chapters=2 scope=fullbook",
        "[job] level=INFO job=abc123 event=status status=generating",
        "[job] level=INFO job=abc123 event=chapter_complete chapter=ch1 completed=1 total=2",
        "[job] level=ERROR job=abc123 event=failed completed=1 error_kind=provider total=2",
    ]
