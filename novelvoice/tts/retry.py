"""Bounded retry policy for transient provider failures."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import sleep
from typing import Callable, TypeVar

from ..errors import ProviderError

_T = TypeVar("_T")

TRANSIENT_FAILURE_KINDS = frozenset({"timeout", "transport", "quota", "server_error"})


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry provider calls whose failure kind is transient.

    Attributes:
        max_attempts: Total attempts per call, `1` disables retries.
        backoff_seconds: Base delay, doubled after each failed attempt.
        retryable_kinds: `ProviderError.failure_kind` values worth retrying.
    """

    max_attempts: int = 1
    backoff_seconds: float = 0.5
    retryable_kinds: frozenset[str] = TRANSIENT_FAILURE_KINDS
    sleeper: Callable[[float], None] = field(default=sleep, compare=False)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("`max_attempts` must be at least 1.")
        if self.backoff_seconds < 0:
            raise ValueError("`backoff_seconds` must not be negative.")

    def run(
        self,
        call: Callable[[], _T],
        on_retry: Callable[[int, ProviderError], None] | None = None,
    ) -> _T:
        """Invoke `call`, retrying retryable `ProviderError`s up to the attempt limit.

        Args:
            call: Zero-argument provider call.
            on_retry: Optional hook receiving the failed attempt number and error.

        Returns:
            The first successful result.

        Raises:
            ProviderError: The last error once attempts are exhausted, or any
                non-retryable error immediately.
        """

        attempt = 1
        while True:
            try:
                return call()
            except ProviderError as exc:
                if attempt >= self.max_attempts or exc.failure_kind not in self.retryable_kinds:
                    raise
                if on_retry is not None:
                    on_retry(attempt, exc)
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                if delay > 0:
                    self.sleeper(delay)
                attempt += 1
