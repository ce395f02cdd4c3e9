"""Domain exceptions for audiobook job diagnostics.

Every error carries a stable `kind` token recorded on failed jobs, a
human-readable `detail`, and an optional actionable `hint` for CLI output.
"""

from __future__ import annotations


class NovelvoiceError(RuntimeError):
    """Base class for all audiobook pipeline errors."""

    kind = "internal"

    def __init__(self, detail: str, *, hint: str | None = None) -> None:
        """Initialize an error with user-facing detail and optional hint."""

        super().__init__(detail)
        self.detail = detail
        self.hint = hint


class ContentError(NovelvoiceError):
    """Raised when chapter text has no usable content after cleaning."""

    kind = "content"


class ValidationError(NovelvoiceError):
    """Raised when a job request is internally inconsistent."""

    kind = "validation"


class UnknownVoiceError(NovelvoiceError):
    """Raised when a voice id is not present in the voice catalog."""

    kind = "unknown_voice"

    def __init__(self, voice_id: str) -> None:
        """Initialize with the offending voice id."""

        super().__init__(
            f"Unknown voice `{voice_id}`.",
            hint="Run `novelvoice voices` to list available voice ids.",
        )
        self.voice_id = voice_id


class ProviderError(NovelvoiceError):
    """Raised when a synthesis request fails or returns no audio."""

    kind = "provider"

    def __init__(
        self,
        detail: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize provider error metadata for job-level diagnostics."""

        super().__init__(detail, hint=hint)
        self.failure_kind = failure_kind
        self.status_code = status_code


class QuotaApportionError(NovelvoiceError):
    """Raised when quota bookkeeping is inconsistent."""

    kind = "quota"


class PersistenceError(NovelvoiceError):
    """Raised when an artifact or record cannot be written or read."""

    kind = "persistence"


class JobCancelledError(NovelvoiceError):
    """Raised when a running job observes its cancellation signal."""

    kind = "cancelled"


class JobNotFoundError(NovelvoiceError):
    """Raised when a job id does not resolve to a stored job."""

    kind = "not_found"


class JobStateError(NovelvoiceError):
    """Raised on an illegal job status transition."""

    kind = "state"
