"""Audiobook service facade.

Responsibilities:
- Validate job requests and pre-flight their text before any job exists.
- Persist pending jobs and run them on a bounded background worker pool.
- Expose status polling, voice listing, cancellation, and usage summaries.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import uuid4

from ..audio.assembler import ChapterAudioAssembler
from ..billing.costs import cost_cents
from ..billing.ledger import UsageLedger
from ..billing.quota import JsonQuotaStore, QuotaStore, utc_now
from ..billing.usage import UsageMeter, UsageSummary
from ..config import NovelvoiceConfig
from ..errors import ValidationError
from ..io.chapter_source import ChapterSource
from ..io.storage import ArtifactStore
from ..models.datatypes import (
    AudiobookJob,
    JobScope,
    JobStatus,
    PricingTier,
    QualityTier,
    SubscriptionQuota,
    SubscriptionTier,
    VoiceProfile,
)
from ..telemetry.logger import JobLogger
from ..text.segmenter import TextSegmenter
from ..tts.synthesizer import SynthesisClient
from ..tts.voices import VoiceCatalog
from .orchestrator import AudiobookJobOrchestrator
from .planning import plan_chapters
from .store import JobStore


@dataclass(frozen=True, slots=True)
class JobRequest:
    """Input for `AudiobookService.create_job`.

    Attributes:
        project_id: Project whose chapters are converted.
        user_id: Requesting user, billed for the characters.
        scope: Single chapter or full book.
        voice_id: Catalog voice id.
        chapter_id: Required for chapter scope, forbidden for full book.
        quality: Optional expected quality tier of the voice.
    """

    project_id: str
    user_id: str
    scope: JobScope
    voice_id: str
    chapter_id: str | None = None
    quality: QualityTier | None = None


@dataclass(frozen=True, slots=True)
class JobHandle:
    """Identifier and initial status of an accepted job."""

    job_id: str
    status: JobStatus


@dataclass(frozen=True, slots=True)
class JobStatusView:
    """Poll-friendly projection of a job record.

    `file_path`, `actual_cost_cents`, and `was_overage_charge` are only
    populated for completed jobs. `error` is only populated for failed jobs.
    """

    job_id: str
    status: JobStatus
    scope: JobScope
    voice_id: str
    completed_chapters: int
    total_chapters: int
    duration_seconds: int
    file_size_bytes: int
    character_count: int
    estimated_cost_cents: int
    chapter_files: tuple[str, ...]
    error: str | None = None
    error_kind: str | None = None
    file_path: str | None = None
    actual_cost_cents: int | None = None
    was_overage_charge: bool | None = None

    @classmethod
    def from_job(cls, job: AudiobookJob) -> JobStatusView:
        """Project a job record into a status view."""

        completed = job.status is JobStatus.COMPLETED
        failed = job.status is JobStatus.FAILED
        return cls(
            job_id=job.id,
            status=job.status,
            scope=job.scope,
            voice_id=job.voice_id,
            completed_chapters=job.completed_chapters,
            total_chapters=job.total_chapters,
            duration_seconds=job.duration_seconds,
            file_size_bytes=job.file_size_bytes,
            character_count=job.character_count,
            estimated_cost_cents=job.estimated_cost_cents,
            chapter_files=job.chapter_files,
            error=job.error if failed else None,
            error_kind=job.error_kind if failed else None,
            file_path=job.file_path if completed else None,
            actual_cost_cents=job.actual_cost_cents if completed else None,
            was_overage_charge=job.was_overage_charge if completed else None,
        )


class AudiobookService:
    """Create, run, and observe audiobook generation jobs."""

    def __init__(
        self,
        *,
        chapters: ChapterSource,
        client: SynthesisClient,
        config: NovelvoiceConfig | None = None,
        catalog: VoiceCatalog | None = None,
        quota_store: QuotaStore | None = None,
        logger: JobLogger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Wire collaborators and start the job worker pool.

        Args:
            chapters: Chapter-content collaborator.
            client: Synthesis provider client.
            config: Service settings, defaults when omitted.
            catalog: Voice catalog, the default Google voice list when omitted.
            quota_store: Quota store, `quotas.json` under the artifact root
                when omitted.
            logger: Job lifecycle logger.
            clock: UTC clock used for timestamps and billing periods.
        """

        self.config = config or NovelvoiceConfig()
        self.config.validate()
        self.chapters = chapters
        self.catalog = catalog or VoiceCatalog()
        self.artifacts = ArtifactStore(self.config.artifact_root)
        self.jobs = JobStore(self.artifacts)
        self.ledger = UsageLedger(self.artifacts)
        self.meter = UsageMeter(
            quota_store if quota_store is not None else JsonQuotaStore(self.artifacts),
            ledger=self.ledger,
            clock=clock,
        )
        self.segmenter = TextSegmenter()
        self.logger = logger or JobLogger()
        self.clock = clock
        self.orchestrator = AudiobookJobOrchestrator(
            chapters=chapters,
            catalog=self.catalog,
            assembler=ChapterAudioAssembler(
                client,
                segmenter=self.segmenter,
                max_concurrent_segments=self.config.max_concurrent_segments,
            ),
            meter=self.meter,
            ledger=self.ledger,
            jobs=self.jobs,
            artifacts=self.artifacts,
            logger=self.logger,
            max_segment_bytes=self.config.max_segment_bytes,
            speaking_rate=self.config.speaking_rate,
            pitch=self.config.pitch,
            clock=clock,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_concurrent_jobs,
            thread_name_prefix="audiobook-job",
        )
        self._lock = threading.Lock()
        self._cancel_events: dict[str, threading.Event] = {}
        self._futures: dict[str, Future[AudiobookJob]] = {}

    def __enter__(self) -> AudiobookService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def create_job(self, request: JobRequest) -> JobHandle:
        """Validate a request, persist a pending job, and schedule it.

        Raises:
            ValidationError: On inconsistent scope and chapter, quality
                mismatch, unknown chapter, or a voice above the user's plan.
            UnknownVoiceError: If the voice id is not in the catalog.
            ContentError: If no usable text remains after cleaning.
        """

        voice = self._validate_request(request)
        planned = plan_chapters(
            self.chapters,
            self.segmenter,
            request.project_id,
            request.scope,
            self.config.max_segment_bytes,
            request.chapter_id,
        )
        planned_characters = sum(item.character_count for item in planned)
        preview = self.meter.preview(request.user_id, planned_characters)
        now = self.clock()
        job = AudiobookJob(
            id=uuid4().hex,
            project_id=request.project_id,
            user_id=request.user_id,
            scope=request.scope,
            voice_id=voice.id,
            quality=voice.quality,
            selected_chapter_id=request.chapter_id,
            total_chapters=len(planned),
            planned_character_count=planned_characters,
            estimated_cost_cents=cost_cents(preview.overage, voice.pricing),
            created_at=now,
            updated_at=now,
        )
        self.jobs.save(job)
        self.logger.job_created(
            job.id,
            scope=job.scope,
            voice=job.voice_id,
            chapters=job.total_chapters,
            characters=planned_characters,
        )
        cancel_event = threading.Event()
        with self._lock:
            self._cancel_events[job.id] = cancel_event
            future = self._executor.submit(self._run_job, job.id, cancel_event)
            self._futures[job.id] = future
        future.add_done_callback(lambda _: self._forget_future(job.id))
        return JobHandle(job_id=job.id, status=job.status)

    def get_job_status(self, job_id: str) -> JobStatusView:
        """Return the latest status view of a job.

        Raises:
            JobNotFoundError: If the job does not exist.
        """

        return JobStatusView.from_job(self.jobs.get(job_id))

    def list_jobs(self) -> list[JobStatusView]:
        """Return status views of all stored jobs, oldest first."""

        return [JobStatusView.from_job(job) for job in self.jobs.list_jobs()]

    def list_voices(self, pricing_tier: PricingTier | None = None) -> list[VoiceProfile]:
        """Return catalog voices, optionally filtered by pricing tier."""

        return self.catalog.list_voices(pricing_tier)

    def cancel_job(self, job_id: str) -> JobStatusView:
        """Request cancellation of a pending or generating job.

        The running job observes the request between chapters and before each
        segment request, then fails with error kind `cancelled`. A marker file
        next to the job record carries the request to workers in other
        processes.

        Raises:
            JobNotFoundError: If the job does not exist.
            JobStateError: If the job already finished.
        """

        job = self.jobs.request_cancel(job_id)
        with self._lock:
            event = self._cancel_events.get(job_id)
        if event is not None:
            event.set()
        return JobStatusView.from_job(job)

    def wait_for_job(self, job_id: str, timeout: float | None = None) -> JobStatusView:
        """Block until a job scheduled by this service finishes, then return its view.

        Finished jobs are no longer tracked, so waiting on one returns its
        stored view immediately.
        """

        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
            self._forget_future(job_id)
        return self.get_job_status(job_id)

    def usage_summary(self, user_id: str) -> UsageSummary:
        """Return the user's current billing-period usage."""

        return self.meter.summary(user_id)

    def set_subscription(
        self,
        user_id: str,
        tier: SubscriptionTier,
        consumed: int | None = None,
    ) -> SubscriptionQuota:
        """Provision or change a user's subscription tier."""

        return self.meter.set_subscription(user_id, tier, consumed)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and optionally wait for running ones."""

        self._executor.shutdown(wait=wait)

    def _validate_request(self, request: JobRequest) -> VoiceProfile:
        if request.scope is JobScope.CHAPTER and request.chapter_id is None:
            raise ValidationError(
                "Chapter scope requires a chapter id.",
                hint="Pass `--chapter <chapter-id>` or use full-book scope.",
            )
        if request.scope is JobScope.FULLBOOK and request.chapter_id is not None:
            raise ValidationError("Full-book scope must not name a chapter.")

        voice = self.catalog.lookup(request.voice_id)
        if request.quality is not None and request.quality is not voice.quality:
            raise ValidationError(
                f"Voice `{voice.id}` is {voice.quality.value} quality, "
                f"not {request.quality.value}."
            )
        tier = self.meter.current_quota(request.user_id).tier
        if voice.pricing.rank > tier.max_pricing_tier.rank:
            raise ValidationError(
                f"Voice `{voice.id}` requires a {voice.pricing.value} plan; "
                f"current plan is {tier.value}.",
                hint=(
                    f"Pick a voice from `novelvoice voices --tier {tier.max_pricing_tier.value}` "
                    "or upgrade the plan."
                ),
            )
        if request.chapter_id is not None and (
            self.chapters.get_chapter(request.project_id, request.chapter_id) is None
        ):
            raise ValidationError(f"Unknown chapter `{request.chapter_id}`.")
        return voice

    def _forget_future(self, job_id: str) -> None:
        with self._lock:
            self._futures.pop(job_id, None)

    def _run_job(self, job_id: str, cancel_event: threading.Event) -> AudiobookJob:
        def is_cancelled() -> bool:
            return cancel_event.is_set() or self.jobs.cancel_requested(job_id)

        try:
            return self.orchestrator.run(job_id, is_cancelled)
        finally:
            with self._lock:
                self._cancel_events.pop(job_id, None)
