"""Audiobook job state machine.

Responsibilities:
- Drive one job from `pending` through `generating` to a terminal state.
- Reserve quota at start, persist per-chapter progress, and settle usage at
  the end, on success and on failure alike.
- Record failures as job data instead of raising them to the worker pool.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable
from uuid import uuid4

from ..audio.assembler import ChapterAudioAssembler
from ..audio.merger import AudioMerger
from ..billing.costs import cost_cents
from ..billing.ledger import UsageLedger
from ..billing.quota import utc_now
from ..billing.usage import UsageMeter
from ..errors import ContentError, JobCancelledError, NovelvoiceError
from ..io.chapter_source import ChapterSource
from ..io.storage import ArtifactStore
from ..models.datatypes import (
    Apportionment,
    AudiobookJob,
    JobScope,
    JobStatus,
    PricingTier,
    UsageRecord,
)
from ..telemetry.logger import JobLogger
from ..tts.synthesizer import VoiceConfig
from ..tts.voices import VoiceCatalog
from .planning import book_artifact_path, chapter_artifact_path, plan_chapters
from .state import transition
from .store import JobStore

SERVICE_TYPE = "audiobook"

CancelCheck = Callable[[], bool]


def _never_cancelled() -> bool:
    return False


@dataclass(slots=True)
class _Settlement:
    """Usage settled by one run, so a late failure never settles twice."""

    apportionment: Apportionment | None = None
    cost_cents: int | None = None


class AudiobookJobOrchestrator:
    """Execute stored audiobook jobs one chapter at a time."""

    def __init__(
        self,
        *,
        chapters: ChapterSource,
        catalog: VoiceCatalog,
        assembler: ChapterAudioAssembler,
        meter: UsageMeter,
        ledger: UsageLedger,
        jobs: JobStore,
        artifacts: ArtifactStore,
        logger: JobLogger | None = None,
        max_segment_bytes: int = 4500,
        speaking_rate: float = 1.0,
        pitch: float = 0.0,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
    ) -> None:
        self.chapters = chapters
        self.catalog = catalog
        self.assembler = assembler
        self.meter = meter
        self.ledger = ledger
        self.jobs = jobs
        self.artifacts = artifacts
        self.merger = AudioMerger(artifacts)
        self.logger = logger or JobLogger()
        self.max_segment_bytes = max_segment_bytes
        self.speaking_rate = speaking_rate
        self.pitch = pitch
        self.clock = clock
        self.id_factory = id_factory

    def run(self, job_id: str, is_cancelled: CancelCheck = _never_cancelled) -> AudiobookJob:
        """Generate audio for a pending job and return its terminal snapshot.

        Errors raised while generating are recorded on the job, which then
        moves to `failed`. Only an illegal start transition or a failure to
        persist the terminal record propagates.

        Raises:
            JobNotFoundError: If the job does not exist.
            JobStateError: If the job is not `pending`.
        """

        job = self.jobs.get(job_id)
        job = self._save(transition(job, JobStatus.GENERATING, self.clock()))
        self.logger.status_changed(job.id, job.status)
        settlement = _Settlement()
        try:
            return self._generate(job, is_cancelled, settlement)
        except NovelvoiceError as exc:
            return self._fail(job.id, exc.detail, exc.kind, settlement)
        except Exception as exc:
            return self._fail(job.id, str(exc) or type(exc).__name__, "internal", settlement)

    def _generate(
        self,
        job: AudiobookJob,
        is_cancelled: CancelCheck,
        settlement: _Settlement,
    ) -> AudiobookJob:
        def cancel_check() -> None:
            if is_cancelled():
                raise JobCancelledError("Job was cancelled.")

        cancel_check()
        voice = self.catalog.lookup(job.voice_id)
        voice_config = VoiceConfig.from_profile(voice, self.speaking_rate, self.pitch)
        planned = plan_chapters(
            self.chapters,
            self.assembler.segmenter,
            job.project_id,
            job.scope,
            self.max_segment_bytes,
            job.selected_chapter_id,
        )
        planned_characters = sum(item.character_count for item in planned)
        reservation = self.meter.reserve(job.user_id, planned_characters)
        job = self._save(
            replace(
                job,
                total_chapters=len(planned),
                planned_character_count=planned_characters,
                reservation=reservation,
                updated_at=self.clock(),
            )
        )

        for item in planned:
            cancel_check()
            if self.chapters.get_chapter(job.project_id, item.chapter.id) is None:
                raise ContentError(f"Chapter `{item.chapter.title}` no longer exists.")
            audio = self.assembler.assemble_chapter(
                item.chapter.text,
                voice_config,
                self.max_segment_bytes,
                cancel_check=cancel_check,
                chapter_id=item.chapter.id,
            )
            path = chapter_artifact_path(job.project_id, job.id, item.chapter)
            self.artifacts.save_audio(path, audio.audio_bytes)
            job = self._save(
                replace(
                    job,
                    chapter_files=(*job.chapter_files, path.as_posix()),
                    completed_chapters=job.completed_chapters + 1,
                    duration_seconds=job.duration_seconds + audio.duration_seconds,
                    file_size_bytes=job.file_size_bytes + audio.file_size_bytes,
                    character_count=job.character_count + audio.character_count,
                    updated_at=self.clock(),
                )
            )
            self.logger.chapter_completed(
                job.id,
                item.chapter.id,
                completed=job.completed_chapters,
                total=job.total_chapters,
            )

        if job.scope is JobScope.FULLBOOK:
            final_path = book_artifact_path(
                job.project_id,
                job.id,
                self.chapters.project_title(job.project_id),
            )
            self.merger.merge(list(job.chapter_files), final_path)
            file_path = final_path.as_posix()
            file_size = self.artifacts.size(final_path)
        else:
            file_path = job.chapter_files[0]
            file_size = job.file_size_bytes

        settled = self.meter.settle(job.user_id, reservation, job.character_count)
        settlement.apportionment = settled
        actual_cost = self._record_usage(job, settled, voice.pricing)
        settlement.cost_cents = actual_cost
        job = self._save(
            transition(
                job,
                JobStatus.COMPLETED,
                self.clock(),
                file_path=file_path,
                file_size_bytes=file_size,
                actual_cost_cents=actual_cost,
                was_overage_charge=settled.was_overage,
            )
        )
        self.logger.job_completed(
            job.id,
            characters=job.character_count,
            cost_cents=actual_cost,
            overage=settled.was_overage,
        )
        return job

    def _fail(
        self,
        job_id: str,
        detail: str,
        error_kind: str,
        settlement: _Settlement,
    ) -> AudiobookJob:
        """Settle partial usage and move the latest job snapshot to `failed`."""

        job = self.jobs.get(job_id)
        if job.reservation is not None:
            try:
                if settlement.apportionment is None:
                    settlement.apportionment = self.meter.settle(
                        job.user_id, job.reservation, job.character_count
                    )
                if settlement.cost_cents is None and settlement.apportionment.requested > 0:
                    settlement.cost_cents = self._record_usage(
                        job, settlement.apportionment, self._pricing_for(job)
                    )
            except NovelvoiceError as exc:
                self.logger.job_failed(job.id, exc.kind, stage="settlement")
                detail = f"{detail}; usage settlement failed: {exc.detail}"
        settled = settlement.apportionment
        actual_cost = settlement.cost_cents or 0
        was_overage = settled is not None and settled.was_overage
        job = self._save(
            transition(
                job,
                JobStatus.FAILED,
                self.clock(),
                error=detail,
                error_kind=error_kind,
                actual_cost_cents=actual_cost,
                was_overage_charge=was_overage,
            )
        )
        self.logger.job_failed(
            job.id,
            error_kind,
            completed=job.completed_chapters,
            total=job.total_chapters,
        )
        return job

    def _record_usage(
        self,
        job: AudiobookJob,
        settled: Apportionment,
        pricing: PricingTier,
    ) -> int:
        """Append the job's usage record and return its cost in cents."""

        amount = cost_cents(settled.overage, pricing)
        self.ledger.append(
            UsageRecord(
                id=self.id_factory(),
                user_id=job.user_id,
                service_type=SERVICE_TYPE,
                resource_id=job.id,
                character_count=settled.requested,
                cost_cents=amount,
                was_overage=settled.was_overage,
                billing_period=settled.billing_period,
                created_at=self.clock(),
            )
        )
        return amount

    def _pricing_for(self, job: AudiobookJob) -> PricingTier:
        return self.catalog.lookup(job.voice_id).pricing

    def _save(self, job: AudiobookJob) -> AudiobookJob:
        return self.jobs.save(job)
