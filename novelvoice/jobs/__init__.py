"""Audiobook job lifecycle: planning, state machine, persistence, and service."""

from .orchestrator import AudiobookJobOrchestrator
from .planning import PlannedChapter, book_artifact_path, chapter_artifact_path, plan_chapters
from .service import AudiobookService, JobHandle, JobRequest, JobStatusView
from .state import ALLOWED_TRANSITIONS, can_transition, transition
from .store import JobStore

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AudiobookJobOrchestrator",
    "AudiobookService",
    "JobHandle",
    "JobRequest",
    "JobStatusView",
    "JobStore",
    "PlannedChapter",
    "book_artifact_path",
    "can_transition",
    "chapter_artifact_path",
    "plan_chapters",
    "transition",
]
