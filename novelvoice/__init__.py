"""Top-level package for Novelvoice.

This package converts novel chapters into narrated MP3 audiobooks through a
speech provider, with per-user quota metering. The main entry point is
`AudiobookService`.
"""

from .jobs.service import AudiobookService, JobHandle, JobRequest, JobStatusView

__all__ = ["AudiobookService", "JobHandle", "JobRequest", "JobStatusView", "__version__"]

__version__ = "0.1.0"
