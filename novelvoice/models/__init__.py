"""Shared typed data models for Novelvoice.

This package contains enums and dataclasses used across pipeline modules to
avoid cross-module coupling and circular imports.
"""

from .datatypes import (
    Apportionment,
    AudiobookJob,
    Chapter,
    ChapterAudio,
    JobScope,
    JobStatus,
    PricingTier,
    QualityTier,
    SubscriptionQuota,
    SubscriptionTier,
    TextSegment,
    UsageRecord,
    VoiceGender,
    VoiceProfile,
)

__all__ = [
    "Apportionment",
    "AudiobookJob",
    "Chapter",
    "ChapterAudio",
    "JobScope",
    "JobStatus",
    "PricingTier",
    "QualityTier",
    "SubscriptionQuota",
    "SubscriptionTier",
    "TextSegment",
    "UsageRecord",
    "VoiceGender",
    "VoiceProfile",
]
