"""Core datatypes shared across Novelvoice modules.

Responsibilities:
- Represent the tier, scope, and status vocabularies as exhaustive enums.
- Represent records exchanged between segmentation, synthesis, billing,
  and job orchestration.

Key types:
- `VoiceProfile`, `TextSegment`, `Chapter`, `ChapterAudio`,
  `SubscriptionQuota`, `Apportionment`, `UsageRecord`, and `AudiobookJob`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class PricingTier(str, Enum):
    """Billing category that determines the per-character synthesis rate."""

    BASIC = "basic"
    PREMIUM = "premium"
    STUDIO = "studio"

    @property
    def rank(self) -> int:
        """Return the ordering rank used for subscription access checks."""

        return _PRICING_TIER_RANKS[self]


_PRICING_TIER_RANKS = {
    PricingTier.BASIC: 1,
    PricingTier.PREMIUM: 2,
    PricingTier.STUDIO: 3,
}


class QualityTier(str, Enum):
    """Synthesis technology grade of a voice."""

    STANDARD = "standard"
    WAVENET = "wavenet"
    NEURAL2 = "neural2"
    STUDIO = "studio"


class VoiceGender(str, Enum):
    """Voice gender as reported to the synthesis provider."""

    MALE = "male"
    FEMALE = "female"
    NEUTRAL = "neutral"


class SubscriptionTier(str, Enum):
    """Subscription plan provisioned by the billing collaborator."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    STUDIO = "studio"

    @property
    def monthly_audio_characters(self) -> int:
        """Return the included monthly audio-character allowance."""

        return _SUBSCRIPTION_AUDIO_LIMITS[self]

    @property
    def max_pricing_tier(self) -> PricingTier:
        """Return the most expensive voice pricing tier available on this plan."""

        return _SUBSCRIPTION_VOICE_ACCESS[self]


_SUBSCRIPTION_AUDIO_LIMITS = {
    SubscriptionTier.FREE: 0,
    SubscriptionTier.BASIC: 100_000,
    SubscriptionTier.PREMIUM: 200_000,
    SubscriptionTier.STUDIO: 500_000,
}

_SUBSCRIPTION_VOICE_ACCESS = {
    SubscriptionTier.FREE: PricingTier.BASIC,
    SubscriptionTier.BASIC: PricingTier.BASIC,
    SubscriptionTier.PREMIUM: PricingTier.PREMIUM,
    SubscriptionTier.STUDIO: PricingTier.STUDIO,
}


class JobScope(str, Enum):
    """Unit of text an audiobook job converts."""

    CHAPTER = "chapter"
    FULLBOOK = "fullbook"


class JobStatus(str, Enum):
    """Audiobook job lifecycle state."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return whether no transition may leave this state."""

        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Immutable catalog entry describing one synthesis voice.

    Attributes:
        id: Provider-native voice identifier, e.g. `en-GB-Neural2-A`.
        name: Human-readable narrator name.
        accent: Accent label shown in voice pickers.
        language_code: BCP-47 language code sent to the provider.
        gender: Voice gender.
        quality: Synthesis quality tier.
        pricing: Billing tier used for cost calculation.
        sample_text: Short preview sentence for the voice.
    """

    id: str
    name: str
    accent: str
    language_code: str
    gender: VoiceGender
    quality: QualityTier
    pricing: PricingTier
    sample_text: str = ""


@dataclass(frozen=True, slots=True)
class TextSegment:
    """A byte-bounded slice of cleaned chapter text submitted as one request."""

    index: int
    text: str

    @property
    def byte_length(self) -> int:
        """Return the UTF-8 encoded length of the segment text."""

        return len(self.text.encode("utf-8"))


@dataclass(frozen=True, slots=True)
class Chapter:
    """A chapter as provided by the chapter-content collaborator.

    Attributes:
        id: Stable chapter identifier.
        project_id: Owning project identifier.
        index: 1-based position of the chapter in the project order.
        title: Chapter title.
        text: Raw chapter text, possibly containing editor markup.
    """

    id: str
    project_id: str
    index: int
    title: str
    text: str


@dataclass(frozen=True, slots=True)
class ChapterAudio:
    """Assembled audio for one chapter plus estimates used for job totals."""

    chapter_id: str
    audio_bytes: bytes
    duration_seconds: int
    character_count: int
    segment_count: int

    @property
    def file_size_bytes(self) -> int:
        """Return the size of the assembled chapter audio buffer."""

        return len(self.audio_bytes)


@dataclass(frozen=True, slots=True)
class SubscriptionQuota:
    """Per-user monthly audio-character allowance and consumption.

    Attributes:
        user_id: Owning user.
        tier: Provisioned subscription tier.
        monthly_limit: Included characters per billing period.
        consumed: Characters already consumed in the current period.
        billing_period: Period key in `YYYY-MM` form.
        period_resets_at: Instant at which `consumed` resets to zero.
    """

    user_id: str
    tier: SubscriptionTier
    monthly_limit: int
    consumed: int
    billing_period: str
    period_resets_at: datetime

    @property
    def remaining(self) -> int:
        """Return non-negative included headroom for this period."""

        return max(0, self.monthly_limit - self.consumed)


@dataclass(frozen=True, slots=True)
class Apportionment:
    """Split of a character count into included and overage portions."""

    requested: int
    included: int
    overage: int
    billing_period: str

    @property
    def was_overage(self) -> bool:
        """Return whether any characters fall beyond the included quota."""

        return self.overage > 0


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """Append-only ledger entry written once per finalized job."""

    id: str
    user_id: str
    service_type: str
    resource_id: str
    character_count: int
    cost_cents: int
    was_overage: bool
    billing_period: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class AudiobookJob:
    """Durable record of one audiobook generation request.

    Instances are immutable snapshots. The orchestrator derives each new
    state with `dataclasses.replace` and persists it.
    """

    id: str
    project_id: str
    user_id: str
    scope: JobScope
    voice_id: str
    quality: QualityTier
    selected_chapter_id: str | None = None
    status: JobStatus = JobStatus.PENDING
    total_chapters: int = 0
    completed_chapters: int = 0
    chapter_files: tuple[str, ...] = field(default_factory=tuple)
    file_path: str | None = None
    duration_seconds: int = 0
    file_size_bytes: int = 0
    character_count: int = 0
    planned_character_count: int = 0
    estimated_cost_cents: int = 0
    actual_cost_cents: int | None = None
    was_overage_charge: bool = False
    error: str | None = None
    error_kind: str | None = None
    reservation: Apportionment | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
