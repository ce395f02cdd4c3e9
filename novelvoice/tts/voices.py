"""Voice catalog for audiobook synthesis.

Responsibilities:
- Hold the immutable registry of provider voices offered to users.
- Resolve voice ids and filter voices by pricing tier.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..errors import UnknownVoiceError
from ..models.datatypes import PricingTier, QualityTier, VoiceGender, VoiceProfile


def _voice(
    voice_id: str,
    name: str,
    accent: str,
    gender: VoiceGender,
    quality: QualityTier,
    pricing: PricingTier,
    sample_text: str,
) -> VoiceProfile:
    """Build a profile whose language code is the id's locale prefix."""

    language_code = "-".join(voice_id.split("-")[:2])
    return VoiceProfile(
        id=voice_id,
        name=name,
        accent=accent,
        language_code=language_code,
        gender=gender,
        quality=quality,
        pricing=pricing,
        sample_text=sample_text,
    )


_M = VoiceGender.MALE
_F = VoiceGender.FEMALE

DEFAULT_VOICES: tuple[VoiceProfile, ...] = (
    _voice("en-US-Standard-A", "Madison", "American (USA)", _F, QualityTier.STANDARD,
           PricingTier.BASIC, "Hello! I'm Madison, speaking with a clear American accent."),
    _voice("en-US-Standard-B", "Mason", "American (USA)", _M, QualityTier.STANDARD,
           PricingTier.BASIC, "Hi there! I'm Mason, with a professional American voice."),
    _voice("en-GB-Standard-A", "Emma", "British (UK)", _F, QualityTier.STANDARD,
           PricingTier.BASIC, "Good day! I'm Emma, speaking with a British accent."),
    _voice("en-GB-Standard-B", "Oliver", "British (UK)", _M, QualityTier.STANDARD,
           PricingTier.BASIC, "Hello there! I'm Oliver, bringing you British narration."),
    _voice("en-GB-Standard-D", "James", "British (UK)", _M, QualityTier.STANDARD,
           PricingTier.BASIC, "Good afternoon! I'm James, with classic British narration."),
    _voice("en-AU-Standard-B", "Jack", "Australian", _M, QualityTier.STANDARD,
           PricingTier.BASIC, "G'day! I'm Jack, delivering Australian storytelling."),
    _voice("en-US-Wavenet-A", "Isabella", "American (USA)", _F, QualityTier.WAVENET,
           PricingTier.PREMIUM, "Hello! I'm Isabella, with expressive WaveNet narration."),
    _voice("en-US-Wavenet-D", "Alexander", "American (USA)", _M, QualityTier.WAVENET,
           PricingTier.PREMIUM, "Hi there! I'm Alexander, bringing stories to life."),
    _voice("en-GB-Wavenet-B", "William", "British (UK)", _M, QualityTier.WAVENET,
           PricingTier.PREMIUM, "Good evening! I'm William, with WaveNet British narration."),
    _voice("en-GB-Wavenet-D", "Charles", "British (UK)", _M, QualityTier.WAVENET,
           PricingTier.PREMIUM, "Hello! I'm Charles, with sophisticated British voice work."),
    _voice("en-US-Neural2-A", "Aria", "American (USA)", _F, QualityTier.NEURAL2,
           PricingTier.PREMIUM, "Hi! I'm Aria, using neural speech synthesis."),
    _voice("en-US-Neural2-D", "Marcus", "American (USA)", _M, QualityTier.NEURAL2,
           PricingTier.PREMIUM, "Hello! I'm Marcus, with neural voice quality."),
    _voice("en-GB-Neural2-A", "Sophia", "British (UK)", _F, QualityTier.NEURAL2,
           PricingTier.PREMIUM, "Good morning! I'm Sophia, with premium British narration."),
    _voice("en-GB-Neural2-B", "Thomas", "British (UK)", _M, QualityTier.NEURAL2,
           PricingTier.PREMIUM, "Greetings! I'm Thomas, offering British storytelling."),
    _voice("en-GB-Neural2-C", "Henry", "British (UK)", _M, QualityTier.NEURAL2,
           PricingTier.PREMIUM, "Greetings! I'm Henry, using Neural2 technology."),
    _voice("en-GB-Studio-B", "Benedict", "British (UK)", _M, QualityTier.STUDIO,
           PricingTier.STUDIO, "Good day! I'm Benedict, with studio-quality narration."),
    _voice("en-GB-Studio-C", "Charlotte", "British (UK)", _F, QualityTier.STUDIO,
           PricingTier.STUDIO, "Good day! I'm Charlotte, with studio-grade narration."),
    _voice("en-US-Studio-M", "Scarlett", "American (USA)", _F, QualityTier.STUDIO,
           PricingTier.STUDIO, "Hello! I'm Scarlett, with studio-quality American narration."),
    _voice("en-US-Studio-O", "Harrison", "American (USA)", _M, QualityTier.STUDIO,
           PricingTier.STUDIO, "Greetings! I'm Harrison, with studio-grade voice work."),
)


class VoiceCatalog:
    """Read-only registry of voice profiles keyed by voice id."""

    def __init__(self, voices: Iterable[VoiceProfile] = DEFAULT_VOICES) -> None:
        """Index voices by id, rejecting duplicate ids."""

        self._voices: dict[str, VoiceProfile] = {}
        for voice in voices:
            if voice.id in self._voices:
                raise ValueError(f"Duplicate voice id `{voice.id}` in catalog.")
            self._voices[voice.id] = voice

    def lookup(self, voice_id: str) -> VoiceProfile:
        """Return the profile for `voice_id` or raise `UnknownVoiceError`."""

        voice = self._voices.get(voice_id)
        if voice is None:
            raise UnknownVoiceError(voice_id)
        return voice

    def list_voices(self, pricing_tier: PricingTier | None = None) -> list[VoiceProfile]:
        """Return voices in catalog order, optionally restricted to one pricing tier."""

        return [
            voice
            for voice in self._voices.values()
            if pricing_tier is None or voice.pricing is pricing_tier
        ]

    def __contains__(self, voice_id: object) -> bool:
        return voice_id in self._voices

    def __len__(self) -> int:
        return len(self._voices)
