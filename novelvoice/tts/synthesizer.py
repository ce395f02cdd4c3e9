"""Synthesis client contract consumed by the audiobook core.

Responsibilities:
- Define the protocol for segment-level speech synthesis.
- Describe the provider voice configuration derived from a catalog voice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..models.datatypes import VoiceGender, VoiceProfile


@dataclass(frozen=True, slots=True)
class VoiceConfig:
    """Provider request settings for one synthesis voice.

    Attributes:
        voice_id: Provider-native voice name.
        language_code: BCP-47 language code.
        gender: Voice gender hint.
        speaking_rate: Relative rate clamped to the provider range 0.25-4.0.
        pitch: Semitone offset clamped to the provider range -20.0-20.0.
        audio_encoding: Provider audio container, MP3 so buffers concatenate.
    """

    voice_id: str
    language_code: str
    gender: VoiceGender = VoiceGender.NEUTRAL
    speaking_rate: float = 1.0
    pitch: float = 0.0
    audio_encoding: str = "MP3"

    @classmethod
    def from_profile(
        cls,
        voice: VoiceProfile,
        speaking_rate: float = 1.0,
        pitch: float = 0.0,
    ) -> VoiceConfig:
        """Build a request config for a catalog voice with clamped tuning values."""

        return cls(
            voice_id=voice.id,
            language_code=voice.language_code,
            gender=voice.gender,
            speaking_rate=max(0.25, min(4.0, speaking_rate)),
            pitch=max(-20.0, min(20.0, pitch)),
        )


class SynthesisClient(Protocol):
    """Protocol for provider clients turning one text segment into audio bytes.

    Implementations raise `ProviderError` on transport/provider failure and on
    accepted-but-empty responses.
    """

    def synthesize(self, text: str, voice: VoiceConfig) -> bytes:
        """Synthesize one segment and return encoded audio bytes."""
