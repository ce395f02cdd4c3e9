"""Chapter audio assembly and artifact merging."""

from .assembler import WORDS_PER_MINUTE, ChapterAudioAssembler, estimate_duration_seconds
from .merger import AudioMerger, concatenate_audio

__all__ = [
    "AudioMerger",
    "ChapterAudioAssembler",
    "WORDS_PER_MINUTE",
    "concatenate_audio",
    "estimate_duration_seconds",
]
