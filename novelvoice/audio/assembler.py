"""Chapter audio assembly from concurrently synthesized segments.

Responsibilities:
- Segment one chapter and synthesize its segments on a bounded worker pool.
- Reassemble segment audio strictly in segment-index order.
- Estimate spoken duration and count billable characters.
"""

from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

from ..errors import ProviderError
from ..models.datatypes import ChapterAudio, TextSegment
from ..text.segmenter import TextSegmenter
from ..tts.synthesizer import SynthesisClient, VoiceConfig
from .merger import concatenate_audio

WORDS_PER_MINUTE = 150

CancelCheck = Callable[[], None]


def estimate_duration_seconds(text: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Estimate narration length from whitespace-delimited word count."""

    words = len(text.split())
    seconds = Decimal(words) * 60 / Decimal(words_per_minute)
    return int(seconds.quantize(Decimal(1), rounding=ROUND_HALF_UP))


class ChapterAudioAssembler:
    """Turn one chapter's text into one ordered audio buffer."""

    def __init__(
        self,
        client: SynthesisClient,
        segmenter: TextSegmenter | None = None,
        max_concurrent_segments: int = 4,
    ) -> None:
        if max_concurrent_segments < 1:
            raise ValueError("`max_concurrent_segments` must be at least 1.")
        self.client = client
        self.segmenter = segmenter or TextSegmenter()
        self.max_concurrent_segments = max_concurrent_segments

    def assemble_chapter(
        self,
        chapter_text: str,
        voice: VoiceConfig,
        max_bytes: int,
        cancel_check: CancelCheck | None = None,
        chapter_id: str = "",
    ) -> ChapterAudio:
        """Synthesize a chapter and return its concatenated audio.

        Segments may complete in any order; each result lands in the slot of
        its segment index, and slots are joined in index order.

        Args:
            chapter_text: Raw chapter text.
            voice: Provider voice configuration.
            max_bytes: Per-request byte limit.
            cancel_check: Callable raising `JobCancelledError` once the job
                is cancelled. Invoked before each segment request.
            chapter_id: Identifier copied into the result.

        Raises:
            ContentError: If the chapter has no usable text.
            ProviderError: On the first failed segment. Pending segments are
                cancelled.
            JobCancelledError: If `cancel_check` signals cancellation.
        """

        segments = self.segmenter.segment(chapter_text, max_bytes)
        slots = self._synthesize_all(segments, voice, cancel_check)
        cleaned = "".join(segment.text for segment in segments)
        return ChapterAudio(
            chapter_id=chapter_id,
            audio_bytes=concatenate_audio(slots),
            duration_seconds=estimate_duration_seconds(cleaned),
            character_count=sum(len(segment.text) for segment in segments),
            segment_count=len(segments),
        )

    def _synthesize_all(
        self,
        segments: list[TextSegment],
        voice: VoiceConfig,
        cancel_check: CancelCheck | None,
    ) -> list[bytes]:
        slots: list[bytes | None] = [None] * len(segments)
        workers = min(self.max_concurrent_segments, len(segments))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="segment")
        try:
            futures: dict[Future[bytes], int] = {
                executor.submit(self._synthesize_segment, segment, voice, cancel_check): segment.index
                for segment in segments
            }
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
            for future in done:
                if future.exception() is not None:
                    raise self._first_failure(futures)
            for future, index in futures.items():
                slots[index] = future.result()
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
        return [audio for audio in slots if audio is not None]

    def _synthesize_segment(
        self,
        segment: TextSegment,
        voice: VoiceConfig,
        cancel_check: CancelCheck | None,
    ) -> bytes:
        if cancel_check is not None:
            cancel_check()
        audio = self.client.synthesize(segment.text, voice)
        if not audio:
            raise ProviderError(
                f"No audio content received for segment {segment.index}.",
                failure_kind="empty_response",
            )
        return audio

    @staticmethod
    def _first_failure(futures: dict[Future[bytes], int]) -> BaseException:
        """Return the failure of the lowest-index failed segment."""

        for future, _ in sorted(futures.items(), key=lambda item: item[1]):
            if future.done() and not future.cancelled() and future.exception() is not None:
                return future.exception()
        raise RuntimeError("No failed segment future found.")
