"""Shared pytest fixtures for the full Novelvoice test suite."""

from __future__ import annotations

import hashlib
import threading
import time
from collections.abc import Callable, Iterator
from datetime import datetime, timezone

import pytest
from loguru import logger

from novelvoice.models.datatypes import Chapter
from novelvoice.tts.synthesizer import VoiceConfig

FIXED_NOW = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)


def fake_audio_for(text: str) -> bytes:
    """Return deterministic placeholder MP3 bytes identifying one segment text."""

    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()[:12]
    return f"ID3<{digest}>".encode("ascii")


class FakeSynthesisClient:
    """Deterministic synthesis client recording every request.

    Attributes:
        delays: Seconds to sleep before answering an exact segment text.
        failures: Exception raised for an exact segment text.
        responses: Audio bytes returned for an exact segment text.
    """

    def __init__(
        self,
        *,
        delays: dict[str, float] | None = None,
        failures: dict[str, Exception] | None = None,
        responses: dict[str, bytes] | None = None,
    ) -> None:
        """Initialize per-text behavior overrides and call recording."""

        self.delays = dict(delays or {})
        self.failures = dict(failures or {})
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, VoiceConfig]] = []
        self.completed: list[str] = []
        self._lock = threading.Lock()

    def synthesize(self, text: str, voice: VoiceConfig) -> bytes:
        """Return fake audio for `text`, honoring configured delays and failures."""

        with self._lock:
            self.calls.append((text, voice))
        delay = self.delays.get(text, 0.0)
        if delay:
            time.sleep(delay)
        failure = self.failures.get(text)
        if failure is not None:
            raise failure
        audio = self.responses.get(text, fake_audio_for(text))
        with self._lock:
            self.completed.append(text)
        return audio


@pytest.fixture(autouse=True)
def _reset_loguru_handlers() -> Iterator[None]:
    """Drop sinks added by tests so later log lines never hit closed streams."""

    yield
    logger.remove()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Provide a clock frozen in the middle of the 2026-10 billing period."""

    return lambda: FIXED_NOW


@pytest.fixture
def fake_client() -> FakeSynthesisClient:
    """Provide a synthesis client that answers every segment immediately."""

    return FakeSynthesisClient()


@pytest.fixture
def fake_client_factory() -> type[FakeSynthesisClient]:
    """Provide the fake client class for tests that configure delays or failures."""

    return FakeSynthesisClient


@pytest.fixture
def fake_audio() -> Callable[[str], bytes]:
    """Provide the audio bytes the fake client returns for a segment text."""

    return fake_audio_for


@pytest.fixture
def make_chapter()-> Callable[..., Chapter]:
    """Provide a factory for project chapters with sensible defaults."""

    def _make(
        index: int,
        text: str,
        *,
        project_id: str = "novel",
        chapter_id: str | None = None,
        title: str | None = None,
    ) -> Chapter:
        return Chapter(
            id=chapter_id or f"ch{index}",
            project_id=project_id,
            index=index,
            title=title or f"Chapter {index}",
            text=text,
        )

    return _make


@pytest.fixture
def ten_thousand_char_text() -> str:
    """Provide 73 sentences of exactly 10,000 characters in total."""

    sentence = ("narration " * 14)[:135] + "."
    text = " ".join([sentence] * 73)
    assert len(text) == 10_000
    return text
