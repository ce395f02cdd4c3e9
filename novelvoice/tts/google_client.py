"""Google Cloud Text-to-Speech HTTP client.

Responsibilities:
- Send one `text:synthesize` request per text segment over REST.
- Decode the base64 audio payload into MP3 bytes.
- Log a warning before each retry of a transient failure.
- Raise `ProviderError` with a deterministic `failure_kind` for every failure,
  with API keys redacted from messages.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import socket
from typing import Any

import requests
from loguru import logger

from ..errors import ProviderError
from .rate_limiter import RateLimiter
from .retry import RetryPolicy
from .synthesizer import VoiceConfig

_GENDER_TOKENS = {
    "male": "MALE",
    "female": "FEMALE",
    "neutral": "NEUTRAL",
}


class GoogleSpeechClient:
    """Synthesis client for Google Cloud Text-to-Speech using an API key."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://texttospeech.googleapis.com/v1",
        timeout_seconds: float = 60.0,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        """Initialize HTTP settings, pacing, and retry behavior."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.rate_limiter = rate_limiter or RateLimiter()
        self.retry_policy = retry_policy or RetryPolicy()

    def synthesize(self, text: str, voice: VoiceConfig) -> bytes:
        """Synthesize one segment and return MP3 bytes.

        Raises:
            ProviderError: On missing credentials, HTTP/transport failure,
                malformed payloads, or an empty audio response.
        """

        self._require_api_key()
        payload = self.build_payload(text, voice)
        return self.retry_policy.run(
            lambda: self._synthesize_once(payload),
            on_retry=self._log_retry,
        )

    def _log_retry(self, attempt: int, error: ProviderError) -> None:
        logger.warning(
            "Speech request attempt {}/{} failed ({}); retrying.",
            attempt,
            self.retry_policy.max_attempts,
            error.failure_kind,
        )

    @staticmethod
    def build_payload(text: str, voice: VoiceConfig) -> dict[str, Any]:
        """Build the provider request body for one segment."""

        return {
            "input": {"text": text},
            "voice": {
                "languageCode": voice.language_code,
                "name": voice.voice_id,
                "ssmlGender": _GENDER_TOKENS.get(voice.gender.value, "NEUTRAL"),
            },
            "audioConfig": {
                "audioEncoding": voice.audio_encoding,
                "speakingRate": voice.speaking_rate,
                "pitch": voice.pitch,
            },
        }

    def _require_api_key(self) -> None:
        """Require API key presence before issuing provider requests."""

        if not self.api_key:
            raise ProviderError(
                "Missing Google Text-to-Speech API key.",
                failure_kind="invalid_api_key",
                hint=(
                    "Set `GOOGLE_TTS_API_KEY`, pass `--api-key`, or run "
                    "`novelvoice credentials`."
                ),
            )

    def _synthesize_once(self, payload: dict[str, Any]) -> bytes:
        """Execute one paced request and decode its audio content."""

        self.rate_limiter.acquire("google-tts")
        body = self._post_json(payload)
        return self._decode_audio(body)

    def _post_json(self, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON payload and map failures to `ProviderError`."""

        endpoint = f"{self.base_url}/text:synthesize"
        try:
            response = requests.post(
                endpoint,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = "Speech provider request timed out."
            else:
                detail = (
                    "Speech provider transport error: "
                    f"{self._short_message(self._redact_sensitive_tokens(str(exc)))}"
                )
            raise ProviderError(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise ProviderError(
                "Speech provider request timed out.",
                failure_kind="timeout",
            ) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(
                "Speech provider returned a malformed JSON response.",
                failure_kind="malformed",
            ) from exc

        if not isinstance(body, dict):
            raise ProviderError(
                "Speech provider returned a malformed JSON response.",
                failure_kind="malformed",
            )
        return body

    @staticmethod
    def _decode_audio(body: dict[str, Any]) -> bytes:
        """Extract and base64-decode `audioContent`, rejecting empty audio."""

        encoded = body.get("audioContent")
        if not isinstance(encoded, str) or not encoded.strip():
            raise ProviderError(
                "No audio content received from speech provider.",
                failure_kind="empty_response",
            )
        try:
            audio = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ProviderError(
                "Speech provider returned undecodable audio content.",
                failure_kind="malformed",
            ) from exc
        if not audio:
            raise ProviderError(
                "No audio content received from speech provider.",
                failure_kind="empty_response",
            )
        return audio

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 payload string."""

        response = exc.response
        if response is None:
            return ""
        return bytes(response.content or b"").decode("utf-8", errors="replace").strip()

    @staticmethod
    def _redact_sensitive_tokens(text: str) -> str:
        """Redact API keys from URLs and provider error content."""

        redacted = re.sub(r"(?i)([?&]key=)[^&\s'\"]+", r"\1[redacted-key]", text)
        return re.sub(r"\bAIza[0-9A-Za-z_-]{20,}\b", "[redacted-key]", redacted)

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> tuple[str, str | None]:
        """Extract a concise provider message and optional status token."""

        if not body:
            return "", None
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body)), None

        provider_status: str | None = None
        message: str | None = None
        if isinstance(payload, dict):
            error_payload = payload.get("error")
            if isinstance(error_payload, dict):
                status_value = error_payload.get("status")
                if isinstance(status_value, str) and status_value.strip():
                    provider_status = status_value.strip()
                message_value = error_payload.get("message")
                if isinstance(message_value, str) and message_value.strip():
                    message = message_value.strip()
        if message is None:
            message = body
        return cls._short_message(cls._redact_sensitive_tokens(message)), provider_status

    @staticmethod
    def _classify_http_failure(
        status_code: int,
        provider_message: str,
        provider_status: str | None,
    ) -> str:
        """Classify HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        normalized_status = (provider_status or "").upper()

        if status_code in {401, 403} or "api key" in message_lower:
            return "invalid_api_key"
        if status_code == 429 or normalized_status == "RESOURCE_EXHAUSTED":
            return "quota"
        if status_code in {408, 504} or "timed out" in message_lower:
            return "timeout"
        if status_code >= 500:
            return "server_error"
        if "voice" in message_lower and (
            status_code == 400 or normalized_status == "INVALID_ARGUMENT"
        ):
            return "invalid_voice"
        return "http_error"

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _http_error_to_provider_error(cls, exc: requests.HTTPError) -> ProviderError:
        """Convert HTTP errors into normalized provider exceptions."""

        status_code = exc.response.status_code if exc.response is not None else 0
        provider_message, provider_status = cls._extract_provider_message(
            cls._decode_error_body(exc)
        )
        failure_kind = cls._classify_http_failure(status_code, provider_message, provider_status)
        headline = {
            "invalid_api_key": "Speech provider rejected the API key",
            "quota": "Speech provider quota or rate limit exceeded",
            "timeout": "Speech provider request timed out",
            "server_error": "Speech provider is unavailable",
            "invalid_voice": "Speech provider rejected the selected voice",
        }.get(failure_kind, "Speech provider request failed")
        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."
        hint = (
            "Check the configured API key with `novelvoice credentials`."
            if failure_kind == "invalid_api_key"
            else None
        )
        return ProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            hint=hint,
        )
