"""Speech synthesis interfaces, provider client, and voice catalog."""

from .google_client import GoogleSpeechClient
from .rate_limiter import RateLimiter
from .retry import TRANSIENT_FAILURE_KINDS, RetryPolicy
from .synthesizer import SynthesisClient, VoiceConfig
from .voices import DEFAULT_VOICES, VoiceCatalog

__all__ = [
    "DEFAULT_VOICES",
    "GoogleSpeechClient",
    "RateLimiter",
    "RetryPolicy",
    "SynthesisClient",
    "TRANSIENT_FAILURE_KINDS",
    "VoiceCatalog",
    "VoiceConfig",
]
