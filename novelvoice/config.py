"""Configuration model and loaders for Novelvoice.

Responsibilities:
- Define service configuration as a typed dataclass.
- Provide deterministic precedence resolution for the provider API key.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `NovelvoiceConfig`: normalized settings for the audiobook service.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `NovelvoiceConfig`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .parsing import normalize_optional_string, parse_float, parse_positive_int
from .text.segmenter import MIN_SEGMENT_BYTES

API_KEY_ENV = "GOOGLE_TTS_API_KEY"


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class NovelvoiceConfig:
    """Settings for the audiobook service.

    Attributes:
        artifact_root: Root directory for audio artifacts, job records,
            usage ledger, and quotas.
        max_segment_bytes: Provider per-request UTF-8 byte limit.
        max_concurrent_segments: Segment requests in flight per chapter.
        max_concurrent_jobs: Jobs generating at the same time.
        speaking_rate: Provider speaking rate, 0.25-4.0.
        pitch: Provider pitch offset in semitones, -20.0-20.0.
        provider_timeout_seconds: HTTP timeout per synthesis request.
        retry_max_attempts: Attempts per segment request, `1` disables retry.
        retry_backoff_seconds: Base exponential backoff between attempts.
        rate_limit_interval_seconds: Minimum spacing between provider requests.
        api_key: Optional provider API key from config file.
    """

    artifact_root: Path = Path("novelvoice-data")
    max_segment_bytes: int = 4500
    max_concurrent_segments: int = 4
    max_concurrent_jobs: int = 2
    speaking_rate: float = 1.0
    pitch: float = 0.0
    provider_timeout_seconds: float = 60.0
    retry_max_attempts: int = 1
    retry_backoff_seconds: float = 0.5
    rate_limit_interval_seconds: float = 0.0
    api_key: str | None = None

    def validate(self) -> None:
        """Validate configuration values before service construction."""

        if self.max_segment_bytes < MIN_SEGMENT_BYTES:
            raise ValueError(f"`max_segment_bytes` must be at least {MIN_SEGMENT_BYTES}.")
        for field_name in ("max_concurrent_segments", "max_concurrent_jobs", "retry_max_attempts"):
            if getattr(self, field_name) <= 0:
                raise ValueError(f"`{field_name}` must be a positive integer.")
        if not 0.25 <= self.speaking_rate <= 4.0:
            raise ValueError("`speaking_rate` must be between 0.25 and 4.0.")
        if not -20.0 <= self.pitch <= 20.0:
            raise ValueError("`pitch` must be between -20.0 and 20.0.")
        if self.provider_timeout_seconds <= 0:
            raise ValueError("`provider_timeout_seconds` must be positive.")
        for field_name in ("retry_backoff_seconds", "rate_limit_interval_seconds"):
            if getattr(self, field_name) < 0:
                raise ValueError(f"`{field_name}` must not be negative.")

    def resolved_api_key(self, sources: RuntimeConfigSources | None = None) -> str | None:
        """Resolve the provider API key.

        Precedence is `cli` > `secure` > `env` (`GOOGLE_TTS_API_KEY`) > config.
        """

        resolved_sources = sources if sources is not None else RuntimeConfigSources()
        for mapping, key in (
            (resolved_sources.cli, "api_key"),
            (resolved_sources.secure, "api_key"),
            (resolved_sources.env, API_KEY_ENV),
        ):
            if key in mapping:
                value = normalize_optional_string(mapping.get(key))
                if value is not None:
                    return value
        return normalize_optional_string(self.api_key)


_FieldParser = Callable[[object, str], Any]

_FIELD_PARSERS: dict[str, _FieldParser] = {
    "artifact_root": lambda value, name: Path(_required_string(value, name)),
    "max_segment_bytes": parse_positive_int,
    "max_concurrent_segments": parse_positive_int,
    "max_concurrent_jobs": parse_positive_int,
    "speaking_rate": parse_float,
    "pitch": parse_float,
    "provider_timeout_seconds": parse_float,
    "retry_max_attempts": parse_positive_int,
    "retry_backoff_seconds": parse_float,
    "rate_limit_interval_seconds": parse_float,
    "api_key": lambda value, name: normalize_optional_string(value),
}


def _required_string(value: object, field_name: str) -> str:
    normalized = normalize_optional_string(value)
    if normalized is None:
        raise ValueError(f"`{field_name}` must be a non-empty string.")
    return normalized


class ConfigLoader:
    """Factory methods for creating `NovelvoiceConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(_FIELD_PARSERS)
    _ENV_PREFIX = "NOVELVOICE_"

    @staticmethod
    def from_yaml(path: Path) -> NovelvoiceConfig:
        """Create a validated config from a YAML file."""

        payload = ConfigLoader._parse_yaml_payload(path.read_text(encoding="utf-8"), path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(
        env: Mapping[str, str] | None = None,
        base: NovelvoiceConfig | None = None,
    ) -> NovelvoiceConfig:
        """Create a validated config from `NOVELVOICE_*` environment variables.

        Variables override the matching fields of `base` (defaults when omitted).
        `NOVELVOICE_API_KEY` is honored; `GOOGLE_TTS_API_KEY` is resolved later
        through `RuntimeConfigSources`.
        """

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key in _FIELD_PARSERS:
            env_key = f"{ConfigLoader._ENV_PREFIX}{key.upper()}"
            if normalize_optional_string(env_map.get(env_key)) is not None:
                payload[key] = env_map[env_key]
        return ConfigLoader._build_config_from_mapping(
            payload,
            source_label="Environment",
            base=base,
        )

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any],
        source_label: str,
        base: NovelvoiceConfig | None = None,
    ) -> NovelvoiceConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_keys(payload, source_label)
        config = base if base is not None else NovelvoiceConfig()
        values: dict[str, Any] = {
            name: getattr(config, name) for name in NovelvoiceConfig.__dataclass_fields__
        }
        for key, raw_value in payload.items():
            try:
                values[key] = _FIELD_PARSERS[key](raw_value, key)
            except ValueError as exc:
                raise ValueError(f"{source_label} field {exc}") from exc
        resolved = NovelvoiceConfig(**values)
        resolved.validate()
        return resolved

    @staticmethod
    def _validate_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Reject unsupported configuration keys."""

        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")
