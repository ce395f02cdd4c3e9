"""Secure credential storage helpers for the Novelvoice CLI.

Responsibilities:
- Persist the speech provider API key in an OS-backed credential store.
- Provide deterministic read/write/delete operations for that key.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `CredentialStore`: interface for provider credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
"""

from __future__ import annotations

from dataclasses import dataclass

import keyring
from keyring.backends.fail import Keyring as FailKeyring
from keyring.errors import KeyringError, PasswordDeleteError
from loguru import logger

from .errors import PersistenceError


_DEFAULT_SERVICE_NAME = "novelvoice"
_DEFAULT_ACCOUNT_NAME = "google_tts_api_key"


class CredentialStore:
    """Interface for secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_api_key(self) -> str | None:
        """Load the stored API key from secure storage, when available."""

        raise NotImplementedError

    def set_api_key(self, api_key: str) -> None:
        """Persist an API key in secure storage."""

        raise NotImplementedError

    def clear_api_key(self) -> bool:
        """Delete a stored API key and return whether one existed."""

        raise NotImplementedError


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package."""

    service_name: str = _DEFAULT_SERVICE_NAME
    account_name: str = _DEFAULT_ACCOUNT_NAME

    def is_available(self) -> bool:
        """Return `False` when keyring resolved only its failing fallback backend."""

        return not isinstance(keyring.get_keyring(), FailKeyring)

    def get_api_key(self) -> str | None:
        """Get a normalized API key, returning `None` when missing or unreadable."""

        if not self.is_available():
            return None
        try:
            value = keyring.get_password(self.service_name, self.account_name)
        except KeyringError as exc:
            logger.warning("Secure credential lookup failed: {}", type(exc).__name__)
            return None
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key or raise when storage is unavailable."""

        normalized = api_key.strip()
        if not normalized:
            raise ValueError("API key must be a non-empty string.")
        if not self.is_available():
            raise PersistenceError(
                "Secure credential storage is unavailable on this system.",
                hint="Set `GOOGLE_TTS_API_KEY` or pass `--api-key` instead.",
            )
        try:
            keyring.set_password(self.service_name, self.account_name, normalized)
        except KeyringError as exc:
            raise PersistenceError(
                f"Failed to store API key in secure storage ({type(exc).__name__})."
            ) from exc

    def clear_api_key(self) -> bool:
        """Remove the stored API key and report whether one was present."""

        if self.get_api_key() is None:
            return False
        try:
            keyring.delete_password(self.service_name, self.account_name)
        except PasswordDeleteError:
            return False
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()
