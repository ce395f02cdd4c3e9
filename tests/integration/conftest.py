"""Integration-test fixtures for deterministic provider and credential behavior."""

from __future__ import annotations

from pathlib import Path

import pytest


class InMemoryCredentialStore:
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self, initial_api_key: str | None = None) -> None:
        """Initialize the store with an optional pre-seeded API key."""

        self._api_key = initial_api_key

    def is_available(self) -> bool:
        """Return availability flag expected by the CLI status command."""

        return True

    def get_api_key(self) -> str | None:
        """Return currently stored API key value."""

        return self._api_key

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key value."""

        self._api_key = api_key.strip()

    def clear_api_key(self) -> bool:
        """Clear API key and return whether one existed."""

        existed = self._api_key is not None
        self._api_key = None
        return existed


@pytest.fixture
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Replace OS keyring access with an empty in-memory store."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("novelvoice.cli.create_credential_store", lambda: store)
    monkeypatch.delenv("GOOGLE_TTS_API_KEY", raising=False)
    return store


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Provide a two-chapter project directory with a manifest."""

    project = tmp_path / "harbor-project"
    project.mkdir()
    (project / "01-pier.md").write_text(
        "# The Pier\n\nLamps **flickered** along the pier.", encoding="utf-8"
    )
    (project / "02-fog.md").write_text("A bell rang twice in the fog.", encoding="utf-8")
    (project / "project.yaml").write_text(
        "\n".join(
            [
                "id: harbor",
                "title: Harbor Lights",
                "chapters:",
                "  - file: 01-pier.md",
                "    id: pier",
                "    title: The Pier",
                "  - file: 02-fog.md",
                "    id: fog",
                "    title: Fog",
            ]
        ),
        encoding="utf-8",
    )
    return project
