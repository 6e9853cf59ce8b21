"""Tests for token lookup."""

from unittest.mock import MagicMock

import pytest

from grove.secrets import KeychainBackend, get_token


class TestGetToken:
    def test_environment_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_TOKEN", "env-token")
        backend = MagicMock()

        assert get_token("GITHUB_TOKEN", "grove.git.apiToken", backend) == "env-token"
        backend.get_secret.assert_not_called()

    def test_backend_fallback(self) -> None:
        backend = MagicMock()
        backend.is_available.return_value = True
        backend.get_secret.return_value = "stored"

        assert get_token("GITHUB_TOKEN", "grove.git.apiToken", backend) == "stored"
        backend.get_secret.assert_called_once_with("grove.git.apiToken")

    def test_unavailable_backend(self) -> None:
        backend = MagicMock()
        backend.is_available.return_value = False

        assert get_token("GITHUB_TOKEN", "grove.git.apiToken", backend) is None
        backend.get_secret.assert_not_called()

    def test_keychain_unavailable_without_security_binary(self, tmp_path) -> None:
        assert KeychainBackend(security_bin=str(tmp_path / "security")).is_available() is False
