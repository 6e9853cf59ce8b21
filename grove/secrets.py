"""API token lookup: environment variable first, then a secure-storage backend."""

import os
import shutil
import subprocess
from typing import Protocol

from grove.constants import KEYCHAIN_SERVICE
from grove.logging import get_logger

logger = get_logger("secrets")

_SECURITY_BIN = "/usr/bin/security"


class SecretBackend(Protocol):
    """Secure storage for API tokens."""

    def is_available(self) -> bool: ...

    def get_secret(self, key: str) -> str | None: ...


class KeychainBackend:
    """macOS keychain via the ``security`` CLI. Unavailable on other platforms."""

    def __init__(self, service: str = KEYCHAIN_SERVICE, security_bin: str = _SECURITY_BIN) -> None:
        self.service = service
        self.security_bin = security_bin

    def is_available(self) -> bool:
        return shutil.which(self.security_bin) is not None

    def get_secret(self, key: str) -> str | None:
        try:
            result = subprocess.run(
                [self.security_bin, "find-generic-password", "-s", self.service, "-a", key, "-w"],
                capture_output=True,
                text=True,
                check=False,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Keychain lookup failed for {key}: {e}")
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None


def get_token(env_var: str, key_name: str, backend: SecretBackend | None = None) -> str | None:
    """Resolve an API token.

    Args:
        env_var: Environment variable checked first
        key_name: Key in the secure-storage backend
        backend: Storage backend (defaults to the macOS keychain)

    Returns:
        The token, or None if neither source has one
    """
    value = os.environ.get(env_var, "").strip()
    if value:
        return value

    backend = backend if backend is not None else KeychainBackend()
    if backend.is_available():
        return backend.get_secret(key_name)
    return None
