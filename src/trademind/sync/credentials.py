"""
Credential suppliers -- where bearer tokens come from.

The OAuth dance itself lives outside this package. The sync code only
needs something it can ask for a token, and ask again (silently) when
the server says the old one expired.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import subprocess
from abc import ABC, abstractmethod
from typing import Optional

from .errors import AuthExpired
from .models import SyncConfig

logger = logging.getLogger("trademind.sync.credentials")


class CredentialSupplier(ABC):
    """Issues and refreshes a bearer token on demand."""

    @abstractmethod
    async def acquire(self, interactive: bool = False) -> str:
        """Return a usable bearer token.

        Args:
            interactive: Whether the supplier may prompt the user.

        Returns:
            The token string.

        Raises:
            AuthExpired: If no valid token can be produced.
        """

    def invalidate(self) -> None:
        """Forget any cached token. Called after the server rejects it."""


class StaticTokenSupplier(CredentialSupplier):
    """A fixed token, e.g. pasted from an OAuth playground.

    It cannot be refreshed: once the server rejects it, every later
    call raises AuthExpired.
    """

    def __init__(self, token: str):
        self._token: Optional[str] = token or None

    async def acquire(self, interactive: bool = False) -> str:
        if not self._token:
            raise AuthExpired("No access token available. Please sign in again.")
        return self._token

    def invalidate(self) -> None:
        self._token = None


class EnvTokenSupplier(CredentialSupplier):
    """Reads the token from an environment variable on every acquire.

    Re-reading lets a wrapper script rotate the variable between calls.
    """

    def __init__(self, env_var: str):
        self.env_var = env_var
        self._rejected: Optional[str] = None

    async def acquire(self, interactive: bool = False) -> str:
        token = os.environ.get(self.env_var, "").strip()
        if not token or token == self._rejected:
            raise AuthExpired(
                f"No valid token in ${self.env_var}. Please sign in again."
            )
        return token

    def invalidate(self) -> None:
        self._rejected = os.environ.get(self.env_var, "").strip() or None


class CommandTokenSupplier(CredentialSupplier):
    """Runs a shell command that prints a fresh access token.

    Works with anything that can mint a Drive token on stdout, for
    example ``gcloud auth print-access-token``. The token is cached
    until invalidated.
    """

    def __init__(self, command: str, timeout: float = 60.0):
        self.command = command
        self.timeout = timeout
        self._token: Optional[str] = None

    async def acquire(self, interactive: bool = False) -> str:
        if self._token:
            return self._token
        self._token = await asyncio.to_thread(self._run)
        return self._token

    def invalidate(self) -> None:
        self._token = None

    def _run(self) -> str:
        try:
            result = subprocess.run(
                shlex.split(self.command),
                capture_output=True, text=True,
                check=False, timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.error("Token command failed: %s", exc)
            raise AuthExpired(f"Token command failed: {exc}") from exc

        token = result.stdout.strip()
        if result.returncode != 0 or not token:
            logger.error(
                "Token command exited %d: %s",
                result.returncode, result.stderr.strip(),
            )
            raise AuthExpired("Token command did not produce a token.")
        logger.debug("Obtained access token from command")
        return token


def create_supplier(config: SyncConfig) -> CredentialSupplier:
    """Pick a credential supplier based on sync config.

    A configured ``token_command`` wins over the environment variable,
    since it can refresh.

    Args:
        config: Sync configuration.

    Returns:
        Instantiated CredentialSupplier.
    """
    if config.token_command:
        return CommandTokenSupplier(config.token_command)
    return EnvTokenSupplier(config.token_env_var)
