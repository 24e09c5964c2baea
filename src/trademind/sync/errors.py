"""
Sync error taxonomy.

Absence of a remote backup is not an error -- it drives the bootstrap
path and is reported as ``None`` by the adapter.
"""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base class for every failure of a sync operation."""


class AuthExpired(SyncError):
    """Credential rejected even after one silent refresh.

    The user has to sign in again; never retried automatically.
    """


class RemoteUnreadable(SyncError):
    """The backup exists but its content is not a journal snapshot."""


class TransportFailure(SyncError):
    """Network error, timeout, or a non-2xx response not covered above."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotConnected(SyncError):
    """No backup handle resolved yet; run a reconcile first."""
