"""
Cloud Sync -- keep the device journal and the drive backup in agreement.

One backup file per account, found by name. Every login merges it with
the local journal and writes the union back. Nothing that exists on only
one side is ever dropped.
"""

from .engine import SyncEngine, SyncSession
from .errors import AuthExpired, NotConnected, RemoteUnreadable, SyncError, TransportFailure

__all__ = [
    "AuthExpired",
    "NotConnected",
    "RemoteUnreadable",
    "SyncEngine",
    "SyncError",
    "SyncSession",
    "TransportFailure",
]
