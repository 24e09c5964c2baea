"""
Sync Engine -- reconciles the device journal with the cloud backup.

A SyncSession is created at login and closed at logout. It owns the
HTTP client, the credential supplier, and the backup file id once it
has been resolved. The engine drives one operation at a time on it:

    reconcile(local)  ->  find -> (create | download -> merge -> replace)
    pull()            ->  download the backup as-is
    push(local)       ->  replace the backup with the local journal

No operation touches the local journal. Callers replace their copy with
a successful return value; a failure or cancellation leaves it as it was.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import httpx

from ..models import JournalSnapshot, SyncStatus
from .credentials import CredentialSupplier, create_supplier
from .drive import Clock, DriveBackupStore, utc_now
from .errors import NotConnected, RemoteUnreadable, SyncError
from .merge import merge_snapshots
from .models import SyncConfig, SyncResult, SyncState

logger = logging.getLogger("trademind.sync.engine")


def load_state(sync_dir: Path) -> SyncState:
    """Load sync state from disk.

    Args:
        sync_dir: The sync directory (``<home>/sync``).

    Returns:
        The stored SyncState, or a fresh one if missing or corrupt.
    """
    state_file = sync_dir / "state.json"
    if state_file.exists():
        try:
            data = json.loads(state_file.read_text(encoding="utf-8"))
            return SyncState(**data)
        except (json.JSONDecodeError, ValueError, TypeError) as exc:
            logger.warning("Failed to load sync state: %s", exc)
    return SyncState()


def save_state(sync_dir: Path, state: SyncState) -> None:
    """Persist sync state to disk."""
    sync_dir.mkdir(parents=True, exist_ok=True)
    (sync_dir / "state.json").write_text(
        state.model_dump_json(indent=2), encoding="utf-8"
    )


class SyncSession:
    """Everything a signed-in user's sync needs, scoped to one login.

    Args:
        credentials: Token supplier for this login.
        config: Sync configuration.
        client: HTTP client to use. One is created (and closed with the
            session) if not given.
        clock: Time source for ``lastUpdated`` stamps.
    """

    def __init__(
        self,
        credentials: CredentialSupplier,
        config: Optional[SyncConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Clock = utc_now,
    ):
        self.config = config or SyncConfig()
        self.credentials = credentials
        self.clock = clock
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.config.timeout_seconds
        )
        self.store = DriveBackupStore(
            self.client, credentials, self.config, clock=clock
        )
        self.handle: Optional[str] = None
        # False while the backup is known to be unreadable, so background
        # saves do not overwrite it. An explicit push still may.
        self.writable = False
        self.closed = False

    @classmethod
    def from_config(cls, config: SyncConfig) -> SyncSession:
        """Build a session with the credential supplier the config names."""
        return cls(create_supplier(config), config)

    async def close(self) -> None:
        """End the session: forget the handle and release the client."""
        self.handle = None
        self.writable = False
        self.credentials.invalidate()
        if self._owns_client and not self.closed:
            await self.client.aclose()
        self.closed = True

    async def __aenter__(self) -> SyncSession:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class SyncEngine:
    """Orchestrates journal reconciliation against the cloud backup.

    Tracks status and counters in a SyncState, persisted under
    ``<home>/sync/state.json`` when a home directory is given.
    """

    def __init__(self, session: SyncSession, home: Optional[Path] = None):
        self.session = session
        self.sync_dir: Optional[Path] = None
        if home is not None:
            self.sync_dir = Path(home).expanduser() / "sync"
            self.sync_dir.mkdir(parents=True, exist_ok=True)
        self.state = self._load_state()

    def _load_state(self) -> SyncState:
        if self.sync_dir is None:
            return SyncState()
        return load_state(self.sync_dir)

    def _save_state(self) -> None:
        if self.sync_dir is not None:
            save_state(self.sync_dir, self.state)

    @contextmanager
    def _tracking(self, operation: str) -> Iterator[None]:
        """Move status through syncing -> synced | error around an operation."""
        previous = self.state.status
        self.state.status = SyncStatus.SYNCING
        self.state.last_error = None
        try:
            yield
        except SyncError as exc:
            self.state.status = SyncStatus.ERROR
            self.state.last_error = f"{operation}: {exc}"
            logger.error("Sync %s failed: %s", operation, exc)
            raise
        except asyncio.CancelledError:
            self.state.status = previous
            logger.info("Sync %s cancelled", operation)
            raise
        else:
            # A soft failure (unreadable backup) returns normally but
            # leaves last_error set.
            self.state.status = (
                SyncStatus.ERROR if self.state.last_error else SyncStatus.SYNCED
            )
        finally:
            self._save_state()

    def _record_pull(self) -> None:
        self.state.last_pull = self.session.clock()
        self.state.pull_count += 1

    def _record_push(self, handle: str) -> None:
        self.state.last_push = self.session.clock()
        self.state.push_count += 1
        self.state.file_id = handle

    async def reconcile(self, local: JournalSnapshot) -> SyncResult:
        """Bring the local journal and the cloud backup into agreement.

        Args:
            local: The device journal.

        Returns:
            SyncResult with the snapshot the caller should adopt and the
            backup file id.

        Raises:
            AuthExpired: The user must sign in again.
            TransportFailure: Network or server error.
        """
        store = self.session.store
        with self._tracking("reconcile"):
            handle = await store.find_backup()

            if handle is None:
                logger.info("No cloud backup found; creating one from local data")
                handle = await store.upload(local, None)
                self._record_push(handle)
                self.session.handle = handle
                self.session.writable = True
                return SyncResult(snapshot=local, handle=handle)

            logger.info("Cloud backup %s found; fetching and merging", handle)
            remote = await store.download(handle)
            self.session.handle = handle

            if remote is None:
                logger.warning(
                    "Could not read cloud backup %s; using local data "
                    "for this session only", handle,
                )
                self.session.writable = False
                self.state.last_error = "reconcile: cloud backup unreadable"
                return SyncResult(
                    snapshot=local, handle=handle,
                    uploaded=False, remote_unreadable=True,
                )

            self._record_pull()
            at = self.session.clock()
            merged = merge_snapshots(remote, local, at)
            await store.upload(merged, handle, stamp=at)
            self._record_push(handle)
            self.session.writable = True
            return SyncResult(snapshot=merged, handle=handle)

    async def connect(self) -> str:
        """Resolve the backup handle without syncing anything.

        Raises:
            NotConnected: There is no backup yet.
        """
        with self._tracking("connect"):
            handle = await self.session.store.find_backup()
            if handle is None:
                raise NotConnected("No cloud backup yet. Run a sync first.")
            self.session.handle = handle
            return handle

    async def pull(self) -> JournalSnapshot:
        """Download the backup as-is ("sync from cloud").

        Raises:
            NotConnected: No backup resolved in this session.
            RemoteUnreadable: The backup could not be parsed.
        """
        with self._tracking("pull"):
            handle = self._require_handle()
            remote = await self.session.store.download(handle)
            if remote is None:
                raise RemoteUnreadable(f"Cloud backup {handle} is unreadable")
            self._record_pull()
            self.session.writable = True
            return remote

    async def push(self, local: JournalSnapshot) -> str:
        """Replace the backup with the local journal ("force save").

        Raises:
            NotConnected: No backup resolved in this session.
        """
        with self._tracking("push"):
            handle = self._require_handle()
            await self.session.store.upload(local, handle)
            self._record_push(handle)
            self.session.writable = True
            return handle

    async def logout(self) -> None:
        """Close the session and go offline."""
        await self.session.close()
        self.state.status = SyncStatus.OFFLINE
        self.state.file_id = None
        self._save_state()
        logger.info("Signed out of cloud sync")

    def _require_handle(self) -> str:
        if not self.session.handle:
            raise NotConnected("Not connected to cloud. Run a sync first.")
        return self.session.handle

    def status(self) -> dict:
        """Get current sync status.

        Returns:
            Dict with persisted state and session info.
        """
        return {
            "state": self.state.model_dump(mode="json"),
            "connected": self.session.handle is not None,
            "writable": self.session.writable,
            "backup_file_name": self.session.config.backup_file_name,
        }
