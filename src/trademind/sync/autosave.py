"""
Debounced background saves.

Every local edit calls ``schedule``. The save only goes out once edits
have been quiet for ``delay`` seconds; a new edit restarts the wait.
A save that is already uploading is left to finish.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..models import JournalSnapshot
from .engine import SyncEngine
from .errors import SyncError

logger = logging.getLogger("trademind.sync.autosave")


class AutoSaver:
    """Pushes the latest local journal after a quiet period.

    Args:
        engine: Engine whose session holds the backup handle.
        delay: Quiet period in seconds. Defaults to the session config.
    """

    def __init__(self, engine: SyncEngine, delay: Optional[float] = None):
        self.engine = engine
        self.delay = (
            delay if delay is not None
            else engine.session.config.autosave_delay_seconds
        )
        self.last_error: Optional[SyncError] = None
        self._pending: Optional[asyncio.Task] = None
        self._uploading = False
        self._lock = asyncio.Lock()

    @property
    def armed(self) -> bool:
        """True when a handle is resolved and the backup is safe to overwrite."""
        session = self.engine.session
        return bool(session.handle) and session.writable and not session.closed

    def schedule(self, snapshot: JournalSnapshot) -> bool:
        """Queue a save of *snapshot*, replacing any save still waiting.

        Returns:
            False if autosave is not armed and nothing was queued.
        """
        if not self.armed:
            logger.debug("Autosave not armed; skipping")
            return False
        if self._pending and not self._pending.done() and not self._uploading:
            self._pending.cancel()
        self._pending = asyncio.get_running_loop().create_task(
            self._save_later(snapshot)
        )
        return True

    async def flush(self) -> None:
        """Wait for the queued save, if any, to finish."""
        if self._pending and not self._pending.done():
            try:
                await self._pending
            except asyncio.CancelledError:
                pass

    def cancel(self) -> None:
        """Drop a save that has not started uploading."""
        if self._pending and not self._pending.done() and not self._uploading:
            self._pending.cancel()
        self._pending = None

    async def _save_later(self, snapshot: JournalSnapshot) -> None:
        await asyncio.sleep(self.delay)
        async with self._lock:
            # The session may have been disarmed while we waited.
            if not self.armed:
                logger.debug("Autosave disarmed before upload; dropping save")
                return
            self._uploading = True
            try:
                await self.engine.push(snapshot)
                self.last_error = None
                logger.info("Autosaved %d trade(s)", len(snapshot.trades))
            except SyncError as exc:
                self.last_error = exc
                logger.warning("Autosave failed: %s", exc)
            finally:
                self._uploading = False
