"""Tests for debounced background saves."""

from __future__ import annotations

import asyncio

import pytest

from trademind.models import JournalSnapshot
from trademind.sync.autosave import AutoSaver
from trademind.sync.engine import SyncEngine
from trademind.sync.errors import TransportFailure


class TestAutoSaver:
    """Tests for AutoSaver."""

    @pytest.mark.asyncio
    async def test_not_armed_before_reconcile(self, engine: SyncEngine, drive):
        saver = AutoSaver(engine, delay=0)

        assert not saver.armed
        assert saver.schedule(JournalSnapshot()) is False
        await saver.flush()
        assert drive.requests == []

    @pytest.mark.asyncio
    async def test_debounce_sends_latest_only(self, engine: SyncEngine, drive, make_trade):
        """Rapid edits collapse into one replace carrying the last edit."""
        await engine.reconcile(JournalSnapshot())
        drive.requests.clear()
        saver = AutoSaver(engine, delay=0.05)

        for n in range(1, 4):
            saver.schedule(JournalSnapshot(trades=[make_trade(str(i)) for i in range(n)]))
        await saver.flush()

        (write,) = drive.writes
        assert write.method == "PATCH"
        assert [t["id"] for t in drive.content(engine.session.handle)["trades"]] == ["0", "1", "2"]
        assert saver.last_error is None

    @pytest.mark.asyncio
    async def test_disarmed_after_unreadable_remote(self, engine: SyncEngine, drive, make_trade):
        """A backup we could not read is not overwritten in the background."""
        file_id = drive.add_file(b"not json at all")
        await engine.reconcile(JournalSnapshot(trades=[make_trade("L")]))
        saver = AutoSaver(engine, delay=0)

        assert engine.session.handle == file_id
        assert not saver.armed
        assert saver.schedule(JournalSnapshot()) is False
        assert drive.files[file_id]["content"] == b"not json at all"

    @pytest.mark.asyncio
    async def test_queued_save_dropped_when_backup_turns_unreadable(
        self, engine: SyncEngine, drive, make_trade
    ):
        """A save queued before the backup went bad never overwrites it."""
        await engine.reconcile(JournalSnapshot())
        file_id = engine.session.handle
        saver = AutoSaver(engine, delay=0.05)
        assert saver.schedule(JournalSnapshot(trades=[make_trade("X")]))

        drive.files[file_id]["content"] = b"garbage"
        result = await engine.reconcile(JournalSnapshot())
        await saver.flush()

        assert result.remote_unreadable
        assert drive.files[file_id]["content"] == b"garbage"
        assert saver.last_error is None

    @pytest.mark.asyncio
    async def test_disarmed_after_logout(self, engine: SyncEngine):
        await engine.reconcile(JournalSnapshot())
        saver = AutoSaver(engine, delay=0)
        assert saver.armed

        await engine.logout()

        assert not saver.armed

    @pytest.mark.asyncio
    async def test_failure_recorded_not_raised(self, engine: SyncEngine, drive, make_trade):
        await engine.reconcile(JournalSnapshot())
        drive.fail_status["PATCH"] = 503
        saver = AutoSaver(engine, delay=0)

        saver.schedule(JournalSnapshot(trades=[make_trade("x")]))
        await saver.flush()

        assert isinstance(saver.last_error, TransportFailure)
        assert engine.state.last_error.startswith("push:")

    @pytest.mark.asyncio
    async def test_cancel_drops_pending(self, engine: SyncEngine, drive, make_trade):
        await engine.reconcile(JournalSnapshot())
        drive.requests.clear()
        saver = AutoSaver(engine, delay=10)

        saver.schedule(JournalSnapshot(trades=[make_trade("x")]))
        saver.cancel()
        await asyncio.sleep(0)

        assert drive.requests == []

    def test_delay_defaults_to_config(self, engine: SyncEngine):
        assert AutoSaver(engine).delay == engine.session.config.autosave_delay_seconds
