"""Sync commands: run, pull, push, status, logout."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import click
from rich.panel import Panel

from ._common import TRADEMIND_HOME, console, fail, status_icon
from ..config import load_config
from ..journal import JournalStore
from ..sync.engine import SyncEngine, SyncSession, load_state
from ..sync.errors import SyncError
from ..sync.models import SyncConfig

T = TypeVar("T")


def _open_session(config: SyncConfig) -> SyncSession:
    return SyncSession.from_config(config)


def _run(home_path: Path, operation: Callable[[SyncEngine], Awaitable[T]]) -> T:
    """Run one engine operation inside a fresh session."""
    config = load_config(home_path).sync

    async def runner() -> T:
        async with _open_session(config) as session:
            engine = SyncEngine(session, home=home_path)
            return await operation(engine)

    return asyncio.run(runner())


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.group()
    def sync():
        """Cloud backup: merge your journal with your drive.

        One backup file per account. Trades logged on any device are
        merged in; nothing that exists on only one side is lost.
        """

    @sync.command("run")
    @click.option("--home", default=TRADEMIND_HOME, type=click.Path())
    def sync_run(home):
        """Merge the local journal with the cloud backup, both ways."""
        home_path = Path(home).expanduser()
        store = JournalStore(home_path)
        local = store.load()

        console.print(
            f"\n  Syncing [cyan]{len(local.trades)}[/] local trade(s)...", end=" "
        )
        try:
            result = _run(home_path, lambda engine: engine.reconcile(local))
        except SyncError as exc:
            console.print("[red]failed[/]")
            fail(exc)
            return

        if result.remote_unreadable:
            console.print("[yellow]backup unreadable[/]")
            console.print(
                "  [dim]Using local data. The cloud backup was left untouched.[/]\n"
            )
            return

        store.save(result.snapshot)
        strategy = result.snapshot.strategy
        console.print("[green]done[/]")
        console.print(
            Panel(
                f"Trades: [bold]{len(result.snapshot.trades)}[/]\n"
                f"Strategy: {strategy.name if strategy else '[dim]none[/]'}\n"
                f"Backup: [cyan]{result.handle}[/]",
                title="Cloud Sync",
                border_style="green",
            )
        )

    @sync.command("pull")
    @click.option("--home", default=TRADEMIND_HOME, type=click.Path())
    def sync_pull(home):
        """Replace the local journal with the cloud backup."""
        home_path = Path(home).expanduser()
        store = JournalStore(home_path)

        async def pull(engine: SyncEngine):
            await engine.connect()
            return await engine.pull()

        console.print("\n  Downloading backup...", end=" ")
        try:
            remote = _run(home_path, pull)
        except SyncError as exc:
            console.print("[red]failed[/]")
            fail(exc)
            return

        store.save(remote)
        console.print(f"[green]{len(remote.trades)} trade(s) restored[/]\n")

    @sync.command("push")
    @click.option("--home", default=TRADEMIND_HOME, type=click.Path())
    def sync_push(home):
        """Overwrite the cloud backup with the local journal."""
        home_path = Path(home).expanduser()
        local = JournalStore(home_path).load()

        async def push(engine: SyncEngine):
            await engine.connect()
            return await engine.push(local)

        console.print(
            f"\n  Saving [cyan]{len(local.trades)}[/] trade(s) to cloud...", end=" "
        )
        try:
            handle = _run(home_path, push)
        except SyncError as exc:
            console.print("[red]failed[/]")
            fail(exc)
            return

        console.print("[green]done[/]")
        console.print(f"  [dim]Backup: {handle}[/]\n")

    @sync.command("status")
    @click.option("--home", default=TRADEMIND_HOME, type=click.Path())
    def sync_status(home):
        """Show sync status and recent activity."""
        home_path = Path(home).expanduser()
        state = load_state(home_path / "sync")
        config = load_config(home_path).sync
        local = JournalStore(home_path).load()

        console.print()
        console.print(
            Panel(
                f"Status: {status_icon(state.status)}\n"
                f"Backup file: [cyan]{config.backup_file_name}[/]\n"
                f"File id: {state.file_id or '[dim]none[/]'}\n"
                f"Local trades: [bold]{len(local.trades)}[/]\n"
                f"Last push: {state.last_push or '[dim]never[/]'} "
                f"({state.push_count} total)\n"
                f"Last pull: {state.last_pull or '[dim]never[/]'} "
                f"({state.pull_count} total)\n"
                f"Last error: {state.last_error or '[dim]none[/]'}",
                title="Cloud Sync",
                border_style="cyan",
            )
        )
        console.print()

    @sync.command("logout")
    @click.option("--home", default=TRADEMIND_HOME, type=click.Path())
    def sync_logout(home):
        """Sign out of cloud sync. Local data is kept."""
        home_path = Path(home).expanduser()
        _run(home_path, lambda engine: engine.logout())
        console.print("\n  [cyan]Signed out.[/] Local journal kept.\n")
