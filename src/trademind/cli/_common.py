"""Shared utilities for all CLI command modules.

Provides the Rich console instance, status formatting, and the
failure notices every sync command prints.
"""

from __future__ import annotations

import logging
import sys

from rich.console import Console

from .. import TRADEMIND_HOME, __version__
from ..models import SyncStatus
from ..sync.errors import AuthExpired, NotConnected, RemoteUnreadable, SyncError

console = Console()
logger = logging.getLogger("trademind.cli")


def status_icon(status: SyncStatus) -> str:
    """Map sync status to a Rich-formatted indicator.

    Args:
        status: Current sync status.

    Returns:
        str: Rich markup string for the status.
    """
    return {
        SyncStatus.SYNCED: "[bold green]SYNCED[/]",
        SyncStatus.SYNCING: "[bold cyan]SYNCING[/]",
        SyncStatus.ERROR: "[bold red]ERROR[/]",
        SyncStatus.OFFLINE: "[dim]OFFLINE[/]",
    }.get(status, "[dim]UNKNOWN[/]")


def fail(exc: SyncError) -> None:
    """Print a user-facing notice for a failed sync and exit 1.

    Local data is never touched by a failed sync, so every notice says so.
    """
    if isinstance(exc, AuthExpired):
        console.print(f"[bold red]Please sign in again.[/] {exc}")
    elif isinstance(exc, NotConnected):
        console.print(f"[yellow]{exc}[/]")
    elif isinstance(exc, RemoteUnreadable):
        console.print(f"[yellow]Cloud backup unreadable, using local data.[/] {exc}")
    else:
        console.print(f"[red]Sync failed, using local data.[/] {exc}")
    sys.exit(1)


__all__ = ["TRADEMIND_HOME", "__version__", "console", "fail", "logger", "status_icon"]
