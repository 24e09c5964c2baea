"""Journal commands: show, export, import."""

from __future__ import annotations

from pathlib import Path

import click
from rich.table import Table

from ._common import TRADEMIND_HOME, console


def register_journal_commands(main: click.Group) -> None:
    """Register the journal command group."""

    @main.group()
    def journal():
        """Local journal: view, export, and import trades."""

    @journal.command("show")
    @click.option("--home", default=TRADEMIND_HOME, type=click.Path())
    @click.option("--limit", "-n", default=20, help="Most recent trades to show.")
    def journal_show(home: str, limit: int):
        """Show the local journal."""
        from ..journal import JournalStore

        snapshot = JournalStore(Path(home).expanduser()).load()
        strategy = snapshot.strategy

        console.print()
        console.print(
            f"  Strategy: [bold]{strategy.name if strategy else 'none'}[/]"
            + (" [dim](template)[/]" if strategy and strategy.is_template else "")
        )
        if snapshot.pre_market_notes:
            console.print(f"  Notes: [dim]{snapshot.pre_market_notes.date}[/]")

        if not snapshot.trades:
            console.print("  [dim]No trades logged yet.[/]\n")
            return

        table = Table(title=f"Trades ({len(snapshot.trades)})")
        table.add_column("Date")
        table.add_column("Instrument", style="cyan")
        table.add_column("Direction")
        table.add_column("PnL", justify="right")
        table.add_column("Outcome")
        for trade in snapshot.trades[-limit:]:
            pnl = "" if trade.pnl is None else f"{trade.pnl:,.2f}"
            table.add_row(
                trade.date or "",
                trade.instrument or "",
                trade.direction or "",
                pnl,
                trade.outcome or "",
            )
        console.print(table)
        console.print()

    @journal.command("export")
    @click.argument("output", type=click.Path())
    @click.option("--home", default=TRADEMIND_HOME, type=click.Path())
    def journal_export(output: str, home: str):
        """Export trades and strategy to a JSON file."""
        from ..journal import JournalStore, write_export

        snapshot = JournalStore(Path(home).expanduser()).load()
        path = write_export(snapshot, Path(output))
        console.print(
            f"\n  [green]Exported[/] {len(snapshot.trades)} trade(s) to [cyan]{path}[/]\n"
        )

    @journal.command("import")
    @click.argument("source", type=click.Path(exists=True))
    @click.option("--home", default=TRADEMIND_HOME, type=click.Path())
    def journal_import(source: str, home: str):
        """Merge a JSON export into the local journal.

        Accepts a full export, a bare list of trades, or a strategy file.
        """
        from ..journal import JournalStore, import_backup

        store = JournalStore(Path(home).expanduser())
        local = store.load()
        try:
            updated = import_backup(Path(source), local)
        except ValueError as exc:
            console.print(f"[red]{exc}[/]")
            raise SystemExit(1)

        store.save(updated)
        added = len(updated.trades) - len(local.trades)
        console.print(
            f"\n  [green]Imported.[/] {len(updated.trades)} trade(s) "
            f"({added} new)\n"
        )
