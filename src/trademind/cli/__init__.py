"""
TradeMind CLI: journal and cloud backup from the command line.

Each group lives in its own module and is registered on the main
Click group here.

Entry point: trademind.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="trademind")
@click.option("--verbose", "-v", is_flag=True, help="Log sync activity to stderr.")
def main(verbose: bool):
    """TradeMind: your trading journal, backed up to your drive."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Register all command groups from modular files
# ---------------------------------------------------------------------------

from .sync_cmd import register_sync_commands
from .journal_cmd import register_journal_commands

register_sync_commands(main)
register_journal_commands(main)
