"""Device-local journal storage, plus JSON export and import.

The local journal is the copy the user edits. It lives at
``~/.trademind/journal/journal.json`` and is only ever replaced
wholesale -- by a save after an edit, or by the result of a successful
sync.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from . import TRADEMIND_HOME
from .models import JournalSnapshot, StrategyProfile, Trade, empty_journal
from .sync.merge import merge_trades

logger = logging.getLogger("trademind.journal")

EXPORT_VERSION = "1.0"


class JournalStore:
    """Load and save the device journal.

    Args:
        home: App home directory. Defaults to ~/.trademind.
    """

    def __init__(self, home: Optional[Path] = None):
        self.home = (home or Path(TRADEMIND_HOME)).expanduser()
        self.path = self.home / "journal" / "journal.json"

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> JournalSnapshot:
        """Read the journal.

        Returns:
            The stored journal. A missing or unreadable file yields a fresh
            journal seeded with the default strategy; an unreadable file
            is left on disk untouched.
        """
        if not self.path.exists():
            return empty_journal()
        try:
            snapshot = JournalSnapshot.model_validate_json(
                self.path.read_text(encoding="utf-8")
            )
        except (OSError, ValueError) as exc:
            logger.warning("Local journal unreadable, starting fresh: %s", exc)
            return empty_journal()

        if snapshot.strategy is None:
            snapshot = snapshot.model_copy(
                update={"strategy": empty_journal().strategy}
            )
        return snapshot

    def save(self, snapshot: JournalSnapshot) -> Path:
        """Atomically replace the journal on disk.

        Args:
            snapshot: The journal to store.

        Returns:
            Path to the journal file.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f".{self.path.name}.tmp")
        data = json.dumps(snapshot.to_wire(), indent=2, ensure_ascii=False)
        tmp.write_text(data, encoding="utf-8")
        tmp.replace(self.path)
        logger.debug("Saved local journal: %d trade(s)", len(snapshot.trades))
        return self.path


def export_backup(snapshot: JournalSnapshot) -> dict[str, Any]:
    """Build the portable export document for a journal.

    Args:
        snapshot: Journal to export.

    Returns:
        dict: ``trades``, ``strategy``, ``version``, ``exportDate``.
    """
    wire = snapshot.to_wire()
    return {
        "trades": wire.get("trades", []),
        "strategy": wire.get("strategy"),
        "version": EXPORT_VERSION,
        "exportDate": datetime.now(timezone.utc).isoformat(),
    }


def write_export(snapshot: JournalSnapshot, path: Path) -> Path:
    """Write an export document to *path*."""
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(export_backup(snapshot), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return path


def parse_import(data: Any) -> tuple[list[Trade], Optional[StrategyProfile]]:
    """Interpret an imported JSON document.

    Accepts a bare list of trades, a backup object with a ``trades``
    list (and optional ``strategy``), or a bare strategy profile.

    Args:
        data: Decoded JSON.

    Returns:
        (trades, strategy) -- strategy is None when the file has none.

    Raises:
        ValueError: If the document matches none of the accepted shapes
            or its contents do not validate.
    """
    try:
        if isinstance(data, list):
            return [Trade.model_validate(t) for t in data], None
        if isinstance(data, dict) and isinstance(data.get("trades"), list):
            trades = [Trade.model_validate(t) for t in data["trades"]]
            strategy = data.get("strategy")
            return trades, (
                StrategyProfile.model_validate(strategy) if strategy else None
            )
        if isinstance(data, dict) and all(k in data for k in ("name", "steps", "rules")):
            return [], StrategyProfile.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid journal data: {exc.error_count()} problem(s)") from exc

    raise ValueError(
        "Invalid JSON format. Expected an array of trades or backup object."
    )


def import_backup(path: Path, local: JournalSnapshot) -> JournalSnapshot:
    """Merge an exported JSON file into the local journal.

    Imported trades are merged by id, with the imported version winning
    on a collision. An imported strategy replaces the local one.

    Args:
        path: JSON file to import.
        local: Current local journal.

    Returns:
        The new local journal.

    Raises:
        ValueError: If the file is not valid JSON or not a known shape.
    """
    path = Path(path).expanduser()
    if path.suffix.lower() != ".json":
        raise ValueError("Unsupported file type. Please use a .json export.")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Not valid JSON: {exc}") from exc

    trades, strategy = parse_import(data)
    logger.info(
        "Importing %d trade(s)%s from %s",
        len(trades), " and a strategy" if strategy else "", path.name,
    )
    return local.model_copy(update={
        "trades": merge_trades(local.trades, trades),
        "strategy": strategy or local.strategy,
    })
