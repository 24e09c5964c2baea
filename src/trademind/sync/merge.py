"""
Merge rules for two journal replicas.

Deterministic, field by field, and never drops a trade that exists on
only one side:

    trades    union by id, local wins on an id collision
    strategy  local, unless local is still the template
    notes     the more recent date wins, ties keep local
    extras    union by key, local wins

Editing the same trade id on two devices between syncs is last-writer
(local) wins at whole-trade granularity. There is no field-level merge.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from ..models import JournalSnapshot, PreMarketNotes, StrategyProfile, Trade

logger = logging.getLogger("trademind.sync.merge")


def merge_trades(remote: list[Trade], local: list[Trade]) -> list[Trade]:
    """Union two trade lists by id.

    Remote order comes first; a local trade with a known id replaces the
    remote one in place, new local ids are appended in local order.
    """
    merged: dict[str, Trade] = {t.id: t for t in remote}
    for trade in local:
        merged[trade.id] = trade
    return list(merged.values())


def merge_strategy(
    remote: Optional[StrategyProfile], local: Optional[StrategyProfile]
) -> Optional[StrategyProfile]:
    """Keep a customized local strategy; defer to remote over the template."""
    if local is None:
        return remote
    if local.is_template and remote is not None:
        return remote
    return local


def _note_date(note: Optional[PreMarketNotes]) -> date:
    if note is None:
        return date.min
    try:
        return datetime.fromisoformat(note.date.replace("Z", "+00:00")).date()
    except ValueError:
        try:
            return date.fromisoformat(note.date[:10])
        except ValueError:
            logger.debug("Unparsable note date %r", note.date)
            return date.min


def merge_notes(
    remote: Optional[PreMarketNotes], local: Optional[PreMarketNotes]
) -> Optional[PreMarketNotes]:
    """Keep whichever note is more recent. A missing note is the oldest."""
    if _note_date(local) >= _note_date(remote):
        return local if local is not None else remote
    return remote


def merge_snapshots(
    remote: JournalSnapshot, local: JournalSnapshot, at: datetime
) -> JournalSnapshot:
    """Merge two replicas into a new snapshot stamped *at*.

    Args:
        remote: The downloaded backup.
        local: The device copy.
        at: Reconciliation time, written to ``last_updated``.

    Returns:
        The merged snapshot. Neither input is modified.
    """
    extras = {**remote.extras(), **local.extras()}
    merged = JournalSnapshot(
        trades=merge_trades(remote.trades, local.trades),
        strategy=merge_strategy(remote.strategy, local.strategy),
        pre_market_notes=merge_notes(
            remote.pre_market_notes, local.pre_market_notes
        ),
        last_updated=at,
        **extras,
    )
    logger.info(
        "Merged journals: remote %d, local %d -> %d trade(s)",
        len(remote.trades), len(local.trades), len(merged.trades),
    )
    return merged
