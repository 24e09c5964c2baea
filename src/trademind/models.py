"""
Journal data models -- trades, strategy profile, and the snapshot.

A JournalSnapshot is the unit of persistence. The same model is used for
the device-local copy and for the remote backup document, so the wire
names (camelCase) are kept as aliases and anything we do not model is
carried along untouched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

TEMPLATE_MARKER = "(Template)"

# Keeps integer quantities integral on the wire.
Number = Union[int, float]


class SyncStatus(str, Enum):
    """Cloud sync status shown to the user."""

    OFFLINE = "offline"
    SYNCING = "syncing"
    SYNCED = "synced"
    ERROR = "error"


class TradeNote(BaseModel):
    """A timestamped commentary entry on a trade."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = ""
    timestamp: str = ""
    content: str = ""
    type: str = "logic"


class Trade(BaseModel):
    """A single journal trade, keyed by a client-generated id.

    Trades are immutable once built. Fields we do not model explicitly
    (screenshots, AI feedback, option details) are kept as extras so a
    round trip through the engine never drops them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    id: str = Field(min_length=1)
    date: Optional[str] = None
    entry_time: Optional[str] = Field(default=None, alias="entryTime")
    exit_time: Optional[str] = Field(default=None, alias="exitTime")
    instrument: Optional[str] = None
    execution_type: Optional[str] = Field(default=None, alias="executionType")
    direction: Optional[str] = None
    entry_price: Optional[Number] = Field(default=None, alias="entryPrice")
    exit_price: Optional[Number] = Field(default=None, alias="exitPrice")
    quantity: Optional[Number] = None
    pnl: Optional[Number] = None
    outcome: Optional[str] = None
    setup_name: Optional[str] = Field(default=None, alias="setupName")
    confluences: list[str] = Field(default_factory=list)
    mistakes: list[str] = Field(default_factory=list)
    notes: list[TradeNote] = Field(default_factory=list)


class StrategyStep(BaseModel):
    """One phase of the trading plan timeline."""

    model_config = ConfigDict(extra="allow")

    title: str
    items: list[str] = Field(default_factory=list)


class StrategyLink(BaseModel):
    """A tool link attached to the strategy."""

    model_config = ConfigDict(extra="allow")

    label: str
    url: str
    description: str = ""


class StrategyRule(BaseModel):
    """An iron rule of the strategy."""

    model_config = ConfigDict(extra="allow")

    title: str
    description: str = ""


class StrategyProfile(BaseModel):
    """The user's trading system -- a singleton per journal.

    A name containing ``(Template)`` marks the untouched default that
    ships with a fresh install.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    steps: list[StrategyStep] = Field(default_factory=list)
    links: list[StrategyLink] = Field(default_factory=list)
    rules: list[StrategyRule] = Field(default_factory=list)

    @property
    def is_template(self) -> bool:
        """True if this profile is still the shipped default."""
        return TEMPLATE_MARKER in self.name


class PreMarketNotes(BaseModel):
    """Free-form market analysis notes for a given day."""

    model_config = ConfigDict(extra="allow")

    date: str
    notes: str = ""


class JournalSnapshot(BaseModel):
    """Everything that gets backed up: trades, strategy, notes.

    On the wire ``trades`` is an ordered list. In memory it never holds
    two trades with the same id; a later duplicate replaces the earlier
    one in place.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    trades: list[Trade] = Field(default_factory=list)
    strategy: Optional[StrategyProfile] = None
    pre_market_notes: Optional[PreMarketNotes] = Field(
        default=None, alias="preMarketNotes"
    )
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")

    @field_validator("trades", mode="before")
    @classmethod
    def _null_trades(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("trades")
    @classmethod
    def _collapse_duplicate_ids(cls, trades: list[Trade]) -> list[Trade]:
        by_id: dict[str, Trade] = {}
        for trade in trades:
            by_id[trade.id] = trade
        return list(by_id.values())

    @field_validator("last_updated", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value: Any) -> Any:
        # A garbled timestamp is not worth rejecting the whole backup over.
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
        return value

    def trade_ids(self) -> list[str]:
        """Return trade ids in journal order."""
        return [t.id for t in self.trades]

    def extras(self) -> dict[str, Any]:
        """Top-level fields this model does not know about."""
        return dict(self.model_extra or {})

    def stamped(self, at: Optional[datetime] = None) -> JournalSnapshot:
        """Return a copy with ``last_updated`` set to *at* (default: now)."""
        return self.model_copy(
            update={"last_updated": at or datetime.now(timezone.utc)}
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible backup payload."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


DEFAULT_STRATEGY = StrategyProfile(
    name="Intraday Trend System (Template)",
    description=(
        "A disciplined approach to following market trends. Define your "
        "edge, wait for the setup, and execute with precision. Import your "
        "personal strategy file to customize."
    ),
    tags=["Trend Following", "Risk: 1:2", "Discipline"],
    steps=[
        StrategyStep(
            title="Phase 1: Analysis",
            items=[
                "Analyze higher timeframe trends (Daily/Hourly)",
                "Identify key support & resistance levels",
                "Check economic calendar for events",
            ],
        ),
        StrategyStep(
            title="Phase 2: Execution",
            items=[
                "Wait for price action confirmation at key levels",
                "Verify risk-to-reward ratio is at least 1:2",
                "Enter trade with defined Stop Loss",
            ],
        ),
        StrategyStep(
            title="Phase 3: Management",
            items=[
                "Trail Stop Loss to breakeven when possible",
                "Book partial profits at targets",
                "Log trade details immediately after exit",
            ],
        ),
    ],
    links=[
        StrategyLink(
            label="TradingView",
            url="https://www.tradingview.com",
            description="Charting Platform",
        ),
        StrategyLink(
            label="Economic Calendar",
            url="https://www.investing.com/economic-calendar/",
            description="Key Market Events",
        ),
    ],
    rules=[
        StrategyRule(
            title="PROTECT CAPITAL",
            description="Never risk more than 1-2% of total capital on a single trade.",
        ),
        StrategyRule(
            title="NO EMOTIONS",
            description="Trade the chart, not your feelings. If you feel tilted, stop trading.",
        ),
        StrategyRule(
            title="FOLLOW THE PLAN",
            description="Execution is the only thing you control. Outcome is probability.",
        ),
    ],
)


def empty_journal() -> JournalSnapshot:
    """A fresh journal seeded with the default strategy template."""
    return JournalSnapshot(strategy=DEFAULT_STRATEGY.model_copy(deep=True))
