"""Data models for the Sensex Options Tracker."""

from sensextracker.models.position import (
    TERMINAL_STATUSES,
    OptionType,
    Position,
    PositionStatus,
    UpdateLogEntry,
)
from sensextracker.models.snapshot import IndexQuote, MarketSnapshot, MarketStatus

__all__ = [
    "IndexQuote",
    "MarketSnapshot",
    "MarketStatus",
    "OptionType",
    "Position",
    "PositionStatus",
    "TERMINAL_STATUSES",
    "UpdateLogEntry",
]
