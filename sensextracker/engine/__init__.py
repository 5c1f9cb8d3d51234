"""Trailing stop-loss position engine."""

from sensextracker.engine.metrics import (
    calculate_pnl,
    calculate_stoploss,
    distance_percent,
    distance_to_stoploss,
    is_stoploss_hit,
    position_metrics,
    risk_level,
)
from sensextracker.engine.tracker import PositionTracker

__all__ = [
    "PositionTracker",
    "calculate_pnl",
    "calculate_stoploss",
    "distance_percent",
    "distance_to_stoploss",
    "is_stoploss_hit",
    "position_metrics",
    "risk_level",
]
