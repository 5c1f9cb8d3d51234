"""Derived metrics for tracked positions.

All functions here are pure and work at full precision. Rounding to
two decimals only happens in ``position_metrics`` for display.
"""

from typing import Literal

from sensextracker.models import Position

RiskLevel = Literal["critical", "warning", "safe"]

# Distance-to-stoploss thresholds in percent of the current price
CRITICAL_DISTANCE_PERCENT = 2.0
WARNING_DISTANCE_PERCENT = 5.0


def calculate_stoploss(highest_price: float, trailing_percent: float) -> float:
    """Calculate the trailing stop below the observed peak.

    The same downward trail applies to CALL and PUT positions since the
    tracked price is the option premium, not the underlying index.

    Args:
        highest_price: Highest premium observed so far.
        trailing_percent: Trailing distance in percent.

    Returns:
        The stoploss price.
    """
    return highest_price * (1 - trailing_percent / 100)


def is_stoploss_hit(current_price: float, stoploss: float) -> bool:
    """Check whether the current price has fallen to or below the stoploss."""
    return current_price <= stoploss


def calculate_pnl(entry_price: float, current_price: float, quantity: int) -> tuple[float, float]:
    """Calculate P&L amount and percentage.

    Args:
        entry_price: Entry premium.
        current_price: Current (or exit) premium.
        quantity: Contract multiplier.

    Returns:
        Tuple of (pnl, pnl_percent).
    """
    price_change = current_price - entry_price
    pnl = price_change * quantity
    pnl_percent = (price_change / entry_price) * 100
    return pnl, pnl_percent


def distance_to_stoploss(current_price: float, stoploss: float) -> float:
    """Distance from the current price down to the stoploss (negative once hit)."""
    return current_price - stoploss


def distance_percent(current_price: float, stoploss: float) -> float:
    """Distance to the stoploss as a percentage of the current price, floored at 0."""
    percent = distance_to_stoploss(current_price, stoploss) / current_price * 100
    return max(0.0, percent)


def risk_level(percent: float) -> RiskLevel:
    """Classify stoploss proximity.

    Args:
        percent: Output of ``distance_percent``.

    Returns:
        "critical" below 2%, "warning" below 5%, otherwise "safe".
    """
    if percent < CRITICAL_DISTANCE_PERCENT:
        return "critical"
    if percent < WARNING_DISTANCE_PERCENT:
        return "warning"
    return "safe"


def position_metrics(position: Position) -> dict:
    """Build the display metrics for a position, rounded to two decimals."""
    pnl, pnl_percent = calculate_pnl(
        position.entry_price, position.current_price, position.quantity
    )
    distance = distance_to_stoploss(position.current_price, position.stoploss)
    percent = distance_percent(position.current_price, position.stoploss)

    return {
        "pnl": round(pnl, 2),
        "pnlPercent": round(pnl_percent, 2),
        "distanceToStoploss": round(distance, 2),
        "distancePercent": round(percent, 2),
        "riskLevel": risk_level(percent),
    }
